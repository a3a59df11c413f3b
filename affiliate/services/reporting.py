"""Read-only aggregations over the ledger: analytics, leaderboards, admin views.

Clicks and conversions are aggregated per link in separate subqueries before
joining, so a link's click count never multiplies its revenue. Orderings end
with an id ascending tie-break to keep results reproducible.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import AffiliateLink, Click, Conversion, Product, User
from affiliate.money import to_money


def click_counts_subquery():
    return (
        select(Click.link_id.label("link_id"), func.count(Click.id).label("clicks"))
        .group_by(Click.link_id)
        .subquery("link_clicks")
    )


def conversion_totals_subquery():
    return (
        select(
            Conversion.link_id.label("link_id"),
            func.count(Conversion.id).label("conversions"),
            func.sum(Conversion.commission).label("commission"),
            func.sum(Conversion.amount).label("sales"),
        )
        .group_by(Conversion.link_id)
        .subquery("link_conversions")
    )


def _as_day(value) -> date:
    # func.date() yields a date on PostgreSQL and an ISO string on SQLite
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def utc_day(column, dialect_name: str):
    """Calendar day of a timestamptz column, taken in UTC."""
    if dialect_name == "postgresql":
        # date() on timestamptz follows the session TimeZone
        return func.date(func.timezone("UTC", column))
    return func.date(column)


def _today() -> date:
    return datetime.now(timezone.utc).date()


async def daily_stats(session: AsyncSession, user_id: int, days: int = 7) -> list[dict[str, Any]]:
    """Clicks, conversions and commission per UTC day, oldest first, zero-filled."""
    today = _today()
    first_day = today - timedelta(days=days - 1)
    since = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)
    dialect_name = session.get_bind().dialect.name

    click_day = utc_day(Click.clicked_at, dialect_name)
    click_rows = await session.execute(
        select(click_day.label("day"), func.count(Click.id))
        .join(AffiliateLink, AffiliateLink.id == Click.link_id)
        .where(AffiliateLink.user_id == user_id, Click.clicked_at >= since)
        .group_by(click_day)
    )
    clicks_by_day = {_as_day(day): int(count) for day, count in click_rows}

    conversion_day = utc_day(Conversion.converted_at, dialect_name)
    conversion_rows = await session.execute(
        select(conversion_day.label("day"), func.count(Conversion.id), func.sum(Conversion.commission))
        .join(AffiliateLink, AffiliateLink.id == Conversion.link_id)
        .where(AffiliateLink.user_id == user_id, Conversion.converted_at >= since)
        .group_by(conversion_day)
    )
    conversions_by_day = {
        _as_day(day): (int(count), to_money(revenue)) for day, count, revenue in conversion_rows
    }

    stats = []
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        conversions, revenue = conversions_by_day.get(day, (0, to_money(0)))
        stats.append(
            {
                "date": day.isoformat(),
                "clicks": clicks_by_day.get(day, 0),
                "conversions": conversions,
                "revenue": revenue,
            }
        )
    return stats


async def product_stats(session: AsyncSession, user_id: int, limit: int = 5) -> list[dict[str, Any]]:
    """The user's products ranked by commission earned."""
    clicks = click_counts_subquery()
    conversions = conversion_totals_subquery()
    revenue = func.coalesce(func.sum(conversions.c.commission), 0).label("revenue")
    stmt = (
        select(
            Product.id,
            Product.name,
            func.coalesce(func.sum(clicks.c.clicks), 0).label("clicks"),
            func.coalesce(func.sum(conversions.c.conversions), 0).label("conversions"),
            revenue,
        )
        .join(AffiliateLink, AffiliateLink.product_id == Product.id)
        .outerjoin(clicks, clicks.c.link_id == AffiliateLink.id)
        .outerjoin(conversions, conversions.c.link_id == AffiliateLink.id)
        .where(AffiliateLink.user_id == user_id)
        .group_by(Product.id, Product.name)
        .order_by(desc("revenue"), Product.id.asc())
        .limit(limit)
    )
    return [_with_counts(row) for row in (await session.execute(stmt)).mappings()]


async def product_leaderboard(session: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    """Products ranked by gross sales attributed through affiliate links."""
    clicks = click_counts_subquery()
    conversions = conversion_totals_subquery()
    stmt = (
        select(
            Product.id,
            Product.name,
            Product.category,
            Product.price,
            func.coalesce(func.sum(clicks.c.clicks), 0).label("clicks"),
            func.coalesce(func.sum(conversions.c.conversions), 0).label("conversions"),
            func.coalesce(func.sum(conversions.c.sales), 0).label("revenue"),
        )
        .outerjoin(AffiliateLink, AffiliateLink.product_id == Product.id)
        .outerjoin(clicks, clicks.c.link_id == AffiliateLink.id)
        .outerjoin(conversions, conversions.c.link_id == AffiliateLink.id)
        .group_by(Product.id, Product.name, Product.category, Product.price)
        .order_by(desc("revenue"), Product.id.asc())
        .limit(limit)
    )
    return [_with_counts(row) for row in (await session.execute(stmt)).mappings()]


async def marketer_leaderboard(session: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    """Non-admin users ranked by commission earned."""
    clicks = click_counts_subquery()
    conversions = conversion_totals_subquery()
    stmt = (
        select(
            User.id,
            User.name,
            User.email,
            func.coalesce(func.sum(clicks.c.clicks), 0).label("clicks"),
            func.coalesce(func.sum(conversions.c.conversions), 0).label("conversions"),
            func.coalesce(func.sum(conversions.c.commission), 0).label("revenue"),
        )
        .outerjoin(AffiliateLink, AffiliateLink.user_id == User.id)
        .outerjoin(clicks, clicks.c.link_id == AffiliateLink.id)
        .outerjoin(conversions, conversions.c.link_id == AffiliateLink.id)
        .where(User.is_admin.is_(False))
        .group_by(User.id, User.name, User.email)
        .order_by(desc("revenue"), User.id.asc())
        .limit(limit)
    )
    return [_with_counts(row) for row in (await session.execute(stmt)).mappings()]


async def user_overview(session: AsyncSession) -> list[dict[str, Any]]:
    """Every user with link, click and conversion counts and total earnings."""
    clicks = click_counts_subquery()
    conversions = conversion_totals_subquery()
    stmt = (
        select(
            User.id,
            User.name,
            User.email,
            User.is_admin,
            User.created_at,
            func.count(AffiliateLink.id).label("total_links"),
            func.coalesce(func.sum(clicks.c.clicks), 0).label("total_clicks"),
            func.coalesce(func.sum(conversions.c.conversions), 0).label("total_conversions"),
            func.coalesce(func.sum(conversions.c.commission), 0).label("total_earnings"),
        )
        .outerjoin(AffiliateLink, AffiliateLink.user_id == User.id)
        .outerjoin(clicks, clicks.c.link_id == AffiliateLink.id)
        .outerjoin(conversions, conversions.c.link_id == AffiliateLink.id)
        .group_by(User.id, User.name, User.email, User.is_admin, User.created_at)
        .order_by(User.created_at.desc(), User.id.asc())
    )
    rows = (await session.execute(stmt)).mappings().all()
    return [
        {
            **row,
            "total_links": int(row["total_links"]),
            "total_clicks": int(row["total_clicks"]),
            "total_conversions": int(row["total_conversions"]),
            "total_earnings": to_money(row["total_earnings"]),
        }
        for row in rows
    ]


async def recent_conversions(session: AsyncSession, limit: int = 100) -> list[dict[str, Any]]:
    stmt = (
        select(
            Conversion.id,
            Conversion.link_id,
            Conversion.amount,
            Conversion.commission,
            Conversion.converted_at,
            AffiliateLink.link_code,
            User.id.label("user_id"),
            User.name.label("user_name"),
            User.email,
            Product.name.label("product_name"),
        )
        .join(AffiliateLink, AffiliateLink.id == Conversion.link_id)
        .join(User, User.id == AffiliateLink.user_id)
        .join(Product, Product.id == AffiliateLink.product_id)
        .order_by(Conversion.converted_at.desc(), Conversion.id.asc())
        .limit(limit)
    )
    return [dict(row) for row in (await session.execute(stmt)).mappings()]


async def admin_stats(session: AsyncSession) -> dict[str, Any]:
    """Platform-wide totals for the admin dashboard."""
    total_users = await session.scalar(
        select(func.count(User.id)).where(User.is_admin.is_(False))
    )
    total_products = await session.scalar(select(func.count(Product.id)))
    total_links = await session.scalar(select(func.count(AffiliateLink.id)))
    total_clicks = await session.scalar(select(func.count(Click.id)))
    total_conversions = await session.scalar(select(func.count(Conversion.id)))
    total_revenue = await session.scalar(select(func.coalesce(func.sum(Conversion.amount), 0)))
    total_commissions = await session.scalar(select(func.coalesce(func.sum(Conversion.commission), 0)))
    return {
        "total_users": int(total_users or 0),
        "total_products": int(total_products or 0),
        "total_links": int(total_links or 0),
        "total_clicks": int(total_clicks or 0),
        "total_conversions": int(total_conversions or 0),
        "total_revenue": to_money(total_revenue),
        "total_commissions": to_money(total_commissions),
    }


def _with_counts(row) -> dict[str, Any]:
    return {
        **row,
        "clicks": int(row["clicks"]),
        "conversions": int(row["conversions"]),
        "revenue": to_money(row["revenue"]),
    }
