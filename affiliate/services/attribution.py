"""Attribution ledger: affiliate links, clicks and conversions.

Maps traffic and sales to the link that produced them and freezes the
commission owed at the moment of sale.
"""
from __future__ import annotations

import logging
import secrets
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from affiliate.models import AffiliateLink, Click, Conversion, Product
from affiliate.models.product import COMMISSION_FIXED, COMMISSION_PERCENTAGE
from affiliate.money import MAX_MONEY, fits_money_column, to_money
from affiliate.services.catalog import get_product
from affiliate.services.reporting import click_counts_subquery, conversion_totals_subquery
from core.errors import ConflictError, InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)

LINK_CODE_BYTES = 12
LINK_CODE_ATTEMPTS = 3


def generate_link_code() -> str:
    """Random URL-safe code; unguessable and independent of ids or time."""
    return secrets.token_urlsafe(LINK_CODE_BYTES)


def compute_commission(commission_type: str, commission_value, gross_amount) -> Decimal:
    """Commission owed for a sale of ``gross_amount`` under a product rule.

    percentage: gross * value / 100; fixed: value, whatever the sale amount.
    """
    value = Decimal(commission_value)
    if commission_type == COMMISSION_PERCENTAGE:
        commission = to_money(Decimal(gross_amount) * value / Decimal(100))
    elif commission_type == COMMISSION_FIXED:
        commission = to_money(value)
    else:
        raise InvalidAmountError(f"Unknown commission type: {commission_type!r}.")
    if not fits_money_column(commission):
        raise InvalidAmountError(
            "Commission exceeds the largest storable amount.",
            details={"commission": str(commission), "maximum": str(MAX_MONEY)},
        )
    return commission


async def _find_link(session: AsyncSession, user_id: int, product_id: int) -> AffiliateLink | None:
    result = await session.execute(
        select(AffiliateLink).where(
            AffiliateLink.user_id == user_id,
            AffiliateLink.product_id == product_id,
        )
    )
    return result.scalar_one_or_none()


async def create_or_get_link(
    session: AsyncSession, user_id: int, product_id: int
) -> tuple[AffiliateLink, bool]:
    """Return the user's link for a product, creating it on first call.

    Returns:
        (link, created). Repeated calls for the same pair return the same
        link with ``created=False``.

    Raises:
        NotFoundError: the product does not exist.
        ConflictError: no unique code could be allocated.
    """
    await get_product(session, product_id)

    existing = await _find_link(session, user_id, product_id)
    if existing is not None:
        return existing, False

    for _ in range(LINK_CODE_ATTEMPTS):
        link = AffiliateLink(user_id=user_id, product_id=product_id, link_code=generate_link_code())
        session.add(link)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            # A concurrent request for the same pair won the unique constraint
            existing = await _find_link(session, user_id, product_id)
            if existing is not None:
                return existing, False
            continue
        await session.refresh(link)
        logger.info(
            "Affiliate link created",
            extra={"user_id": user_id, "product_id": product_id, "link_id": link.id},
        )
        return link, True

    raise ConflictError("Could not allocate a unique link code.")


async def get_link_by_code(session: AsyncSession, link_code: str) -> AffiliateLink:
    """Resolve a code to its link, with the product loaded for redirects."""
    result = await session.execute(
        select(AffiliateLink)
        .options(joinedload(AffiliateLink.product))
        .where(AffiliateLink.link_code == link_code)
    )
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError("Link not found.")
    return link


async def list_user_links(session: AsyncSession, user_id: int) -> list[dict[str, Any]]:
    """The user's links with product info and per-link performance."""
    clicks = click_counts_subquery()
    conversions = conversion_totals_subquery()
    stmt = (
        select(
            AffiliateLink.id,
            AffiliateLink.user_id,
            AffiliateLink.product_id,
            AffiliateLink.link_code,
            AffiliateLink.created_at,
            Product.name.label("product_name"),
            Product.price,
            Product.commission_type,
            Product.commission_value,
            func.coalesce(clicks.c.clicks, 0).label("clicks"),
            func.coalesce(conversions.c.conversions, 0).label("conversions"),
            func.coalesce(conversions.c.commission, 0).label("revenue"),
        )
        .join(Product, Product.id == AffiliateLink.product_id)
        .outerjoin(clicks, clicks.c.link_id == AffiliateLink.id)
        .outerjoin(conversions, conversions.c.link_id == AffiliateLink.id)
        .where(AffiliateLink.user_id == user_id)
        .order_by(AffiliateLink.created_at.desc(), AffiliateLink.id.asc())
    )
    rows = (await session.execute(stmt)).mappings().all()
    return [
        {
            **row,
            "clicks": int(row["clicks"]),
            "conversions": int(row["conversions"]),
            "revenue": to_money(row["revenue"]),
        }
        for row in rows
    ]


async def _link_id_for_code(session: AsyncSession, link_code: str) -> int:
    link_id = await session.scalar(select(AffiliateLink.id).where(AffiliateLink.link_code == link_code))
    if link_id is None:
        raise NotFoundError("Link not found.")
    return link_id


async def record_click(
    session: AsyncSession, link_code: str, ip_address: str | None, user_agent: str | None
) -> Click:
    """Append a click for the link; has no effect on commission."""
    link_id = await _link_id_for_code(session, link_code)
    click = Click(link_id=link_id, ip_address=ip_address, user_agent=user_agent)
    session.add(click)
    await session.commit()

    logger.info(
        "Click tracked",
        extra={"link_id": link_id, "client": ip_address, "user_agent": user_agent},
    )
    return click


async def record_conversion(session: AsyncSession, link_code: str, gross_amount) -> Conversion:
    """Record a confirmed sale and freeze its commission.

    The product's commission rule is read through the link at call time;
    later changes to the rule do not alter this conversion.

    Raises:
        NotFoundError: the code does not resolve to a link.
        InvalidAmountError: the sale amount is not positive.
    """
    amount = to_money(gross_amount)
    if amount <= 0:
        raise InvalidAmountError("Conversion amount must be positive.")
    if not fits_money_column(amount):
        raise InvalidAmountError(
            "Conversion amount exceeds the largest storable amount.",
            details={"maximum": str(MAX_MONEY)},
        )

    link = await get_link_by_code(session, link_code)
    product = link.product
    commission = compute_commission(product.commission_type, product.commission_value, amount)

    conversion = Conversion(link_id=link.id, amount=amount, commission=commission)
    session.add(conversion)
    await session.commit()
    await session.refresh(conversion)

    logger.info(
        f"Commission earned on {product.name!r}",
        extra={
            "user_id": link.user_id,
            "link_id": link.id,
            "conversion_id": conversion.id,
            "amount": amount,
            "commission": commission,
        },
    )
    return conversion
