import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from affiliate.models import AffiliateLink, Click, Conversion
from affiliate.services import attribution, catalog
from core.errors import ConflictError, InvalidAmountError, NotFoundError


def test_compute_commission_percentage_and_fixed():
    assert attribution.compute_commission("percentage", Decimal("30.00"), Decimal("100.00")) == Decimal("30.00")
    assert attribution.compute_commission("percentage", Decimal("25.00"), Decimal("19.99")) == Decimal("5.00")
    assert attribution.compute_commission("fixed", Decimal("15.00"), Decimal("500.00")) == Decimal("15.00")


def test_compute_commission_rejects_unknown_type():
    with pytest.raises(InvalidAmountError):
        attribution.compute_commission("tiered", Decimal("1"), Decimal("10"))


def test_generated_codes_are_url_safe_and_distinct():
    codes = {attribution.generate_link_code() for _ in range(50)}
    assert len(codes) == 50
    for code in codes:
        assert len(code) >= 16
        assert all(ch.isalnum() or ch in "-_" for ch in code)


@pytest.mark.asyncio
async def test_create_or_get_link_is_idempotent(test_session, marketer, percentage_product):
    link, created = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)
    again, created_again = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)

    assert created is True
    assert created_again is False
    assert again.id == link.id
    assert again.link_code == link.link_code

    count = await test_session.scalar(select(func.count(AffiliateLink.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_create_link_for_missing_product(test_session, marketer):
    with pytest.raises(NotFoundError):
        await attribution.create_or_get_link(test_session, marketer.id, 9999)


@pytest.mark.asyncio
async def test_record_click_appends_without_commission(test_session, marketer, percentage_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)

    await attribution.record_click(test_session, link.link_code, "203.0.113.7", "Mozilla/5.0")
    await attribution.record_click(test_session, link.link_code, None, None)

    clicks = (await test_session.execute(select(Click).where(Click.link_id == link.id))).scalars().all()
    assert len(clicks) == 2
    assert clicks[0].ip_address == "203.0.113.7"
    conversions = await test_session.scalar(select(func.count(Conversion.id)))
    assert conversions == 0


@pytest.mark.asyncio
async def test_record_click_unknown_code(test_session):
    with pytest.raises(NotFoundError):
        await attribution.record_click(test_session, "does-not-exist", None, None)


@pytest.mark.asyncio
async def test_percentage_conversion_commission(test_session, marketer, percentage_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)

    conversion = await attribution.record_conversion(test_session, link.link_code, Decimal("100.00"))

    assert conversion.amount == Decimal("100.00")
    assert conversion.commission == Decimal("30.00")
    assert conversion.link_id == link.id


@pytest.mark.asyncio
async def test_fixed_commission_ignores_sale_amount(test_session, marketer, fixed_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, fixed_product.id)

    conversion = await attribution.record_conversion(test_session, link.link_code, Decimal("500.00"))

    assert conversion.commission == Decimal("15.00")


@pytest.mark.asyncio
async def test_commission_frozen_after_rule_change(test_session, marketer, percentage_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)
    first = await attribution.record_conversion(test_session, link.link_code, Decimal("100.00"))

    await catalog.update_product(
        test_session, percentage_product.id, commission_type="fixed", commission_value=Decimal("5.00")
    )
    second = await attribution.record_conversion(test_session, link.link_code, Decimal("100.00"))

    stored = await test_session.get(Conversion, first.id, populate_existing=True)
    assert stored.commission == Decimal("30.00")
    assert second.commission == Decimal("5.00")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10.00")])
async def test_conversion_requires_positive_amount(test_session, marketer, percentage_product, amount):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)

    with pytest.raises(InvalidAmountError):
        await attribution.record_conversion(test_session, link.link_code, amount)

    assert await test_session.scalar(select(func.count(Conversion.id))) == 0


@pytest.mark.asyncio
async def test_conversion_unknown_code(test_session):
    with pytest.raises(NotFoundError):
        await attribution.record_conversion(test_session, "nope", Decimal("10.00"))


@pytest.mark.asyncio
async def test_list_user_links_counts_per_link(test_session, marketer, percentage_product, fixed_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)
    other, _ = await attribution.create_or_get_link(test_session, marketer.id, fixed_product.id)
    for _ in range(3):
        await attribution.record_click(test_session, link.link_code, None, None)
    await attribution.record_conversion(test_session, link.link_code, Decimal("100.00"))
    await attribution.record_conversion(test_session, link.link_code, Decimal("50.00"))

    links = {row["id"]: row for row in await attribution.list_user_links(test_session, marketer.id)}

    assert links[link.id]["clicks"] == 3
    assert links[link.id]["conversions"] == 2
    # Three clicks must not multiply the 45.00 earned
    assert links[link.id]["revenue"] == Decimal("45.00")
    assert links[other.id]["clicks"] == 0
    assert links[other.id]["revenue"] == Decimal("0.00")
    assert links[link.id]["product_name"] == percentage_product.name


@pytest.mark.asyncio
async def test_concurrent_link_requests_share_one_row(test_db_session, marketer, percentage_product):
    user_id, product_id = marketer.id, percentage_product.id

    async def request_link():
        async with test_db_session() as session:
            link, created = await attribution.create_or_get_link(session, user_id, product_id)
            return link.link_code, created

    results = await asyncio.gather(*(request_link() for _ in range(6)))

    assert len({code for code, _ in results}) == 1
    assert [created for _, created in results].count(True) == 1
    async with test_db_session() as session:
        assert await session.scalar(select(func.count(AffiliateLink.id))) == 1


@pytest.mark.asyncio
async def test_link_code_collisions_give_up_with_conflict(
    test_session, marketer, percentage_product, fixed_product, monkeypatch
):
    user_id, first_id, second_id = marketer.id, percentage_product.id, fixed_product.id
    monkeypatch.setattr(attribution, "generate_link_code", lambda: "always-the-same")

    link, created = await attribution.create_or_get_link(test_session, user_id, first_id)
    assert created is True

    with pytest.raises(ConflictError):
        await attribution.create_or_get_link(test_session, user_id, second_id)
    assert await test_session.scalar(select(func.count(AffiliateLink.id))) == 1


def test_commission_larger_than_column_is_rejected():
    with pytest.raises(InvalidAmountError) as exc_info:
        attribution.compute_commission("percentage", Decimal("500.00"), Decimal("99999999.99"))
    assert exc_info.value.details["maximum"] == "99999999.99"

    assert attribution.compute_commission("percentage", Decimal("100.00"), Decimal("99999999.99")) == Decimal(
        "99999999.99"
    )


@pytest.mark.asyncio
async def test_oversized_conversion_is_not_stored(test_session, marketer, percentage_product):
    link, _ = await attribution.create_or_get_link(test_session, marketer.id, percentage_product.id)

    with pytest.raises(InvalidAmountError):
        await attribution.record_conversion(test_session, link.link_code, Decimal("100000000.00"))

    assert await test_session.scalar(select(func.count(Conversion.id))) == 0
