"""Product catalog: read-heavy, written by admins only."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import AffiliateLink, Conversion, Product
from affiliate.models.product import COMMISSION_TYPES
from affiliate.money import to_money
from core.errors import ConflictError, InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "price_value",
    "type",
    "commission_type",
    "commission_value",
    "category",
    "image_data",
    "product_url",
)


def _validate_rule(commission_type: str, commission_value: Decimal) -> None:
    if commission_type not in COMMISSION_TYPES:
        raise InvalidAmountError(f"Unknown commission type: {commission_type!r}.")
    if commission_value < 0:
        raise InvalidAmountError("Commission value must not be negative.")


async def list_products(session: AsyncSession) -> list[Product]:
    result = await session.execute(
        select(Product).order_by(Product.created_at.desc(), Product.id.desc())
    )
    return list(result.scalars().all())


async def get_product(session: AsyncSession, product_id: int) -> Product:
    product = await session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found.")
    return product


async def create_product(session: AsyncSession, **fields: Any) -> Product:
    data = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS and v is not None}
    data["commission_value"] = to_money(data.get("commission_value"))
    data["price_value"] = to_money(data.get("price_value"))
    data.setdefault("commission_type", "percentage")
    _validate_rule(data["commission_type"], data["commission_value"])

    product = Product(**data)
    session.add(product)
    await session.commit()
    await session.refresh(product)

    logger.info("Product created", extra={"product_id": product.id})
    return product


async def update_product(session: AsyncSession, product_id: int, **fields: Any) -> Product:
    """Partial update; fields left as ``None`` are kept.

    Changing the commission rule never touches recorded conversions.
    """
    product = await get_product(session, product_id)
    for key, value in fields.items():
        if key not in PRODUCT_FIELDS or value is None:
            continue
        if key in ("commission_value", "price_value"):
            value = to_money(value)
        setattr(product, key, value)
    try:
        _validate_rule(product.commission_type, product.commission_value)
    except InvalidAmountError:
        await session.rollback()
        raise

    await session.commit()
    await session.refresh(product)

    logger.info("Product updated", extra={"product_id": product.id})
    return product


async def delete_product(session: AsyncSession, product_id: int) -> None:
    """Delete a product together with its links and clicks.

    Refused once any sale was attributed through the product: conversions
    carry commission that is owed to affiliates.
    """
    product = await get_product(session, product_id)
    converted = await session.scalar(
        select(func.count(Conversion.id))
        .join(AffiliateLink, AffiliateLink.id == Conversion.link_id)
        .where(AffiliateLink.product_id == product_id)
    )
    if converted:
        raise ConflictError(
            "Product has recorded conversions and cannot be deleted.",
            details={"conversions": int(converted)},
        )

    await session.delete(product)
    await session.commit()
    logger.info("Product deleted", extra={"product_id": product_id})
