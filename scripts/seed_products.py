"""Insert the sample catalog; products already present by name are skipped."""
import asyncio
from decimal import Decimal

from sqlalchemy import select

from affiliate.models import Product
from affiliate.services.catalog import create_product
from core.db import SessionFactory, init_db

PRODUCTS = [
    {
        "name": "Premium Marketing Course",
        "description": "Complete digital marketing course with 50+ hours of content",
        "price": "€299",
        "price_value": Decimal("299.00"),
        "type": "service",
        "commission_type": "percentage",
        "commission_value": Decimal("30.00"),
        "category": "Education",
        "product_url": "https://example.com/marketing-course",
    },
    {
        "name": "SEO Tool Pro",
        "description": "Advanced SEO analysis and tracking tool",
        "price": "€49/mo",
        "price_value": Decimal("49.00"),
        "type": "service",
        "commission_type": "percentage",
        "commission_value": Decimal("20.00"),
        "category": "Software",
        "product_url": "https://example.com/seo-tool",
    },
    {
        "name": "Affiliate Marketing Guide",
        "description": "Comprehensive ebook on affiliate marketing strategies",
        "price": "€39",
        "price_value": Decimal("39.00"),
        "type": "product",
        "commission_type": "fixed",
        "commission_value": Decimal("15.00"),
        "category": "Education",
        "product_url": "https://example.com/affiliate-guide",
    },
    {
        "name": "Web Hosting Premium",
        "description": "Fast and reliable web hosting solution",
        "price": "€19.99/mo",
        "price_value": Decimal("19.99"),
        "type": "service",
        "commission_type": "percentage",
        "commission_value": Decimal("25.00"),
        "category": "Hosting",
        "product_url": "https://example.com/hosting",
    },
    {
        "name": "Email Marketing Software",
        "description": "Professional email automation platform",
        "price": "€79/mo",
        "price_value": Decimal("79.00"),
        "type": "service",
        "commission_type": "percentage",
        "commission_value": Decimal("30.00"),
        "category": "Software",
        "product_url": "https://example.com/email-software",
    },
]


async def main() -> None:
    await init_db()
    created = 0
    async with SessionFactory() as session:
        for p in PRODUCTS:
            res = await session.execute(select(Product.id).where(Product.name == p["name"]))
            if res.scalar_one_or_none():
                continue
            await create_product(session, **p)
            created += 1
    print(f"Seed completed: created {created} products")


if __name__ == "__main__":
    asyncio.run(main())
