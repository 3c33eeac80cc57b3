"""
Demo Data Seeder

Creates the schema and loads a handful of forklift parts and two customers
(one with a standing discount) for local development.

Usage:
    python scripts/seed_demo.py
"""

import asyncio
import uuid
from decimal import Decimal
from typing import Any, Dict, List

import structlog
from sqlalchemy.dialects import postgresql, sqlite

from partshop.config import get_settings
from partshop.config.logging import configure_logging
from partshop.database.connection import Database
from partshop.database.models import Category, Product, User

logger = structlog.get_logger(__name__)

# Stable ids so re-running the seeder is a no-op
NAMESPACE = uuid.UUID("6f1c2a4e-3b1d-4c55-9a0e-5d7f2e8b9c01")


def _id(name: str) -> uuid.UUID:
    return uuid.uuid5(NAMESPACE, name)


CATEGORIES = [
    {"id": _id("cat:hydraulics"), "name": "Hydraulics", "description": "Pumps, cylinders and seals"},
    {"id": _id("cat:electrical"), "name": "Electrical", "description": "Switches, sensors and wiring"},
    {"id": _id("cat:wheels"), "name": "Wheels & Tyres", "description": "Drive and load wheels"},
]

PRODUCTS = [
    {
        "id": _id("sku:HYD-PMP-001"),
        "name": "Hydraulic Pump 24V",
        "sku": "HYD-PMP-001",
        "artikul": "0009720120",
        "catalog_number": "CAT-1001",
        "price": Decimal("180.00"),
        "sale_price": Decimal("144.00"),
        "stock": 12,
        "category_id": _id("cat:hydraulics"),
    },
    {
        "id": _id("sku:HYD-SEAL-010"),
        "name": "Lift Cylinder Seal Kit",
        "sku": "HYD-SEAL-010",
        "artikul": "0009633211",
        "catalog_number": "CAT-1010",
        "price": Decimal("42.50"),
        "sale_price": None,
        "stock": 80,
        "category_id": _id("cat:hydraulics"),
    },
    {
        "id": _id("sku:ELC-SW-220"),
        "name": "Seat Switch",
        "sku": "ELC-SW-220",
        "artikul": "7916101",
        "catalog_number": "CAT-2220",
        "price": Decimal("19.90"),
        "sale_price": Decimal("17.50"),
        "stock": 40,
        "category_id": _id("cat:electrical"),
    },
    {
        "id": _id("sku:WHL-PU-343"),
        "name": "Polyurethane Load Wheel 343x135",
        "sku": "WHL-PU-343",
        "artikul": "0009901735",
        "catalog_number": "CAT-3343",
        "price": Decimal("265.00"),
        "sale_price": None,
        "stock": 6,
        "category_id": _id("cat:wheels"),
    },
]

USERS = [
    {
        "id": _id("user:retail"),
        "email": "retail.buyer@example.com",
        "first_name": "Rauf",
        "last_name": "Aliyev",
        "discount_percentage": 0,
    },
    {
        "id": _id("user:fleet"),
        "email": "fleet.manager@example.com",
        "first_name": "Leyla",
        "last_name": "Mammadova",
        "discount_percentage": 10,
    },
]


async def insert_ignoring_existing(database: Database, model: Any, records: List[Dict[str, Any]]):
    """Insert records, skipping rows whose key already exists."""
    if not records:
        return

    dialect = sqlite if database.is_sqlite else postgresql
    stmt = dialect.insert(model).values(records).on_conflict_do_nothing()

    async with database.session() as session:
        await session.execute(stmt)
    logger.info("Seeded table", table=model.__tablename__, records=len(records))


async def main():
    settings = get_settings()
    configure_logging(settings.monitoring.log_level)

    logger.info("Starting demo data seeding...")
    database = Database.from_settings(settings.database)
    await database.connect()

    try:
        await database.create_all()
        await insert_ignoring_existing(database, Category, CATEGORIES)
        await insert_ignoring_existing(database, Product, PRODUCTS)
        await insert_ignoring_existing(database, User, USERS)
        logger.info("Demo data seeding completed successfully!")
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
