"""Declarative base and shared column helpers."""
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase

# Money columns: two decimal places, never binary float
Money = Numeric(10, 2, asdecimal=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    type_annotation_map = {Decimal: Money}
