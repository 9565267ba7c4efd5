"""
Base ORM Model.

============================================================
PURPOSE
============================================================
Provides the declarative base and the portable column types used
by all ORM models of the sync engine.

============================================================
COMPONENTS
============================================================
- Base: SQLAlchemy declarative base for all models
- JSONColumn: JSON, stored as JSONB on PostgreSQL

============================================================
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONColumn = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    Datetime columns are timezone-aware by default.
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }
