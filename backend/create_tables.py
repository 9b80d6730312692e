#!/usr/bin/env python3
"""Create any missing tables for the import pipeline (no migrations; run once per database)."""

from sqlalchemy import inspect

import order_importer.db.models  # noqa: F401  registers every model on Base.metadata
from order_importer.db.base import Base
from order_importer.db.session import engine

if __name__ == "__main__":
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created = sorted(set(Base.metadata.tables) - existing)
    print(f"Created tables: {', '.join(created) if created else 'none (all present)'}")
