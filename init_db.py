"""
Database initialization utility.

Run this script to create all database tables.
"""

from busnet.db import engine, Base
from busnet import models  # noqa: F401  (registers the tables on Base)


def init_database():
    """Create all database tables."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✓ Database tables created successfully!")
    print("\nTables created:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    init_database()
