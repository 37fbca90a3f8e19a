"""Create (or recreate) all CMS tables."""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from headless_cms.config import settings
from headless_cms.database import engine, Base
import headless_cms.models  # noqa: F401 - registers all models


def init_db(reset: bool = False):
    print(f"Database: {settings.DATABASE_URL}")
    if reset:
        print("Dropping existing CMS tables...")
        Base.metadata.drop_all(bind=engine)
    print("Creating all database tables...")
    Base.metadata.create_all(bind=engine)
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")
    print("Database initialized successfully.")


def main():
    parser = argparse.ArgumentParser(description="Initialize headless CMS tables.")
    parser.add_argument("--reset", action="store_true", help="drop every table before creating")
    args = parser.parse_args()
    init_db(reset=args.reset)


if __name__ == "__main__":
    main()
