"""Create a new project from a template JSON file.

Usage:
  python scripts/import_project_template.py blog.json
  python scripts/import_project_template.py blog.json --name "Blog Copy" --schema-only
"""
import argparse
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from headless_cms.database import SessionLocal
from headless_cms.services import template_importer


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("path")
    parser.add_argument("--name", default=None)
    parser.add_argument("--schema-only", action="store_true", help="Skip demo entries")
    args = parser.parse_args()

    with open(args.path, encoding="utf-8") as fh:
        document = json.load(fh)

    db = SessionLocal()
    try:
        project = template_importer.create_project_from_template(
            db, document, name=args.name, with_demo_data=not args.schema_only
        )
        print("Project created from template.")
        print(f"  project_id: {project.project_id}")
        print(f"  uuid: {project.uuid}")
        print(f"  collections: {', '.join(row.slug for row in project.live_collections)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
