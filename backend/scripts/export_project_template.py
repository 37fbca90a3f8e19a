"""Export a project as a portable template document.

Usage:
  python scripts/export_project_template.py 1                      # schema only, stdout
  python scripts/export_project_template.py 1 --demo -o blog.json  # with published entries
  python scripts/export_project_template.py 1 --save               # store as ProjectTemplate row
"""
import argparse
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from headless_cms.database import SessionLocal
from headless_cms.services import schema_service, template_builder


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("project_id", type=int)
    parser.add_argument("--slug", default=None)
    parser.add_argument("--name", default=None)
    parser.add_argument("--demo", action="store_true", help="Include published entries as demo data")
    parser.add_argument("-o", "--output", default=None, help="Write JSON to this file instead of stdout")
    parser.add_argument("--save", action="store_true", help="Also save the document as a project template")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        project = schema_service.get_project(db, args.project_id)
        document = template_builder.build_project_template(
            db, project, slug=args.slug, name=args.name, include_content=args.demo
        )
        saved = template_builder.save_project_template(db, document) if args.save else None
    finally:
        db.close()

    text = json.dumps(document, ensure_ascii=False, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
        print(f"Template written to {args.output}")
        print(f"  collections: {len(document['collections'])}")
        print(f"  demo collections: {len(document.get('demo_data') or [])}")
    else:
        print(text)
    if saved is not None:
        print(f"Saved project template slug={saved.slug}", file=sys.stderr)


if __name__ == "__main__":
    main()
