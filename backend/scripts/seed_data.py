"""Seed the database with test data."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from headless_cms.database import SessionLocal, engine, Base
import headless_cms.models  # noqa: F401

from headless_cms.models.user import User
from headless_cms.models.project import Project
from headless_cms.schemas.collection import CollectionCreate, FieldCreate
from headless_cms.schemas.content import EntryWrite
from headless_cms.services import content_service, schema_service


def _fields(db, collection, specs, parent=None):
    created = {}
    for field_type, label, name, options in specs:
        created[name] = schema_service.create_field(
            db,
            collection,
            FieldCreate(
                type=field_type,
                label=label,
                name=name,
                options=options,
                parent_field_id=parent.field_id if parent is not None else None,
            ),
        )
    return created


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        # Users
        users = [
            User(emp_id="admin001", name="관리자 김철수", role="admin", email="admin@company.com"),
            User(emp_id="editor001", name="편집자 이영희", role="editor", email="editor1@company.com"),
            User(emp_id="viewer001", name="열람자 박민준", role="viewer", email="viewer1@company.com"),
        ]
        db.add_all(users)
        db.flush()

        # Project
        project = Project(
            name="Company Blog",
            description="블로그 데모 프로젝트",
            default_locale="ko",
            locales=["ko", "en"],
            public_api=True,
            api_token="demo-api-token",
        )
        db.add(project)
        db.commit()

        # Collections
        authors = schema_service.create_collection(db, project, CollectionCreate(name="Authors", slug="authors"))
        posts = schema_service.create_collection(db, project, CollectionCreate(name="Posts", slug="posts"))
        settings_collection = schema_service.create_collection(
            db, project, CollectionCreate(name="Site Settings", slug="site-settings", is_singleton=True)
        )

        _fields(db, authors, [
            ("text", "이름", "name", {}),
            ("text", "소개", "bio", {}),
            ("media", "프로필 사진", "avatar", {}),
        ])
        post_fields = _fields(db, posts, [
            ("text", "제목", "title", {}),
            ("richtext", "본문", "body", {}),
            ("text", "태그", "tags", {"repeatable": True}),
            ("enumeration", "분류", "category", {"enumeration": {"list": ["news", "tech", "life"]}}),
            ("date", "게시 기간", "period", {"mode": "range"}),
            ("relation", "작성자", "author", {"relation": {"collection": authors.collection_id, "type": 1}}),
            ("group", "SEO", "seo", {}),
        ])
        _fields(db, posts, [
            ("text", "메타 제목", "meta_title", {}),
            ("text", "메타 설명", "meta_description", {}),
        ], parent=post_fields["seo"])
        _fields(db, settings_collection, [("text", "사이트 이름", "site_title", {})])

        # Entries
        author = content_service.create_entry(
            db, project, authors,
            EntryWrite(status="published", fields={"name": "김철수", "bio": "플랫폼팀 개발자"}),
            current_user=users[0],
        )
        entries = [
            content_service.create_entry(
                db, project, posts,
                EntryWrite(status="published", fields={
                    "title": "헤드리스 CMS 시작하기",
                    "body": "<p>컬렉션과 필드를 정의하고 콘텐츠를 작성해 보세요.</p>",
                    "tags": ["cms", "guide"],
                    "category": "tech",
                    "period": {"start": "2026-03-01", "end": "2026-03-31"},
                    "author": [author.entry_id],
                    "seo": {"meta_title": "헤드리스 CMS 시작하기"},
                }),
                current_user=users[1],
            ),
            content_service.create_entry(
                db, project, posts,
                EntryWrite(status="draft", fields={"title": "작성 중인 글", "category": "life"}),
                current_user=users[1],
            ),
            content_service.create_entry(
                db, project, settings_collection,
                EntryWrite(status="published", fields={"site_title": "Company Blog"}),
                current_user=users[0],
            ),
        ]

        print("Seed data inserted successfully.")
        print(f"  Users: {len(users)}")
        print(f"  Project: 1 (ID={project.project_id}, uuid={project.uuid})")
        print("  Collections: 3")
        print(f"  Entries: {len(entries) + 1}")
        print()
        print("Test login credentials:")
        for u in users:
            print(f"  emp_id={u.emp_id}  role={u.role}  name={u.name}")

    except Exception as e:
        db.rollback()
        raise e
    finally:
        db.close()


if __name__ == "__main__":
    seed()
