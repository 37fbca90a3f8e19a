import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from headless_cms.database import Base, enable_sqlite_foreign_keys, get_db
from headless_cms.main import app
from headless_cms.models.asset import Asset, AssetMetadata
from headless_cms.models.project import Project
from headless_cms.models.user import User
from headless_cms.schemas.collection import CollectionCreate, FieldCreate
from headless_cms.schemas.content import EntryWrite
from headless_cms.services import content_service, schema_service

TEST_DB_URL = "sqlite:///./test_headless_cms.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
enable_sqlite_foreign_keys(engine)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(emp_id="admin001", name="Admin", role="admin", email="admin@example.com"),
        "editor": User(emp_id="editor001", name="Editor", role="editor"),
        "viewer": User(emp_id="viewer001", name="Viewer", role="viewer"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


@pytest.fixture
def seed_project(db):
    project = Project(
        name="Blog Site",
        description="블로그 데모 프로젝트",
        default_locale="en",
        locales=["en", "ko"],
        public_api=False,
        api_token="test-api-token",
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def seed_asset(db, seed_project):
    asset = Asset(
        project_id=seed_project.project_id,
        filename="a1b2c3.jpg",
        original_filename="cover.jpg",
        mime_type="image/jpeg",
        extension="jpg",
        size=1572864,
        path="project-1/a1b2c3.jpg",
    )
    asset.metadata_row = AssetMetadata(alt="Cover", caption="표지", width=1200, height=800)
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


def add_field(db, collection, field_type, label, name, options=None, parent=None):
    return schema_service.create_field(
        db,
        collection,
        FieldCreate(
            type=field_type,
            label=label,
            name=name,
            options=options or {},
            parent_field_id=parent.field_id if parent is not None else None,
        ),
    )


@pytest.fixture
def blog_schema(db, seed_project):
    """authors / posts / settings(싱글톤) 컬렉션과 모든 주요 필드 타입을 만든다."""
    authors = schema_service.create_collection(db, seed_project, CollectionCreate(name="Authors", slug="authors"))
    posts = schema_service.create_collection(db, seed_project, CollectionCreate(name="Posts", slug="posts"))
    site = schema_service.create_collection(
        db, seed_project, CollectionCreate(name="Site Settings", slug="site-settings", is_singleton=True)
    )

    fields = {
        "author_name": add_field(db, authors, "text", "Name", "name"),
        "author_secret": add_field(db, authors, "password", "Secret", "secret"),
        "author_note": add_field(db, authors, "text", "Internal note", "internal_note", {"hiddenInAPI": True}),
        "author_avatar": add_field(db, authors, "media", "Avatar", "avatar"),
        "title": add_field(db, posts, "text", "Title", "title"),
        "views": add_field(db, posts, "number", "Views", "views"),
        "tags": add_field(db, posts, "text", "Tags", "tags", {"repeatable": True}),
        "category": add_field(
            db, posts, "enumeration", "Category", "category",
            {"enumeration": {"list": ["news", "tech", "life"]}, "multiple": False},
        ),
        "featured": add_field(db, posts, "boolean", "Featured", "featured"),
        "event_period": add_field(db, posts, "date", "Event period", "event_period", {"mode": "range"}),
        "author": add_field(
            db, posts, "relation", "Author", "author",
            {"relation": {"collection": authors.collection_id, "type": 1}},
        ),
        "related_posts": add_field(
            db, posts, "relation", "Related posts", "related_posts",
            {"relation": {"collection": posts.collection_id, "type": 2}},
        ),
        "cover": add_field(db, posts, "media", "Cover", "cover"),
        "payload": add_field(db, posts, "json", "Payload", "payload"),
    }
    fields["seo"] = add_field(db, posts, "group", "SEO", "seo")
    fields["meta_title"] = add_field(db, posts, "text", "Meta title", "meta_title", parent=fields["seo"])
    fields["meta_key"] = add_field(db, posts, "text", "Meta key", "meta_key", {"hiddenInAPI": True}, parent=fields["seo"])
    fields["sections"] = add_field(db, posts, "group", "Sections", "sections", {"repeatable": True})
    fields["heading"] = add_field(db, posts, "text", "Heading", "heading", parent=fields["sections"])
    fields["body"] = add_field(db, posts, "richtext", "Body", "body", parent=fields["sections"])
    fields["site_title"] = add_field(db, site, "text", "Site title", "site_title")

    return {"authors": authors, "posts": posts, "site": site, "fields": fields}


def make_entry(db, project, collection, fields, status="published", locale=None):
    return content_service.create_entry(
        db, project, collection, EntryWrite(status=status, locale=locale, fields=fields)
    )


def get_token(client, emp_id: str) -> str:
    resp = client.post("/api/auth/login", json={"emp_id": emp_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, emp_id: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, emp_id)}"}
