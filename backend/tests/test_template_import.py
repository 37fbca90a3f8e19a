import pytest
from fastapi import HTTPException

from headless_cms.models.collection import Collection
from headless_cms.models.content import ContentEntry
from headless_cms.models.project import Project
from headless_cms.services import content_service, template_builder, template_importer
from headless_cms.services.entry_serializer import EntrySerializer
from headless_cms.services.schema_service import get_collection_by_slug, resolve_field_tree
from tests.conftest import make_entry

STARTER = {
    "slug": "starter",
    "name": "Starter",
    "description": "",
    "has_demo_data": True,
    "collections": [
        {"name": "Authors", "slug": "authors", "fields": [{"type": "text", "label": "Name", "name": "name"}]},
        {
            "name": "Posts",
            "slug": "posts",
            "fields": [
                {"type": "text", "label": "Title", "name": "title"},
                {
                    "type": "relation",
                    "label": "Author",
                    "name": "author",
                    "options": {"relation": {"collection": "authors"}},
                },
                {
                    "type": "group",
                    "label": "SEO",
                    "name": "seo",
                    "children": [{"type": "text", "label": "Meta title", "name": "meta_title"}],
                },
            ],
        },
    ],
    "demo_data": [
        {
            "collection": "authors",
            "entries": [{"id": "e1", "locale": "en", "status": "published", "fields": {"name": "Kim"}}],
        },
        {
            "collection": "posts",
            "entries": [
                {
                    "id": "e2",
                    "locale": "fr",
                    "status": "archived",
                    "fields": {"title": "Hi", "author": ["e1", "e1", "e9"], "seo": {"meta_title": "M"}},
                },
            ],
        },
    ],
}


def _field(db, collection, name):
    return next(node.field for node in resolve_field_tree(db, collection.collection_id) if node.name == name)


def test_apply_document_creates_schema_and_demo_entries(db, seed_project):
    summary = template_importer.apply_project_template(db, seed_project, STARTER)
    assert summary == {
        "project_id": seed_project.project_id,
        "collections": ["authors", "posts"],
        "entries": 2,
        "relations": 1,
    }

    authors = get_collection_by_slug(db, seed_project.project_id, "authors")
    posts = get_collection_by_slug(db, seed_project.project_id, "posts")
    assert (authors.order, posts.order) == (1, 2)
    assert _field(db, posts, "author").options["relation"] == {"collection": authors.collection_id, "type": 1}

    post = content_service.list_entries(db, posts)[0]
    # 허용되지 않은 상태와 로케일은 기본값으로 바뀐다.
    assert post.status == "draft"
    assert post.published_at is None
    assert post.locale == "en"

    fields = EntrySerializer(db).serialize(post)["fields"]
    assert fields["title"] == "Hi"
    assert fields["author"]["fields"] == {"name": "Kim"}
    assert fields["seo"] == {"meta_title": "M"}

    kim = content_service.list_entries(db, authors)[0]
    assert kim.published_at is not None


def test_schema_only_apply_skips_demo_data(db, seed_project):
    summary = template_importer.apply_project_template(db, seed_project, STARTER, with_demo_data=False)
    assert summary["entries"] == 0
    assert db.query(ContentEntry).count() == 0
    assert db.query(Collection).count() == 2


def test_apply_appends_after_existing_collections(db, seed_project, blog_schema):
    document = {
        "slug": "extra",
        "name": "Extra",
        "collections": [{"name": "Pages", "slug": "pages", "fields": []}],
    }
    template_importer.apply_project_template(db, seed_project, document)
    pages = get_collection_by_slug(db, seed_project.project_id, "pages")
    assert pages.order == blog_schema["site"].order + 1


def test_slug_conflict_rolls_back_everything(db, seed_project, blog_schema):
    document = {
        "slug": "clash",
        "name": "Clash",
        "collections": [
            {"name": "Pages", "slug": "pages", "fields": [{"type": "text", "label": "Title", "name": "title"}]},
            {"name": "Posts", "slug": "posts", "fields": []},
        ],
    }
    with pytest.raises(HTTPException) as exc:
        template_importer.apply_project_template(db, seed_project, document)
    assert exc.value.status_code == 409
    assert db.query(Collection).filter(Collection.slug == "pages").count() == 0


def test_invalid_document_is_rejected(db, seed_project):
    with pytest.raises(HTTPException) as exc:
        template_importer.apply_project_template(db, seed_project, {"name": "No slug"})
    assert exc.value.status_code == 400


def test_exported_project_is_relocatable(db, seed_project, blog_schema, seed_asset):
    kim = make_entry(db, seed_project, blog_schema["authors"], {"name": "Kim", "avatar": [seed_asset.asset_id]})
    make_entry(db, seed_project, blog_schema["posts"], {
        "title": "Hello",
        "tags": ["a", "b"],
        "author": [kim.entry_id],
        "cover": [seed_asset.asset_id],
        "sections": [{"heading": "One", "body": "<p>1</p>"}],
    })
    document = template_builder.build_project_template(db, seed_project, include_content=True)

    copy = template_importer.create_project_from_template(db, document, name="Blog Copy")
    assert copy.project_id != seed_project.project_id
    assert copy.name == "Blog Copy"
    assert copy.default_locale == "en"
    assert copy.locales == ["en", "ko"]
    assert copy.public_api is False
    assert [row.slug for row in copy.live_collections] == ["authors", "posts", "site-settings"]

    new_authors = get_collection_by_slug(db, copy.project_id, "authors")
    new_posts = get_collection_by_slug(db, copy.project_id, "posts")
    assert new_authors.collection_id != blog_schema["authors"].collection_id
    assert _field(db, new_posts, "author").options["relation"]["collection"] == new_authors.collection_id
    assert _field(db, new_posts, "related_posts").options["relation"]["collection"] == new_posts.collection_id

    entries = content_service.list_entries(db, new_posts)
    assert len(entries) == 1
    fields = EntrySerializer(db).serialize(entries[0])["fields"]
    assert fields["title"] == "Hello"
    assert fields["tags"] == ["a", "b"]
    assert fields["author"]["fields"]["name"] == "Kim"
    assert fields["author"]["uuid"] != kim.uuid
    assert fields["sections"] == [{"heading": "One", "body": "<p>1</p>"}]
    # 미디어는 다른 프로젝트로 옮기지 않는다.
    assert "cover" not in fields

    # 원본 프로젝트는 그대로다.
    assert len(content_service.list_entries(db, blog_schema["posts"])) == 1


def test_round_trip_keeps_non_default_locales(db, seed_project, blog_schema):
    make_entry(db, seed_project, blog_schema["authors"], {"name": "김철수"}, locale="ko")
    make_entry(db, seed_project, blog_schema["authors"], {"name": "Kim"})
    document = template_builder.build_project_template(db, seed_project, include_content=True)

    copy = template_importer.create_project_from_template(db, document)
    assert copy.default_locale == "en"
    assert copy.locales == ["en", "ko"]

    new_authors = get_collection_by_slug(db, copy.project_id, "authors")
    rows = (
        db.query(ContentEntry)
        .filter(ContentEntry.collection_id == new_authors.collection_id)
        .order_by(ContentEntry.entry_id.asc())
        .all()
    )
    assert [row.locale for row in rows] == ["ko", "en"]
    assert EntrySerializer(db).serialize(rows[0])["fields"]["name"] == "김철수"


def test_collection_export_demo_data_applies_like_a_project_document(db, seed_project, blog_schema):
    make_entry(db, seed_project, blog_schema["site"], {"site_title": "My Site"})
    exported = template_builder.build_collection_template(db, blog_schema["site"], include_content=True)

    other = Project(name="Other", default_locale="en", locales=["en"])
    db.add(other)
    db.commit()
    db.refresh(other)
    summary = template_importer.apply_project_template(db, other, {
        "slug": "site",
        "name": "Site",
        "collections": [exported],
        "demo_data": exported["demo_data"],
    })
    assert summary["collections"] == ["site-settings"]

    site = get_collection_by_slug(db, other.project_id, "site-settings")
    (entry,) = content_service.list_entries(db, site)
    assert EntrySerializer(db).serialize(entry)["fields"] == {"site_title": "My Site"}


def test_create_project_uses_document_locale_settings(db):
    document = dict(STARTER, default_locale="ko", locales=["en"], public_api=True)
    project = template_importer.create_project_from_template(db, document, with_demo_data=False)
    assert project.name == "Starter"
    assert project.default_locale == "ko"
    assert project.locales == ["ko", "en"]
    assert project.public_api is True


def test_failed_create_leaves_no_project(db):
    document = {
        "slug": "broken",
        "name": "Broken",
        "collections": [{"name": "Posts", "slug": "posts", "fields": [{"type": "geo", "label": "Where", "name": "where"}]}],
    }
    with pytest.raises(HTTPException) as exc:
        template_importer.create_project_from_template(db, document)
    assert exc.value.status_code == 400
    assert db.query(Project).count() == 0


def test_collection_template_can_be_applied_to_another_project(db, seed_project, blog_schema):
    template = template_builder.save_collection_template(db, blog_schema["posts"], name="Article")

    other = Project(name="Other", default_locale="en", locales=["en"])
    db.add(other)
    db.commit()
    db.refresh(other)
    template_importer.apply_project_template(db, other, {
        "slug": "people",
        "name": "People",
        "collections": [{"name": "Authors", "slug": "authors", "fields": []}],
    })

    collection = template_importer.apply_collection_template(db, other, template)
    assert collection.slug == "article"
    assert collection.project_id == other.project_id

    nodes = resolve_field_tree(db, collection.collection_id)
    assert [node.name for node in nodes][:2] == ["title", "views"]
    seo = next(node for node in nodes if node.name == "seo")
    assert [child.name for child in seo.children] == ["meta_title", "meta_key"]
    authors = get_collection_by_slug(db, other.project_id, "authors")
    author = next(node.field for node in nodes if node.name == "author")
    assert author.options["relation"] == {"collection": authors.collection_id, "type": 1}


def test_collection_template_slug_override(db, seed_project, blog_schema):
    template = template_builder.save_collection_template(db, blog_schema["site"])
    collection = template_importer.apply_collection_template(
        db, seed_project, template, name="Footer", slug="footer-settings"
    )
    assert collection.name == "Footer"
    assert collection.slug == "footer-settings"
    assert collection.is_singleton is True
