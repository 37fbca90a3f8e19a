from datetime import datetime

from headless_cms.schemas.content import EntryWrite
from headless_cms.services import content_service
from headless_cms.services.asset_service import format_size, resolve_asset
from headless_cms.services.entry_serializer import EntrySerializer, RelationBudget
from tests.conftest import make_entry


def test_output_shape_and_schema_order(db, seed_project, blog_schema):
    entry = make_entry(db, seed_project, blog_schema["posts"], {
        "payload": {"k": 1},
        "views": 5,
        "title": "Ordered",
    })
    data = EntrySerializer(db).serialize(entry)
    assert set(data) == {"uuid", "locale", "published_at", "fields"}
    assert data["uuid"] == entry.uuid
    assert data["locale"] == "en"
    assert list(data["fields"]) == ["title", "views", "payload", "seo", "sections"]

    with_timestamps = EntrySerializer(db).serialize(entry, include_timestamps=True)
    assert "created_at" in with_timestamps and "updated_at" in with_timestamps


def test_empty_groups(db, seed_project, blog_schema):
    entry = make_entry(db, seed_project, blog_schema["posts"], {"title": "No groups"})
    fields = EntrySerializer(db).serialize(entry)["fields"]
    assert fields["seo"] == {}
    assert fields["sections"] == []


def test_hidden_and_password_fields_never_appear(db, seed_project, blog_schema):
    author = make_entry(db, seed_project, blog_schema["authors"], {
        "name": "Kim",
        "secret": "hunter2",
        "internal_note": "do not publish",
    })
    post = make_entry(db, seed_project, blog_schema["posts"], {
        "title": "Post",
        "author": [author.entry_id],
        "seo": {"meta_title": "Visible", "meta_key": "hidden"},
    })

    fields = EntrySerializer(db).serialize(post)["fields"]
    assert fields["seo"] == {"meta_title": "Visible"}
    assert fields["author"]["fields"] == {"name": "Kim"}

    author_fields = EntrySerializer(db).serialize(author)["fields"]
    assert "secret" not in author_fields
    assert "internal_note" not in author_fields


def test_relation_multiplicity(db, seed_project, blog_schema):
    author = make_entry(db, seed_project, blog_schema["authors"], {"name": "Kim"})
    a = make_entry(db, seed_project, blog_schema["posts"], {"title": "A"})
    b = make_entry(db, seed_project, blog_schema["posts"], {"title": "B"})
    post = make_entry(db, seed_project, blog_schema["posts"], {
        "title": "Main",
        "author": [author.entry_id],
        "related_posts": [b.entry_id, a.entry_id],
    })

    fields = EntrySerializer(db).serialize(post)["fields"]
    assert isinstance(fields["author"], dict)
    assert fields["author"]["uuid"] == author.uuid
    assert [item["fields"]["title"] for item in fields["related_posts"]] == ["B", "A"]


def test_single_relation_takes_first_by_sort_order(db, seed_project, blog_schema):
    first = make_entry(db, seed_project, blog_schema["authors"], {"name": "First"})
    second = make_entry(db, seed_project, blog_schema["authors"], {"name": "Second"})
    post = make_entry(db, seed_project, blog_schema["posts"], {"author": [second.entry_id, first.entry_id]})
    assert EntrySerializer(db).serialize(post)["fields"]["author"]["fields"]["name"] == "Second"


def test_trashed_related_entries_are_dropped(db, seed_project, blog_schema):
    author = make_entry(db, seed_project, blog_schema["authors"], {"name": "Kim"})
    a = make_entry(db, seed_project, blog_schema["posts"], {"title": "A"})
    post = make_entry(db, seed_project, blog_schema["posts"], {
        "author": [author.entry_id],
        "related_posts": [a.entry_id],
    })
    content_service.trash_entry(db, seed_project, author)
    content_service.trash_entry(db, seed_project, a)

    db.expire_all()
    fields = EntrySerializer(db).serialize(post)["fields"]
    assert fields["author"] is None
    assert fields["related_posts"] is None


def test_relation_cycle_is_truncated(db, seed_project, blog_schema):
    a = make_entry(db, seed_project, blog_schema["posts"], {"title": "A"})
    b = make_entry(db, seed_project, blog_schema["posts"], {"title": "B", "related_posts": [a.entry_id]})
    a = content_service.update_entry(
        db, seed_project, blog_schema["posts"], a,
        EntryWrite(status="published", fields={"title": "A", "related_posts": [b.entry_id]}),
    )

    data = EntrySerializer(db, max_relation_depth=3).serialize(a)
    nested_b = data["fields"]["related_posts"][0]
    assert nested_b["fields"]["title"] == "B"
    assert nested_b["fields"]["related_posts"] == [{"uuid": a.uuid, "truncated": True}]


def test_self_relation_is_truncated(db, seed_project, blog_schema):
    a = make_entry(db, seed_project, blog_schema["posts"], {"title": "Self"})
    a = content_service.update_entry(
        db, seed_project, blog_schema["posts"], a,
        EntryWrite(status="published", fields={"title": "Self", "related_posts": [a.entry_id]}),
    )
    data = EntrySerializer(db).serialize(a)
    assert data["fields"]["related_posts"] == [{"uuid": a.uuid, "truncated": True}]


def test_depth_limit_and_shallow_mode(db, seed_project, blog_schema):
    c = make_entry(db, seed_project, blog_schema["posts"], {"title": "C"})
    b = make_entry(db, seed_project, blog_schema["posts"], {"title": "B", "related_posts": [c.entry_id]})
    a = make_entry(db, seed_project, blog_schema["posts"], {"title": "A", "related_posts": [b.entry_id]})

    one_level = EntrySerializer(db, max_relation_depth=1).serialize(a)
    nested_b = one_level["fields"]["related_posts"][0]
    assert nested_b["fields"]["title"] == "B"
    assert nested_b["fields"]["related_posts"] == [{"uuid": c.uuid, "truncated": True}]

    shallow = EntrySerializer(db, max_relation_depth=0).serialize(a)
    assert shallow["fields"]["related_posts"] == [{"uuid": b.uuid, "truncated": True}]


def test_relation_budget():
    budget = RelationBudget(depth=1, visited=frozenset({"root"}))
    assert budget.allows("child")
    assert not budget.allows("root")
    child = budget.descend("child")
    assert child.depth == 0
    assert not child.allows("other")
    assert child.visited == frozenset({"root", "child"})


def test_media_is_projected(db, seed_project, blog_schema, seed_asset):
    post = make_entry(db, seed_project, blog_schema["posts"], {"cover": [seed_asset.asset_id]})
    cover = EntrySerializer(db).serialize(post)["fields"]["cover"]
    assert cover == [{
        "uuid": seed_asset.uuid,
        "filename": "cover.jpg",
        "mime_type": "image/jpeg",
        "size": "1.5 MB",
        "url": "/storage/project-1/a1b2c3.jpg",
        "thumbnail_url": "/storage/thumbnails/project-1/a1b2c3.jpg",
        "metadata": {
            "alt": "Cover",
            "caption": "표지",
            "author": None,
            "copyright": None,
            "width": 1200,
            "height": 800,
        },
    }]


def test_non_image_asset_has_no_thumbnail(db, seed_asset):
    seed_asset.mime_type = "application/pdf"
    seed_asset.deleted_at = None
    db.commit()
    assert resolve_asset(seed_asset)["thumbnail_url"] is None


def test_trashed_asset_is_dropped(db, seed_project, blog_schema, seed_asset):
    post = make_entry(db, seed_project, blog_schema["posts"], {"cover": [seed_asset.asset_id]})
    seed_asset.deleted_at = datetime.utcnow()
    db.commit()
    db.expire_all()
    assert EntrySerializer(db).serialize(post)["fields"]["cover"] == []


def test_format_size():
    assert format_size(500) == "500 B"
    assert format_size(2048) == "2 KB"
    assert format_size(1572864) == "1.5 MB"
    assert format_size(None) == "0 B"
