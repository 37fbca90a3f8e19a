"""관리 API(컬렉션, 엔트리, 웹훅, 템플릿) 라우터의 권한과 흐름을 검증합니다."""

from headless_cms.models.project import Project
from tests.conftest import auth_headers, make_entry


def _base(project):
    return f"/api/projects/{project.project_id}"


def test_admin_creates_collection_and_fields(client, seed_users, seed_project):
    headers = auth_headers(client, "admin001")
    resp = client.post(f"{_base(seed_project)}/collections", json={"name": "Landing Pages"}, headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["slug"] == "landing-pages"
    assert data["order"] == 1

    resp = client.post(
        f"{_base(seed_project)}/collections/landing-pages/fields",
        json={"type": "text", "label": "Hero Title"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "hero_title"

    resp = client.get(f"{_base(seed_project)}/collections/landing-pages/schema", headers=headers)
    assert resp.status_code == 200
    assert [field["name"] for field in resp.json()["fields"]] == ["hero_title"]


def test_schema_changes_need_admin(client, seed_users, seed_project, blog_schema):
    for emp_id in ("editor001", "viewer001"):
        headers = auth_headers(client, emp_id)
        resp = client.post(f"{_base(seed_project)}/collections", json={"name": "Nope"}, headers=headers)
        assert resp.status_code == 403
        resp = client.post(
            f"{_base(seed_project)}/collections/posts/fields",
            json={"type": "text", "label": "Nope"},
            headers=headers,
        )
        assert resp.status_code == 403

    resp = client.get(f"{_base(seed_project)}/collections", headers=auth_headers(client, "viewer001"))
    assert resp.status_code == 200
    assert [row["slug"] for row in resp.json()] == ["authors", "posts", "site-settings"]


def test_unknown_project_is_404(client, seed_users):
    resp = client.get("/api/projects/9999/collections", headers=auth_headers(client, "admin001"))
    assert resp.status_code == 404


def test_entry_lifecycle(client, seed_users, seed_project, blog_schema):
    headers = auth_headers(client, "editor001")
    base = f"{_base(seed_project)}/collections/posts/entries"

    resp = client.post(base, json={"status": "draft", "fields": {"title": "Hello", "tags": ["a"]}}, headers=headers)
    assert resp.status_code == 200
    created = resp.json()
    entry_uuid = created["uuid"]
    assert created["fields"]["title"] == "Hello"
    assert created["published_at"] is None
    assert "created_at" in created

    resp = client.put(
        f"{base}/{entry_uuid}",
        json={"status": "published", "fields": {"title": "Hello again"}},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["fields"]["title"] == "Hello again"
    assert resp.json()["published_at"] is not None

    resp = client.get(base, params={"status": "published"}, headers=headers)
    assert [row["uuid"] for row in resp.json()] == [entry_uuid]

    resp = client.delete(f"{base}/{entry_uuid}", headers=headers)
    assert resp.status_code == 200
    assert client.get(f"{base}/{entry_uuid}", headers=headers).status_code == 404

    resp = client.post(f"{base}/{entry_uuid}/restore", headers=headers)
    assert resp.status_code == 200
    assert client.get(f"{base}/{entry_uuid}", headers=headers).status_code == 200

    resp = client.delete(f"{base}/{entry_uuid}/force", headers=headers)
    assert resp.status_code == 200
    assert client.get(base, headers=headers).json() == []


def test_entry_write_errors(client, seed_users, seed_project, blog_schema):
    headers = auth_headers(client, "admin001")
    base = f"{_base(seed_project)}/collections/posts/entries"

    resp = client.post(base, json={"fields": {"views": "many"}}, headers=headers)
    assert resp.status_code == 400

    resp = client.post(base, json={"locale": "fr", "fields": {}}, headers=headers)
    assert resp.status_code == 400

    viewer = auth_headers(client, "viewer001")
    resp = client.post(base, json={"fields": {"title": "Nope"}}, headers=viewer)
    assert resp.status_code == 403


def test_webhook_management(client, seed_users, seed_project):
    headers = auth_headers(client, "admin001")
    base = f"{_base(seed_project)}/webhooks"
    resp = client.post(
        base,
        json={"name": "Build", "url": "https://ci.example.com/hook", "events": ["content.published"]},
        headers=headers,
    )
    assert resp.status_code == 200
    hook = resp.json()
    assert hook["sources"] == ["cms", "api"]
    assert hook["collection_ids"] == []

    resp = client.post(base, json={"name": "Bad", "url": "https://x", "events": ["content.boom"]}, headers=headers)
    assert resp.status_code == 400

    assert len(client.get(base, headers=headers).json()) == 1
    resp = client.get(f"{base}/{hook['webhook_id']}/logs", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == []

    assert client.get(base, headers=auth_headers(client, "editor001")).status_code == 403


def test_export_and_import_project(client, db, seed_users, seed_project, blog_schema):
    author = make_entry(db, seed_project, blog_schema["authors"], {"name": "Kim"})
    make_entry(db, seed_project, blog_schema["posts"], {"title": "Hello", "author": [author.entry_id]})
    headers = auth_headers(client, "admin001")

    resp = client.get(f"{_base(seed_project)}/export", params={"include_content": True}, headers=headers)
    assert resp.status_code == 200
    document = resp.json()
    assert document["slug"] == "blog-site"
    assert document["has_demo_data"] is True

    resp = client.post("/api/projects/import", json={"name": "Imported", "document": document}, headers=headers)
    assert resp.status_code == 200
    imported = resp.json()
    assert imported["name"] == "Imported"

    project = db.query(Project).filter(Project.project_id == imported["project_id"]).one()
    assert [row.slug for row in project.live_collections] == ["authors", "posts", "site-settings"]

    resp = client.get(
        f"/api/projects/{imported['project_id']}/collections/posts/entries",
        headers=headers,
    )
    entries = resp.json()
    assert len(entries) == 1
    assert entries[0]["fields"]["author"]["fields"]["name"] == "Kim"

    resp = client.get(f"{_base(seed_project)}/collections/posts/export", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["slug"] == "posts"
    assert "demo_data" not in resp.json()


def test_import_requires_document_or_template(client, seed_users):
    resp = client.post("/api/projects/import", json={"name": "Empty"}, headers=auth_headers(client, "admin001"))
    assert resp.status_code == 400


def test_saved_templates(client, seed_users, seed_project, blog_schema):
    headers = auth_headers(client, "admin001")

    resp = client.post(f"{_base(seed_project)}/project-templates", json={"name": "Blog Starter"}, headers=headers)
    assert resp.status_code == 200
    saved = resp.json()
    assert saved["slug"] == "blog-site"
    assert saved["name"] == "Blog Starter"

    resp = client.get("/api/project-templates", headers=auth_headers(client, "viewer001"))
    assert [row["slug"] for row in resp.json()] == ["blog-site"]

    resp = client.post("/api/projects/import", json={"template_slug": "blog-site"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Blog Starter"

    resp = client.post(
        f"{_base(seed_project)}/collections/site-settings/collection-templates",
        json={"name": "Settings"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["is_singleton"] is True

    resp = client.get("/api/collection-templates", headers=auth_headers(client, "viewer001"))
    assert [row["slug"] for row in resp.json()] == ["settings"]

    resp = client.post(f"{_base(seed_project)}/collection-templates/settings/apply", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["slug"] == "settings"
    assert resp.json()["is_singleton"] is True

    resp = client.post(f"{_base(seed_project)}/collection-templates/settings/apply", headers=headers)
    assert resp.status_code == 409


def test_apply_template_to_existing_project(client, seed_users, seed_project):
    headers = auth_headers(client, "admin001")
    document = {
        "slug": "pages",
        "name": "Pages",
        "collections": [{"name": "Pages", "slug": "pages", "fields": [{"type": "text", "label": "Title", "name": "title"}]}],
    }
    resp = client.post(f"{_base(seed_project)}/apply-template", json={"document": document}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["collections"] == ["pages"]

    resp = client.post(f"{_base(seed_project)}/apply-template", json={"document": document}, headers=headers)
    assert resp.status_code == 409
