"""Integration tests for post API routes."""

from unittest.mock import patch

import pytest

from app import app

# ---------------------------------------------------------------------------
# Shared sample content
# ---------------------------------------------------------------------------

SAMPLE_POST = (
    "---\nlayout: post\ntitle: Hyperapp in 1kb\ndate: 2018-02-01 12:00:00 +0000\n"
    "categories: javascript hyperapp\n---\n\nA tiny framework.\n"
)

FAKE_SETTINGS = {
    "site_dir": None,
    "lint": {
        "known_layouts": ["post", "page"],
        "require_utc_offset": True,
        "check_filename_date": True,
        "disabled_rules": [],
    },
    "background_lint": {"enabled": False, "interval_minutes": 30},
    "posts": {"preview_length": 120},
}


@pytest.fixture()
def client(tmp_path):
    """Flask test client pointed at a temp blog checkout with settings patched."""
    (tmp_path / "_posts").mkdir()
    with patch("routes.posts.load_settings", return_value=FAKE_SETTINGS):
        app.config["TESTING"] = True
        app.config["SITE_DIR"] = str(tmp_path)
        yield tmp_path, app.test_client()


# ---------------------------------------------------------------------------
# GET /api/posts
# ---------------------------------------------------------------------------


def test_tree_lists_root_and_folders(client):
    site, c = client
    (site / "_posts" / "2018-02-01-hyperapp.md").write_text(SAMPLE_POST)
    (site / "_posts" / "haskell").mkdir()
    (site / "_posts" / "haskell" / "2017-03-12-parsers.md").write_text(SAMPLE_POST)

    resp = c.get("/api/posts")
    assert resp.status_code == 200
    tree = resp.get_json()
    assert [n["name"] for n in tree] == ["(root)", "haskell"]
    assert tree[0]["post_count"] == 1
    assert tree[1]["post_count"] == 1


def test_tree_without_posts_dir(client):
    site, c = client
    (site / "_posts").rmdir()
    resp = c.get("/api/posts")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# GET /api/posts/folder
# ---------------------------------------------------------------------------


def test_folder_listing(client):
    site, c = client
    (site / "_posts" / "2018-02-01-hyperapp.md").write_text(SAMPLE_POST)
    resp = c.get("/api/posts/folder/")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["folder"] == "(root)"
    assert data["posts"][0]["title"] == "Hyperapp in 1kb"
    assert data["posts"][0]["categories"] == ["javascript", "hyperapp"]


def test_folder_not_found(client):
    _, c = client
    assert c.get("/api/posts/folder/missing").status_code == 404


# ---------------------------------------------------------------------------
# GET/POST /api/post/<path>
# ---------------------------------------------------------------------------


def test_get_post(client):
    site, c = client
    (site / "_posts" / "2018-02-01-hyperapp.md").write_text(SAMPLE_POST)
    resp = c.get("/api/post/_posts/2018-02-01-hyperapp.md")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["frontmatter"]["title"] == "Hyperapp in 1kb"
    assert data["kind"] == "post"


def test_get_post_not_found(client):
    _, c = client
    assert c.get("/api/post/_posts/nope.md").status_code == 404


def test_write_post(client):
    site, c = client
    resp = c.post("/api/post/_posts/2018-02-01-hyperapp.md", json={"content": SAMPLE_POST})
    assert resp.status_code == 200
    assert (site / "_posts" / "2018-02-01-hyperapp.md").read_text() == SAMPLE_POST


def test_write_post_invalid(client):
    _, c = client
    resp = c.post("/api/post/_posts/2018-02-01-x.md", json={"content": "---\nlayout: post\n---\n"})
    assert resp.status_code == 400
    assert "validation_errors" in resp.get_json()


def test_write_post_non_string(client):
    _, c = client
    resp = c.post("/api/post/_posts/2018-02-01-x.md", json={"content": 42})
    assert resp.status_code == 400


def test_write_post_non_markdown(client):
    site, c = client
    resp = c.post("/api/post/_config.yml", json={"content": "title: x\n"})
    assert resp.status_code == 400
    assert not (site / "_config.yml").exists()


# ---------------------------------------------------------------------------
# POST /api/posts/new
# ---------------------------------------------------------------------------


def test_new_post(client):
    site, c = client
    resp = c.post(
        "/api/posts/new",
        json={
            "title": "Logging done right",
            "date": "2018-05-01 08:00:00 +0200",
            "categories": ["logging"],
        },
    )
    assert resp.status_code == 201
    assert resp.get_json()["path"] == "_posts/2018-05-01-logging-done-right.md"
    assert (site / "_posts" / "2018-05-01-logging-done-right.md").exists()


def test_new_post_conflict(client):
    _, c = client
    payload = {"title": "Twice", "date": "2018-05-01 08:00:00 +0200"}
    assert c.post("/api/posts/new", json=payload).status_code == 201
    assert c.post("/api/posts/new", json=payload).status_code == 409


def test_new_post_requires_title(client):
    _, c = client
    assert c.post("/api/posts/new", json={}).status_code == 400


def test_new_post_bad_date(client):
    _, c = client
    resp = c.post("/api/posts/new", json={"title": "X", "date": "soon"})
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# links / resolve
# ---------------------------------------------------------------------------


def test_links_and_resolve(client):
    site, c = client
    (site / "_posts" / "2018-02-01-hyperapp.md").write_text(SAMPLE_POST)
    (site / "_posts" / "2018-03-01-more.md").write_text(
        SAMPLE_POST.replace("2018-02-01", "2018-03-01")
        + "\nSee [part one]({% post_url 2018-02-01-hyperapp %}).\n"
    )

    resp = c.get("/api/posts/links/_posts/2018-02-01-hyperapp.md")
    assert resp.get_json()["backlinks"] == ["_posts/2018-03-01-more.md"]

    resp = c.get("/api/posts/resolve?name=2018-02-01-hyperapp")
    assert resp.get_json() == {"path": "_posts/2018-02-01-hyperapp.md"}


def test_resolve_missing(client):
    _, c = client
    assert c.get("/api/posts/resolve?name=nope").status_code == 404
    assert c.get("/api/posts/resolve").status_code == 400


def test_health(client):
    site, c = client
    assert c.get("/api/health").get_json() == {"ok": True, "site": str(site)}
