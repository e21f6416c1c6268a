"""Tests for settings persistence and the settings API."""

import json
from unittest.mock import MagicMock, patch

import pytest

import services.settings as settings_mod
from app import app

# ---------------------------------------------------------------------------
# load_settings / save_settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings_file(tmp_path):
    path = tmp_path / "blog-lint" / "settings.json"
    with patch.object(settings_mod, "_SETTINGS_FILE", str(path)):
        yield path


def test_load_defaults_when_missing(settings_file):
    settings = settings_mod.load_settings()
    assert settings["lint"]["require_utc_offset"] is True
    assert settings["background_lint"]["enabled"] is False
    assert settings["posts"]["preview_length"] == 120
    assert settings["site_dir"] is None


def test_load_merges_partial_sections(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(json.dumps({"lint": {"known_layouts": ["post"]}}))
    settings = settings_mod.load_settings()
    assert settings["lint"]["known_layouts"] == ["post"]
    assert settings["lint"]["check_filename_date"] is True


def test_load_corrupt_file(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text("{not json")
    assert settings_mod.load_settings() == settings_mod.default_settings()


def test_defaults_are_not_shared(settings_file):
    first = settings_mod.load_settings()
    first["lint"]["disabled_rules"].append("date-offset")
    assert settings_mod.load_settings()["lint"]["disabled_rules"] == []


def test_save_drops_unknown_keys(settings_file):
    settings = settings_mod.load_settings()
    settings["bogus"] = 1
    settings_mod.save_settings(settings)
    saved = json.loads(settings_file.read_text())
    assert "bogus" not in saved
    assert saved["lint"]["require_utc_offset"] is True


# ---------------------------------------------------------------------------
# /api/settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(tmp_path):
    """Flask test client with settings and linter mocked to use a temp file."""
    settings_path = tmp_path / "settings.json"

    def fake_load():
        try:
            saved = json.loads(settings_path.read_text())
        except FileNotFoundError:
            saved = {}
        merged = settings_mod.default_settings()
        for key, value in saved.items():
            if isinstance(value, dict):
                merged[key].update(value)
            else:
                merged[key] = value
        return merged

    def fake_save(s):
        settings_path.write_text(json.dumps(s))

    mock_linter = MagicMock()
    mock_linter.status = {"last_run": None}

    with (
        patch("routes.settings.load_settings", side_effect=fake_load),
        patch("routes.settings.save_settings", side_effect=fake_save),
        patch("routes.settings.linter", mock_linter),
    ):
        app.config["TESTING"] = True
        app.config["SITE_DIR"] = str(tmp_path)
        yield app.test_client(), mock_linter


def test_get_settings(client):
    c, _ = client
    resp = c.get("/api/settings")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["lint"]["require_utc_offset"] is True
    assert data["background_lint"]["last_run"] is None


def test_post_lint_settings(client):
    c, _ = client
    resp = c.post(
        "/api/settings",
        json={"lint": {"known_layouts": ["post", "page"], "disabled_rules": ["date-offset"]}},
    )
    assert resp.status_code == 200
    data = c.get("/api/settings").get_json()
    assert data["lint"]["known_layouts"] == ["post", "page"]
    assert data["lint"]["disabled_rules"] == ["date-offset"]


def test_post_unknown_rule_rejected(client):
    c, _ = client
    resp = c.post("/api/settings", json={"lint": {"disabled_rules": ["no-such-rule"]}})
    assert resp.status_code == 400
    assert "no-such-rule" in resp.get_json()["error"]


def test_post_known_layouts_type(client):
    c, _ = client
    resp = c.post("/api/settings", json={"lint": {"known_layouts": "post"}})
    assert resp.status_code == 400


def test_post_background_lint_reconfigures(client):
    c, mock_linter = client
    resp = c.post(
        "/api/settings", json={"background_lint": {"enabled": True, "interval_minutes": 5}}
    )
    assert resp.status_code == 200
    args, _ = mock_linter.configure.call_args
    assert args == (True, 5)


def test_post_bad_interval(client):
    c, _ = client
    for bad in (0, -1, "10", True):
        resp = c.post("/api/settings", json={"background_lint": {"interval_minutes": bad}})
        assert resp.status_code == 400, bad


def test_post_preview_length_bounds(client):
    c, _ = client
    assert c.post("/api/settings", json={"posts": {"preview_length": 5}}).status_code == 400
    assert c.post("/api/settings", json={"posts": {"preview_length": 200}}).status_code == 200


def test_post_site_dir(client, tmp_path):
    c, mock_linter = client
    blog = tmp_path / "blog"
    blog.mkdir()
    resp = c.post("/api/settings", json={"site_dir": str(blog)})
    assert resp.status_code == 200
    assert app.config["SITE_DIR"] == str(blog)
    assert mock_linter.configure.call_args.kwargs["site_dir"] == str(blog)


def test_post_site_dir_missing(client, tmp_path):
    c, _ = client
    resp = c.post("/api/settings", json={"site_dir": str(tmp_path / "nope")})
    assert resp.status_code == 400


def test_post_section_must_be_object(client):
    c, _ = client
    assert c.post("/api/settings", json={"lint": []}).status_code == 400
