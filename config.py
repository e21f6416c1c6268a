"""Shared constants and path configuration for Blog Lint."""

import json
import os

_SETTINGS_FILE = os.path.expanduser("~/.config/blog-lint/settings.json")


def _read_setting(*keys, default=None):
    """Read a nested setting from the global settings file."""
    try:
        with open(_SETTINGS_FILE) as f:
            data = json.load(f)
        for k in keys:
            data = data[k]
        return data
    except (FileNotFoundError, json.JSONDecodeError, KeyError, TypeError):
        return default


def get_site_dir(override=None):
    """Resolve the blog checkout to lint: explicit override, settings, then cwd."""
    if override:
        return os.path.abspath(os.path.expanduser(override))
    site_dir = _read_setting("site_dir", default=None)
    if site_dir:
        return os.path.abspath(os.path.expanduser(site_dir))
    return os.getcwd()


SITE_DIR = get_site_dir()
POSTS_SUBDIR = "_posts"
DRAFTS_SUBDIR = "_drafts"
MARKDOWN_EXTENSIONS = (".md", ".markdown")
PORT = 4343
