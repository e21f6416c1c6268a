"""Settings persistence for Blog Lint (~/.config/blog-lint/settings.json).

Saved values are merged over in-code defaults section by section, so a file
that only sets `lint.known_layouts` still yields a complete settings dict.
"""

import copy
import json
import os

_SETTINGS_DIR = os.path.expanduser("~/.config/blog-lint")
_SETTINGS_FILE = os.path.join(_SETTINGS_DIR, "settings.json")

DEFAULT_LINT_SETTINGS = {
    "known_layouts": [],  # empty: any layout is accepted
    "require_utc_offset": True,
    "check_filename_date": True,
    "disabled_rules": [],
}

_DEFAULTS = {
    "site_dir": None,
    "lint": DEFAULT_LINT_SETTINGS,
    "background_lint": {
        "enabled": False,
        "interval_minutes": 30,
    },
    "posts": {
        "preview_length": 120,
    },
}


def default_settings() -> dict:
    return copy.deepcopy(_DEFAULTS)


def load_settings() -> dict:
    """Load settings.json merged with defaults. Missing or corrupt file -> defaults."""
    try:
        with open(_SETTINGS_FILE) as f:
            saved = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        saved = {}
    if not isinstance(saved, dict):
        saved = {}

    settings = {}
    for key, default_val in _DEFAULTS.items():
        if isinstance(default_val, dict):
            section = saved.get(key, {})
            if not isinstance(section, dict):
                section = {}
            settings[key] = {**copy.deepcopy(default_val), **section}
        else:
            settings[key] = saved.get(key, default_val)
    return settings


def save_settings(settings: dict) -> None:
    """Persist known keys only."""
    os.makedirs(os.path.dirname(_SETTINGS_FILE), exist_ok=True)
    data = {key: settings[key] for key in _DEFAULTS if key in settings}
    with open(_SETTINGS_FILE, "w") as f:
        json.dump(data, f, indent=2)
