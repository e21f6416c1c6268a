"""Tests for site directory resolution."""

import json
import os
from unittest.mock import patch

import pytest

import config


@pytest.fixture()
def settings_file(tmp_path):
    path = tmp_path / "settings.json"
    with patch.object(config, "_SETTINGS_FILE", str(path)):
        yield path


def test_override_wins(settings_file, tmp_path):
    settings_file.write_text(json.dumps({"site_dir": "/somewhere/else"}))
    assert config.get_site_dir(str(tmp_path)) == str(tmp_path)


def test_setting_used_without_override(settings_file, tmp_path):
    blog = tmp_path / "blog"
    settings_file.write_text(json.dumps({"site_dir": str(blog)}))
    assert config.get_site_dir() == str(blog)


def test_falls_back_to_cwd(settings_file):
    assert config.get_site_dir() == os.getcwd()


def test_corrupt_settings_fall_back_to_cwd(settings_file):
    settings_file.write_text("{oops")
    assert config.get_site_dir() == os.getcwd()
