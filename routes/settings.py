"""Settings API: lint options, background lint schedule, listing preferences."""

import os

from flask import Blueprint, current_app, jsonify, request

from services.lint import RULES
from services.scheduler import linter
from services.settings import load_settings, save_settings

bp = Blueprint("settings", __name__)


@bp.route("/api/settings", methods=["GET"])
def get_settings():
    """Return merged settings + live background lint status."""
    settings = load_settings()
    settings["background_lint"]["last_run"] = linter.status["last_run"]
    return jsonify(settings)


@bp.route("/api/settings", methods=["POST"])
def update_settings():
    """Persist settings and apply the background lint schedule."""
    data = request.get_json(silent=True) or {}
    lint_data = data.get("lint", {})
    bl = data.get("background_lint", {})
    posts_data = data.get("posts", {})

    if not isinstance(lint_data, dict):
        return jsonify({"error": "lint must be an object"}), 400
    if not isinstance(bl, dict):
        return jsonify({"error": "background_lint must be an object"}), 400
    if not isinstance(posts_data, dict):
        return jsonify({"error": "posts must be an object"}), 400

    settings = load_settings()

    # --- site ---
    if "site_dir" in data:
        site_dir = data["site_dir"]
        if site_dir is not None:
            if not isinstance(site_dir, str) or not os.path.isdir(os.path.expanduser(site_dir)):
                return jsonify({"error": "site_dir must be an existing directory"}), 400
        settings["site_dir"] = site_dir

    # --- lint fields ---
    if "known_layouts" in lint_data:
        layouts = lint_data["known_layouts"]
        if not isinstance(layouts, list) or not all(isinstance(x, str) for x in layouts):
            return jsonify({"error": "known_layouts must be a list of strings"}), 400
        settings["lint"]["known_layouts"] = layouts
    if "require_utc_offset" in lint_data:
        settings["lint"]["require_utc_offset"] = bool(lint_data["require_utc_offset"])
    if "check_filename_date" in lint_data:
        settings["lint"]["check_filename_date"] = bool(lint_data["check_filename_date"])
    if "disabled_rules" in lint_data:
        disabled = lint_data["disabled_rules"]
        if not isinstance(disabled, list) or not all(isinstance(r, str) for r in disabled):
            return jsonify({"error": "disabled_rules must be a list of strings"}), 400
        unknown = sorted(set(disabled) - set(RULES))
        if unknown:
            return jsonify({"error": f"Unknown rules: {', '.join(unknown)}"}), 400
        settings["lint"]["disabled_rules"] = disabled

    # --- background_lint fields ---
    if "enabled" in bl:
        settings["background_lint"]["enabled"] = bool(bl["enabled"])
    if "interval_minutes" in bl:
        minutes = bl["interval_minutes"]
        if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes < 1:
            return jsonify({"error": "interval_minutes must be a positive integer"}), 400
        settings["background_lint"]["interval_minutes"] = minutes

    # --- posts fields ---
    if "preview_length" in posts_data:
        length = posts_data["preview_length"]
        if not isinstance(length, int) or isinstance(length, bool) or not (10 <= length <= 1000):
            return jsonify({"error": "preview_length must be an integer between 10 and 1000"}), 400
        settings["posts"]["preview_length"] = length

    save_settings(settings)
    if data.get("site_dir"):
        current_app.config["SITE_DIR"] = os.path.abspath(os.path.expanduser(data["site_dir"]))
    linter.configure(
        settings["background_lint"]["enabled"],
        settings["background_lint"]["interval_minutes"],
        site_dir=current_app.config.get("SITE_DIR"),
    )

    settings["background_lint"]["last_run"] = linter.status["last_run"]
    return jsonify(settings)
