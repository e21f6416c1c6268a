"""Lint endpoints: whole-site and single-document reports, background runs, history."""

from flask import Blueprint, current_app, jsonify, request

from config import SITE_DIR
from services.history import recent_runs
from services.lint import RULES, lint_document, lint_site
from services.scheduler import linter
from services.settings import load_settings

bp = Blueprint("lint", __name__)


def _site_dir() -> str:
    return current_app.config.get("SITE_DIR") or SITE_DIR


@bp.route("/api/lint")
def lint_all():
    """Lint the whole site, or only the documents/folders given as ?path=..."""
    paths = [p for p in request.args.getlist("path") if p.strip()]
    report = lint_site(_site_dir(), settings=load_settings()["lint"], paths=paths or None)
    if request.args.get("failing") in ("1", "true", "yes"):
        report["results"] = [r for r in report["results"] if r["issues"]]
    return jsonify(report)


@bp.route("/api/lint/file/<path:rel_path>")
def lint_file(rel_path):
    """Issues for one document."""
    result = lint_document(rel_path, site_dir=_site_dir(), settings=load_settings()["lint"])
    return jsonify(result)


@bp.route("/api/lint/rules")
def lint_rules():
    return jsonify([{"rule": name, "description": desc} for name, desc in RULES.items()])


@bp.route("/api/lint/run", methods=["POST"])
def lint_run():
    """Kick off a background site lint; poll /api/lint/status for the outcome."""
    linter.run_now()
    return jsonify({"ok": True, "message": "Lint started"}), 202


@bp.route("/api/lint/status")
def lint_status():
    status = linter.status
    report = linter.last_report
    if report and request.args.get("full") in ("1", "true", "yes"):
        status["report"] = report
    return jsonify(status)


@bp.route("/api/lint/history")
def lint_history():
    """Recent site-wide runs, newest first."""
    try:
        limit = int(request.args.get("limit", 20))
    except (ValueError, TypeError):
        return jsonify({"error": "limit must be an integer"}), 400
    if not 1 <= limit <= 500:
        return jsonify({"error": "limit must be between 1 and 500"}), 400
    return jsonify({"runs": recent_runs(limit, site=_site_dir())})
