#!/usr/bin/env python3
"""Blog Lint Server: REST API over a blog checkout + background lint runs."""

import argparse
import logging

from flask import Flask, current_app, jsonify

from config import PORT, SITE_DIR

app = Flask(__name__)
app.config["SITE_DIR"] = SITE_DIR

from routes.lint import bp as lint_bp  # noqa: E402
from routes.posts import bp as posts_bp  # noqa: E402
from routes.settings import bp as settings_bp  # noqa: E402

app.register_blueprint(posts_bp)
app.register_blueprint(lint_bp)
app.register_blueprint(settings_bp)

from services.scheduler import linter  # noqa: E402
from services.settings import load_settings  # noqa: E402

_settings = load_settings()
linter.configure(
    _settings["background_lint"]["enabled"],
    _settings["background_lint"]["interval_minutes"],
    site_dir=SITE_DIR,
)


@app.route("/api/health")
def health():
    return jsonify({"ok": True, "site": current_app.config["SITE_DIR"]})


def main():
    """Entry point for `blog-lint-server` CLI command."""
    from config import get_site_dir

    parser = argparse.ArgumentParser(description="Blog Lint Server")
    parser.add_argument(
        "--port", type=int, default=PORT, help=f"Port to listen on (default: {PORT})"
    )
    parser.add_argument(
        "--site", default=None, help="Blog checkout to serve (default: settings or cwd)"
    )
    cli_args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    site_dir = get_site_dir(cli_args.site)
    app.config["SITE_DIR"] = site_dir
    linter.configure(
        _settings["background_lint"]["enabled"],
        _settings["background_lint"]["interval_minutes"],
        site_dir=site_dir,
    )

    print("\n  Blog Lint Server v0.1.0")
    print(f"  Port: {cli_args.port}")
    print(f"  Site: {site_dir}")
    bl = _settings["background_lint"]
    schedule = f"every {bl['interval_minutes']} min" if bl["enabled"] else "disabled"
    print(f"  Background lint: {schedule}\n")

    app.run(port=cli_args.port, threaded=True)


if __name__ == "__main__":
    main()
