#!/usr/bin/env python3
"""Blog Lint CLI: lint a blog checkout and exit non-zero when errors are found."""

import argparse
import json
import logging
import os
import sys

from config import get_site_dir
from services.lint import RULES, lint_site
from services.settings import load_settings

log = logging.getLogger("blog-lint")


def _site_relative(path: str, site_dir: str) -> str | None:
    """Map a CLI path (cwd-relative, absolute or site-relative) into the site."""
    candidate = os.path.abspath(path)
    if not os.path.exists(candidate):
        candidate = os.path.abspath(os.path.join(site_dir, path))
    rel = os.path.relpath(candidate, site_dir)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return None
    return "" if rel == os.curdir else rel.replace(os.sep, "/")


def format_text(report: dict) -> str:
    lines = []
    for result in report["results"]:
        for issue in result["issues"]:
            lines.append(
                f"{result['path']}:{issue['line'] or 1}: "
                f"{issue['severity']} [{issue['rule']}] {issue['message']}"
            )
    lines.append(
        f"{report['files']} files checked: "
        f"{report['errors']} errors, {report['warnings']} warnings"
    )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog-lint",
        description="Check blog posts for front-matter, date and link-reference mistakes.",
    )
    parser.add_argument(
        "paths", nargs="*", help="Documents or folders to lint (default: whole site)"
    )
    parser.add_argument("--site", default=None, help="Blog checkout (default: settings or cwd)")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="Output format")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as failures")
    parser.add_argument(
        "--disable", action="append", default=[], metavar="RULE", help="Skip a rule (repeatable)"
    )
    parser.add_argument("--list-rules", action="store_true", help="Print the rules and exit")
    parser.add_argument("--record", action="store_true", help="Store the run in lint history")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    """Entry point for `blog-lint` CLI command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_rules:
        for name, description in RULES.items():
            print(f"{name:22} {description}")
        return 0

    unknown = sorted(set(args.disable) - set(RULES))
    if unknown:
        parser.error(f"unknown rule(s): {', '.join(unknown)}")

    site_dir = get_site_dir(args.site)
    if not os.path.isdir(site_dir):
        parser.error(f"site directory not found: {site_dir}")

    paths = []
    for path in args.paths:
        rel = _site_relative(path, site_dir)
        if rel is None:
            parser.error(f"{path} is outside the site directory {site_dir}")
        paths.append(rel)
    if paths and args.record:
        parser.error("--record stores site-wide runs; drop the paths to record")

    settings = load_settings()["lint"]
    disabled = set(settings.get("disabled_rules") or []) | set(args.disable)
    settings["disabled_rules"] = sorted(disabled)

    log.debug("Linting %s", site_dir)
    report = lint_site(site_dir, settings=settings, paths=paths or None)

    if args.record:
        from services.history import record_run

        record_run(report)

    if args.format == "json":
        print(json.dumps(report, indent=2))
    else:
        print(format_text(report))

    if report["errors"] or (args.strict and report["warnings"]):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
