"""Lint rules for blog documents: front matter, dates and link references."""

import logging
import os
import re
import time
from datetime import UTC, datetime

from config import SITE_DIR
from services.links import extract_definitions, extract_post_urls, extract_references, find_post
from services.posts import _safe_path, classify, iter_documents, split_frontmatter
from services.schema import field_issues, filename_date, parse_post_date
from services.settings import DEFAULT_LINT_SETTINGS

log = logging.getLogger(__name__)

RULES = {
    "file-unreadable": "File is missing or cannot be decoded as UTF-8",
    "frontmatter-missing": "Document has no front-matter block",
    "frontmatter-unclosed": "Front-matter block is never closed",
    "frontmatter-invalid": "Front matter is not a YAML mapping",
    "field-missing": "Required front-matter field is absent",
    "field-type": "Front-matter field has the wrong type",
    "layout-unknown": "Layout is not in the configured vocabulary",
    "date-invalid": "Date does not parse as a timestamp",
    "date-offset": "Date has no UTC offset",
    "date-filename": "Filename date is missing or disagrees with the date field",
    "link-undefined": "Reference label has no definition",
    "link-unused": "Link definition is never referenced",
    "link-duplicate": "Link label is defined more than once",
    "post-url-missing": "post_url tag points at a post that does not exist",
}

_REFERENCE_FORMS = ("full", "collapsed", "footnote")


def _issue(rule: str, severity: str, message: str, line: int | None = None) -> dict:
    return {"rule": rule, "severity": severity, "message": message, "line": line}


def _field_line(lines: list[str], field: str, end: int) -> int | None:
    """1-based line of `field:` inside the front-matter block (lines[1:end])."""
    pattern = re.compile(rf"^{re.escape(field)}\s*:")
    for i in range(1, min(end, len(lines))):
        if pattern.match(lines[i]):
            return i + 1
    return None


def _check_frontmatter(rel_path: str, kind: str, content: str, fm, settings: dict) -> list[dict]:
    issues = []
    lines = content.split("\n")
    fm_end = fm.body_line - 2  # index of the closing ---

    for fi in field_issues(fm.data, kind, settings.get("known_layouts")):
        line = _field_line(lines, fi["field"], fm_end) if fi["rule"] != "field-missing" else None
        issues.append(_issue(fi["rule"], fi["severity"], fi["message"], line))

    value = fm.data.get("date")
    parsed = None
    if isinstance(value, str):
        date_line = _field_line(lines, "date", fm_end)
        parsed = parse_post_date(value)
        if parsed is None:
            issues.append(
                _issue(
                    "date-invalid", "error", f"Date {value!r} is not a valid timestamp", date_line
                )
            )
        elif parsed.tzinfo is None and settings.get("require_utc_offset", True):
            issues.append(
                _issue(
                    "date-offset",
                    "warning",
                    f"Date {value!r} has no UTC offset (e.g. '+0000')",
                    date_line,
                )
            )

    if kind == "post" and settings.get("check_filename_date", True):
        name = os.path.basename(rel_path)
        fdate = filename_date(name)
        if fdate is None:
            issues.append(
                _issue(
                    "date-filename",
                    "error",
                    f"Post filename {name!r} must start with a YYYY-MM-DD- date",
                )
            )
        elif parsed is not None and parsed.date() != fdate:
            issues.append(
                _issue(
                    "date-filename",
                    "warning",
                    f"Filename date {fdate.isoformat()} differs from date field "
                    f"{parsed.date().isoformat()}",
                    _field_line(lines, "date", fm_end),
                )
            )

    return issues


def _check_links(body: str, offset: int, site_dir: str) -> list[dict]:
    issues = []
    definitions, duplicates = extract_definitions(body)
    references = extract_references(body)

    used = set()
    for ref in references:
        if ref["label"] in definitions:
            used.add(ref["label"])
            continue
        if ref["form"] not in _REFERENCE_FORMS:
            continue
        if ref["form"] == "footnote":
            message = f"Footnote [{ref['label']}] has no definition"
        else:
            message = f"Link reference [{ref['label']}] has no definition"
        issues.append(_issue("link-undefined", "error", message, ref["line"] + offset))

    for label, definition in definitions.items():
        if label not in used:
            issues.append(
                _issue(
                    "link-unused",
                    "warning",
                    f"Link definition [{label}] is never referenced",
                    definition["line"] + offset,
                )
            )

    for dup in duplicates:
        issues.append(
            _issue(
                "link-duplicate",
                "warning",
                f"Link label [{dup['label']}] already defined on line {dup['first_line'] + offset}",
                dup["line"] + offset,
            )
        )

    for ref in extract_post_urls(body):
        if find_post(ref["target"], site_dir=site_dir) is None:
            issues.append(
                _issue(
                    "post-url-missing",
                    "error",
                    f"post_url target {ref['target']!r} does not match any post",
                    ref["line"] + offset,
                )
            )

    return issues


def _summarize(rel_path: str, kind: str, issues: list[dict], disabled) -> dict:
    issues = [i for i in issues if i["rule"] not in disabled]
    issues.sort(key=lambda i: (i["line"] or 0, i["rule"]))
    errors = sum(1 for i in issues if i["severity"] == "error")
    return {
        "path": rel_path,
        "kind": kind,
        "issues": issues,
        "errors": errors,
        "warnings": len(issues) - errors,
        "passed": errors == 0,
    }


def lint_document(rel_path: str, site_dir: str = None, settings: dict | None = None) -> dict:
    """Lint one document. Returns {path, kind, issues, errors, warnings, passed}."""
    site_dir = site_dir or SITE_DIR
    settings = {**DEFAULT_LINT_SETTINGS, **(settings or {})}
    disabled = set(settings.get("disabled_rules") or [])
    kind = classify(rel_path)

    abs_path, err = _safe_path(rel_path, site_dir)
    if err:
        return _summarize(rel_path, kind, [_issue("file-unreadable", "error", err)], disabled)
    try:
        with open(abs_path, encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        return _summarize(
            rel_path, kind, [_issue("file-unreadable", "error", "File not found")], disabled
        )
    except (OSError, UnicodeDecodeError) as e:
        return _summarize(rel_path, kind, [_issue("file-unreadable", "error", str(e))], disabled)

    issues = []
    fm = split_frontmatter(content)
    if fm.error:
        # Pages without front matter are static files; nothing to check up top.
        if not (kind == "page" and fm.error_rule == "frontmatter-missing"):
            issues.append(_issue(fm.error_rule, "error", fm.error, fm.error_line))
    else:
        issues.extend(_check_frontmatter(rel_path, kind, content, fm, settings))

    issues.extend(_check_links(fm.body, fm.body_line - 1, site_dir))

    result = _summarize(rel_path, kind, issues, disabled)
    log.debug("%s: %d errors, %d warnings", rel_path, result["errors"], result["warnings"])
    return result


def _expand_paths(paths: list[str], site_dir: str) -> list[str]:
    """Explicit files stay as given; directories expand to the documents beneath them."""
    documents = iter_documents(site_dir)
    selected = []
    for path in paths:
        rel = path.strip("/").replace(os.sep, "/")
        if os.path.isdir(os.path.join(site_dir, rel)):
            prefix = "" if rel in ("", ".") else rel + "/"
            matches = [d for d in documents if d.startswith(prefix)]
        else:
            matches = [rel]
        for match in matches:
            if match not in selected:
                selected.append(match)
    return selected


def lint_site(site_dir: str = None, settings: dict | None = None, paths=None) -> dict:
    """Lint every document (or just `paths`) and return a report with totals."""
    site_dir = site_dir or SITE_DIR
    started = time.monotonic()
    started_at = datetime.now(UTC).isoformat()

    targets = _expand_paths(paths, site_dir) if paths else iter_documents(site_dir)
    results = [lint_document(rel, site_dir=site_dir, settings=settings) for rel in targets]

    errors = sum(r["errors"] for r in results)
    warnings = sum(r["warnings"] for r in results)
    report = {
        "site": site_dir,
        "started_at": started_at,
        "duration_ms": int((time.monotonic() - started) * 1000),
        "files": len(results),
        "errors": errors,
        "warnings": warnings,
        "passed": errors == 0,
        "results": results,
    }
    log.info(
        "Linted %d files in %s: %d errors, %d warnings", len(results), site_dir, errors, warnings
    )
    return report
