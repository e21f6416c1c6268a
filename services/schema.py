"""Post front-matter schema, date parsing and validation."""

import re
import unicodedata
from datetime import date, datetime, timedelta, timezone

# kinds: post | draft | page
POST_SCHEMA = {
    "layout":     {"type": str,          "required": ("post", "draft", "page")},
    "title":      {"type": str,          "required": ("post", "draft", "page")},
    "date":       {"type": str,          "required": ("post", "draft")},  # timestamp + UTC offset
    "categories": {"type": (str, list),  "required": ()},  # space-separated or YAML list
    "category":   {"type": (str, list),  "required": ()},
    "tags":       {"type": (str, list),  "required": ()},
}

_DATE_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})"
    r"(?:[ T]+(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?)?"
    r"\s*(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)
_FILENAME_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)$")


def _type_name(expected) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def field_issues(fm: dict, kind: str = "post", known_layouts=None) -> list[dict]:
    """Check front-matter fields. Returns [{rule, severity, field, message}]."""
    issues = []

    for field, spec in POST_SCHEMA.items():
        value = fm.get(field)
        if value is None:
            if kind in spec["required"]:
                issues.append({
                    "rule": "field-missing",
                    "severity": "error",
                    "field": field,
                    "message": f"Missing required field: {field!r}",
                })
            continue
        if not isinstance(value, spec["type"]):
            issues.append({
                "rule": "field-type",
                "severity": "error",
                "field": field,
                "message": (
                    f"Field {field!r} must be {_type_name(spec['type'])}, "
                    f"got {type(value).__name__}"
                ),
            })
        elif isinstance(value, list) and not all(isinstance(v, str) for v in value):
            issues.append({
                "rule": "field-type",
                "severity": "error",
                "field": field,
                "message": f"Field {field!r} must be a list of strings",
            })

    layout = fm.get("layout")
    if known_layouts and isinstance(layout, str) and layout not in known_layouts:
        issues.append({
            "rule": "layout-unknown",
            "severity": "warning",
            "field": "layout",
            "message": f"Unknown layout {layout!r}, expected one of {sorted(known_layouts)}",
        })

    return issues


def validate_frontmatter(fm: dict, kind: str = "post", known_layouts=None) -> list[str]:
    """Return list of validation errors. Empty list means valid."""
    errors = [
        issue["message"]
        for issue in field_issues(fm, kind, known_layouts)
        if issue["severity"] == "error"
    ]
    value = fm.get("date")
    if isinstance(value, str) and parse_post_date(value) is None:
        errors.append(f"Field 'date' is not a valid timestamp: {value!r}")
    return errors


def parse_post_date(value) -> datetime | None:
    """Parse a front-matter date. Naive when the value carries no UTC offset."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    m = _DATE_RE.match(value.strip())
    if not m:
        return None

    tz = None
    raw_tz = m.group("tz")
    if raw_tz == "Z":
        tz = timezone.utc
    elif raw_tz:
        digits = raw_tz[1:].replace(":", "")
        hours, minutes = int(digits[:2]), int(digits[2:])
        if hours > 23 or minutes > 59:
            return None
        offset = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-offset if raw_tz[0] == "-" else offset)

    fraction = (m.group("fraction") or "0")[:6].ljust(6, "0")
    try:
        return datetime(
            int(m.group("year")),
            int(m.group("month")),
            int(m.group("day")),
            int(m.group("hour") or 0),
            int(m.group("minute") or 0),
            int(m.group("second") or 0),
            int(fraction),
            tzinfo=tz,
        )
    except ValueError:
        return None


def has_utc_offset(value) -> bool:
    parsed = parse_post_date(value)
    return parsed is not None and parsed.tzinfo is not None


def parse_categories(value) -> list[str]:
    """Normalize categories/tags: space-separated string or list -> unique tags in order."""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split()
    elif isinstance(value, list):
        raw = []
        for item in value:
            if item is None:
                continue
            raw.extend(str(item).split())
    else:
        raw = str(value).split()

    seen = []
    for tag in raw:
        if tag not in seen:
            seen.append(tag)
    return seen


def filename_date(name: str) -> date | None:
    """Date prefix of a post filename (YYYY-MM-DD-slug.md), or None."""
    m = _FILENAME_DATE_RE.match(name)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def slugify(title: str) -> str:
    """Lowercase ASCII slug for post filenames."""
    ascii_title = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_title.lower()).strip("-")
    return slug or "untitled"
