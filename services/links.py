"""Link-reference parsing, post_url resolution and the cross-post link index."""

import logging
import os
import re

from config import MARKDOWN_EXTENSIONS, POSTS_SUBDIR, SITE_DIR
from services.posts import iter_documents, split_frontmatter

log = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LIST_ITEM_RE = re.compile(r"^\s{0,3}(?:[-*+]|\d+[.)])\s")
_CODE_SPAN_RE = re.compile(r"(`+)(.+?)\1")
_LIQUID_RE = re.compile(r"\{%.*?%\}|\{\{.*?\}\}")
_ESCAPED_BRACKET_RE = re.compile(r"\\[\[\]]")

_DEFINITION_RE = re.compile(
    r"^ {0,3}\[(?P<label>[^\]]+)\]:\s*(?P<url>\S+)(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*$"
)
_FOOTNOTE_DEF_RE = re.compile(r"^ {0,3}\[\^(?P<label>[^\]]+)\]:")
# [text][label] and [label][]; text may hold one level of nested brackets (images)
_FULL_REF_RE = re.compile(r"\[((?:[^\[\]]|\[[^\[\]]*\])*)\]\[([^\[\]]*)\]")
_FOOTNOTE_REF_RE = re.compile(r"\[\^([^\]]+)\](?!:)")
_SHORTCUT_REF_RE = re.compile(r"\[([^\[\]]+)\](?![\[(:])")

POST_URL_RE = re.compile(r"\{%-?\s*post_url\s+(\S+?)\s*-?%\}")


def normalize_label(label: str) -> str:
    """Link labels match case-insensitively with internal whitespace collapsed."""
    return " ".join(label.split()).lower()


def _blank(match: re.Match) -> str:
    return " " * len(match.group(0))


def strip_code(body: str) -> str:
    """Blank out fenced, indented and inline code, keeping line numbering intact."""
    out = []
    fence = None
    prev_blank = True
    in_list = False
    in_indented = False

    for line in body.split("\n"):
        if fence:
            m = _FENCE_RE.match(line)
            run = m.group(1) if m else ""
            # closing fences carry no info string
            if run[:1] == fence[0] and len(run) >= len(fence) and not line[m.end() :].strip():
                fence = None
            out.append("")
            continue

        m = _FENCE_RE.match(line)
        if m:
            fence = m.group(1)
            out.append("")
            prev_blank = False
            in_indented = False
            continue

        stripped = line.strip()
        indented = line.startswith(("    ", "\t"))
        if indented and stripped and (in_indented or (prev_blank and not in_list)):
            in_indented = True
            out.append("")
            prev_blank = False
            continue

        if stripped:
            in_indented = False
            if not indented:
                in_list = bool(_LIST_ITEM_RE.match(line))
        prev_blank = not stripped
        out.append(_CODE_SPAN_RE.sub(_blank, line))

    return "\n".join(out)


def _opaque(match: re.Match) -> str:
    return "_" * len(match.group(0))


def _prose_lines(body: str):
    """(1-based line number, masked text, raw text) for every line outside code.

    Liquid tags become underscores so a definition like
    `[next]: {% post_url 2017-04-02-x %}` still has a single-token URL. Masks keep
    column positions, so spans found in the masked text slice the raw text.
    """
    for lineno, raw in enumerate(strip_code(body).split("\n"), 1):
        line = _LIQUID_RE.sub(_opaque, raw)
        yield lineno, _ESCAPED_BRACKET_RE.sub("  ", line), raw


def extract_definitions(body: str) -> tuple[dict[str, dict], list[dict]]:
    """Return ({label: {url, line, label}}, duplicates). First definition wins."""
    definitions: dict[str, dict] = {}
    duplicates = []

    for lineno, line, raw in _prose_lines(body):
        fm = _FOOTNOTE_DEF_RE.match(line)
        if fm:
            key = "^" + normalize_label(fm.group("label"))
            url = None
        else:
            m = _DEFINITION_RE.match(line)
            if not m:
                continue
            key = normalize_label(m.group("label"))
            url = raw[m.start("url") : m.end("url")]

        if key in definitions:
            first_line = definitions[key]["line"]
            duplicates.append({"label": key, "line": lineno, "first_line": first_line})
            continue
        definitions[key] = {"label": key, "url": url, "line": lineno}

    return definitions, duplicates


def extract_references(body: str) -> list[dict]:
    """Every reference-style link usage: [{label, line, form}].

    form is one of full ([text][label]), collapsed ([label][]), footnote ([^label])
    or shortcut ([label]). Shortcut forms are only links when a definition exists.
    """
    refs = []
    for lineno, line, _raw in _prose_lines(body):
        note = _FOOTNOTE_DEF_RE.match(line)
        if note:
            # footnote text after the label may itself hold references
            line = " " * note.end() + line[note.end() :]
        elif _DEFINITION_RE.match(line):
            continue

        def _full(m: re.Match) -> str:
            text, label = m.group(1), m.group(2)
            if label.strip():
                refs.append({"label": normalize_label(label), "line": lineno, "form": "full"})
            else:
                refs.append({"label": normalize_label(text), "line": lineno, "form": "collapsed"})
            return _blank(m)

        line = _FULL_REF_RE.sub(_full, line)

        def _footnote(m: re.Match) -> str:
            refs.append(
                {"label": "^" + normalize_label(m.group(1)), "line": lineno, "form": "footnote"}
            )
            return _blank(m)

        line = _FOOTNOTE_REF_RE.sub(_footnote, line)

        for m in _SHORTCUT_REF_RE.finditer(line):
            refs.append({"label": normalize_label(m.group(1)), "line": lineno, "form": "shortcut"})

    return [r for r in refs if r["label"] and r["label"] != "^"]


def extract_post_urls(body: str) -> list[dict]:
    """Targets of {% post_url name %} tags outside code: [{target, line}]."""
    targets = []
    for lineno, line in enumerate(strip_code(body).split("\n"), 1):
        for m in POST_URL_RE.finditer(line):
            targets.append({"target": m.group(1), "line": lineno})
    return targets


def find_post(name: str, site_dir: str = None) -> str | None:
    """Find the post a post_url name points at. Returns relative path or None.

    Matches by filename stem under _posts. Names may carry a subfolder
    ('tutorials/2017-03-12-parsing') or a Markdown extension.
    """
    site_dir = site_dir or SITE_DIR
    posts_root = os.path.join(site_dir, POSTS_SUBDIR)

    stem, ext = os.path.splitext(name)
    if ext.lower() in MARKDOWN_EXTENSIONS:
        name = stem

    if "/" in name:
        for extension in MARKDOWN_EXTENSIONS:
            candidate = os.path.join(posts_root, name + extension)
            if os.path.isfile(candidate):
                return f"{POSTS_SUBDIR}/{name}{extension}"
        return None

    for root, dirs, files in os.walk(posts_root):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for fname in sorted(files):
            fstem, fext = os.path.splitext(fname)
            if fext.lower() not in MARKDOWN_EXTENSIONS or fstem != name:
                continue
            return os.path.relpath(os.path.join(root, fname), site_dir).replace(os.sep, "/")

    return None


def build_link_index(site_dir: str = None) -> dict[str, dict]:
    """Return {rel_path: {"links": [resolved], "unresolved": [names]}} for all documents."""
    site_dir = site_dir or SITE_DIR
    index: dict[str, dict] = {}

    for rel_path in iter_documents(site_dir):
        resolved, unresolved = [], []
        try:
            with open(os.path.join(site_dir, rel_path), encoding="utf-8") as f:
                fm = split_frontmatter(f.read())
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Skipping %s in link index: %s", rel_path, e)
            index[rel_path] = {"links": [], "unresolved": []}
            continue

        for ref in extract_post_urls(fm.body):
            found = find_post(ref["target"], site_dir=site_dir)
            if found is None:
                unresolved.append(ref["target"])
            elif found != rel_path and found not in resolved:
                resolved.append(found)
        index[rel_path] = {"links": resolved, "unresolved": unresolved}

    return index


def get_post_links(rel_path: str, site_dir: str = None) -> dict:
    """Return forward links, backlinks and unresolved post_url targets for a document."""
    index = build_link_index(site_dir=site_dir)
    entry = index.get(rel_path, {"links": [], "unresolved": []})
    backlinks = sorted(src for src, e in index.items() if rel_path in e["links"])
    return {
        "path": rel_path,
        "forward_links": entry["links"],
        "backlinks": backlinks,
        "unresolved": entry["unresolved"],
    }
