"""Blog document operations: front matter, listing, read, write, new post."""

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime

import yaml

from config import DRAFTS_SUBDIR, MARKDOWN_EXTENSIONS, POSTS_SUBDIR, SITE_DIR
from services.schema import parse_categories, parse_post_date, slugify, validate_frontmatter

log = logging.getLogger(__name__)

# Jekyll never builds these, so they are not documents either.
_EXCLUDED_DIRS = {"node_modules", "vendor"}


@dataclass
class FrontMatter:
    data: dict = field(default_factory=dict)
    body: str = ""
    body_line: int = 1  # 1-based source line where the body starts
    present: bool = False
    error: str | None = None
    error_rule: str | None = None
    error_line: int | None = None


def _safe_path(rel_path: str, site_dir: str = None) -> tuple[str, str | None]:
    """Resolve and validate that path stays within site_dir. Returns (abs_path, error)."""
    site_dir = site_dir or SITE_DIR
    abs_path = os.path.realpath(os.path.join(site_dir, rel_path))
    site_real = os.path.realpath(site_dir)
    if abs_path != site_real and not abs_path.startswith(site_real + os.sep):
        return abs_path, "Path traversal detected"
    return abs_path, None


def _coerce_dates(raw: dict) -> dict:
    # YAML turns bare timestamps into date/datetime objects; downstream code
    # always sees plain strings for date fields.
    return {k: v.isoformat() if isinstance(v, date | datetime) else v for k, v in raw.items()}


def split_frontmatter(content: str) -> FrontMatter:
    """Strict front-matter parse that keeps the reason a block is unusable."""
    content = content.lstrip("\ufeff")
    lines = content.split("\n")
    if not lines or lines[0].strip() != "---":
        return FrontMatter(
            body=content,
            error="No front matter block",
            error_rule="frontmatter-missing",
            error_line=1,
        )

    end_idx = None
    for i, line in enumerate(lines[1:], 1):
        if line.strip() == "---":
            end_idx = i
            break

    if end_idx is None:
        return FrontMatter(
            body=content,
            present=True,
            error="Front matter opened on line 1 is never closed",
            error_rule="frontmatter-unclosed",
            error_line=1,
        )

    body = "\n".join(lines[end_idx + 1 :])
    fm = FrontMatter(body=body, body_line=end_idx + 2, present=True)

    try:
        raw = yaml.safe_load("\n".join(lines[1:end_idx]))
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        fm.error = f"Invalid YAML in front matter: {problem}"
        fm.error_rule = "frontmatter-invalid"
        fm.error_line = mark.line + 2 if mark is not None else 1
        return fm

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        fm.error = f"Front matter must be a mapping, got {type(raw).__name__}"
        fm.error_rule = "frontmatter-invalid"
        fm.error_line = 2
        return fm

    fm.data = _coerce_dates(raw)
    return fm


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Extract YAML frontmatter and body from file content."""
    fm = split_frontmatter(content)
    if fm.error:
        return {}, content
    return fm.data, fm.body.lstrip("\n")


def classify(rel_path: str) -> str:
    """Document kind from its location: post, draft or page."""
    parts = rel_path.replace(os.sep, "/").split("/")
    if POSTS_SUBDIR in parts[:-1]:
        return "post"
    if DRAFTS_SUBDIR in parts[:-1]:
        return "draft"
    return "page"


def _has_frontmatter(abs_path: str) -> bool:
    try:
        with open(abs_path, encoding="utf-8") as f:
            return f.readline().lstrip("\ufeff").strip() == "---"
    except (OSError, UnicodeDecodeError):
        return False


def iter_documents(site_dir: str = None) -> list[str]:
    """Relative paths of every Markdown document in the site, sorted.

    Posts and drafts are always documents. Other Markdown files count only when
    they open with a front-matter block; without one the generator copies them
    verbatim.
    """
    site_dir = site_dir or SITE_DIR
    found = []
    for root, dirs, files in os.walk(site_dir):
        rel_root = os.path.relpath(root, site_dir)
        dirs[:] = sorted(
            d
            for d in dirs
            if d not in _EXCLUDED_DIRS
            and not d.startswith(".")
            and (not d.startswith("_") or d in (POSTS_SUBDIR, DRAFTS_SUBDIR))
        )
        for fname in files:
            if not fname.lower().endswith(MARKDOWN_EXTENSIONS):
                continue
            rel_path = fname if rel_root == "." else f"{rel_root}/{fname}".replace(os.sep, "/")
            if classify(rel_path) == "page" and not _has_frontmatter(os.path.join(root, fname)):
                continue
            found.append(rel_path)
    return sorted(found)


def _preview(body: str, length: int) -> str:
    """First non-empty, non-header line of the body outside code fences."""
    in_fence = False
    for line in body.splitlines():
        line = line.strip()
        if line.startswith(("```", "~~~")):
            in_fence = not in_fence
            continue
        if in_fence or not line or line.startswith("#"):
            continue
        return line[:length]
    return ""


def list_posts(folder_path: str = "", site_dir: str = None, preview_length: int = 120) -> dict:
    """List posts in a folder under _posts. Returns {folder, posts} or {error}."""
    site_dir = site_dir or SITE_DIR
    posts_root = os.path.join(site_dir, POSTS_SUBDIR)
    abs_folder = os.path.realpath(os.path.join(posts_root, folder_path))
    posts_real = os.path.realpath(posts_root)

    if abs_folder != posts_real and not abs_folder.startswith(posts_real + os.sep):
        return {"error": "Path traversal detected"}
    if not os.path.isdir(abs_folder):
        return {"error": "Folder not found"}

    posts = []
    try:
        for fname in os.listdir(abs_folder):
            fpath = os.path.join(abs_folder, fname)
            if not os.path.isfile(fpath) or not fname.lower().endswith(MARKDOWN_EXTENSIONS):
                continue
            stat = os.stat(fpath)
            fm: dict = {}
            preview = ""
            try:
                with open(fpath, encoding="utf-8") as f:
                    fm, body = parse_frontmatter(f.read())
                preview = _preview(body, preview_length)
            except (OSError, UnicodeDecodeError) as e:
                log.warning("Could not read %s: %s", fpath, e)

            rel_path = os.path.relpath(fpath, os.path.realpath(site_dir)).replace(os.sep, "/")
            posts.append(
                {
                    "name": fname,
                    "path": rel_path,
                    "title": fm.get("title", fname),
                    "date": fm.get("date"),
                    "layout": fm.get("layout"),
                    "categories": parse_categories(fm.get("categories") or fm.get("category")),
                    "preview": preview,
                    "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                    "size": stat.st_size,
                }
            )

        posts.sort(key=lambda x: (str(x["date"] or ""), x["name"]), reverse=True)
        return {"folder": folder_path or "(root)", "posts": posts}
    except OSError as e:
        return {"error": str(e)}


def read_post(rel_path: str, site_dir: str = None) -> dict:
    """Read a document. Returns {path, kind, content, frontmatter, body, ...} or {error}."""
    abs_path, err = _safe_path(rel_path, site_dir)
    if err:
        return {"error": err}
    if not os.path.isfile(abs_path):
        return {"error": "File not found"}

    try:
        with open(abs_path, encoding="utf-8") as f:
            content = f.read()
        stat = os.stat(abs_path)
    except (OSError, UnicodeDecodeError) as e:
        return {"error": str(e)}

    fm, body = parse_frontmatter(content)
    return {
        "path": rel_path,
        "kind": classify(rel_path),
        "content": content,
        "frontmatter": fm,
        "categories": parse_categories(fm.get("categories") or fm.get("category")),
        "body": body,
        "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        "size": stat.st_size,
    }


def write_post(rel_path: str, content: str, site_dir: str = None, known_layouts=None) -> dict:
    """Write a document. Validates front matter first. Returns {ok} or {error}."""
    if os.path.splitext(rel_path)[1].lower() not in MARKDOWN_EXTENSIONS:
        return {"error": f"Only Markdown documents can be written: {rel_path}"}
    abs_path, err = _safe_path(rel_path, site_dir)
    if err:
        return {"error": err}

    kind = classify(rel_path)
    fm = split_frontmatter(content)
    if fm.error and (fm.present or kind != "page"):
        return {"error": "Frontmatter validation failed", "validation_errors": [fm.error]}
    if fm.present:
        errors = validate_frontmatter(fm.data, kind, known_layouts)
        if errors:
            return {"error": "Frontmatter validation failed", "validation_errors": errors}

    try:
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        return {"error": str(e)}
    log.info("Wrote %s", rel_path)
    return {"ok": True, "path": rel_path}


def new_post(
    title: str,
    categories=None,
    layout: str = "post",
    post_date: str | None = None,
    body: str = "",
    site_dir: str = None,
) -> dict:
    """Create _posts/YYYY-MM-DD-slug.md with a front-matter header. Never overwrites."""
    if not title or not isinstance(title, str):
        return {"error": "title is required"}

    if post_date is None:
        post_date = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S %z")
    parsed = parse_post_date(post_date)
    if parsed is None:
        return {"error": f"Invalid date: {post_date!r}"}

    rel_path = f"{POSTS_SUBDIR}/{parsed:%Y-%m-%d}-{slugify(title)}.md"
    abs_path, err = _safe_path(rel_path, site_dir)
    if err:
        return {"error": err}
    if os.path.exists(abs_path):
        return {"error": "Post already exists", "path": rel_path}

    header = {"layout": layout, "title": title, "date": post_date}
    tags = parse_categories(categories)
    if tags:
        header["categories"] = " ".join(tags)
    text = "---\n" + yaml.safe_dump(header, sort_keys=False, allow_unicode=True) + "---\n"
    if body:
        text += "\n" + body.rstrip("\n") + "\n"

    try:
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, "x", encoding="utf-8") as f:
            f.write(text)
    except FileExistsError:
        return {"error": "Post already exists", "path": rel_path}
    except OSError as e:
        return {"error": str(e)}
    log.info("Created post %s", rel_path)
    return {"ok": True, "path": rel_path, "created": True}
