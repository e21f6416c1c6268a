"""Post browser endpoints: folder tree, listing, read/write, new post, post_url links."""

import glob
import os
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from config import MARKDOWN_EXTENSIONS, POSTS_SUBDIR, SITE_DIR
from services.links import find_post, get_post_links
from services.posts import list_posts, new_post, read_post, write_post
from services.settings import load_settings

bp = Blueprint("posts", __name__)


def _site_dir() -> str:
    return current_app.config.get("SITE_DIR") or SITE_DIR


def _markdown_files(path: str) -> list[str]:
    files = []
    for ext in MARKDOWN_EXTENSIONS:
        files.extend(glob.glob(os.path.join(path, f"*{ext}")))
    return files


def _scan_tree(path: str, prefix: str = "") -> list[dict]:
    """Recursively scan _posts for the folder tree."""
    items = []
    try:
        for entry in os.scandir(path):
            if entry.is_dir() and not entry.name.startswith("."):
                rel_path = os.path.join(prefix, entry.name) if prefix else entry.name
                md_files = _markdown_files(entry.path)
                mtime = max((os.path.getmtime(f) for f in md_files), default=0)
                items.append(
                    {
                        "name": entry.name,
                        "path": rel_path,
                        "post_count": len(md_files),
                        "last_modified": (
                            datetime.fromtimestamp(mtime).isoformat() if mtime else None
                        ),
                        "children": _scan_tree(entry.path, rel_path),
                    }
                )
    except (FileNotFoundError, PermissionError):
        pass
    return sorted(items, key=lambda x: x["name"])


@bp.route("/api/posts")
def posts_tree():
    """Folder tree under _posts with post counts."""
    posts_root = os.path.join(_site_dir(), POSTS_SUBDIR)
    if not os.path.isdir(posts_root):
        return jsonify({"error": f"No {POSTS_SUBDIR}/ directory in site"}), 404

    tree = _scan_tree(posts_root)
    root_md = _markdown_files(posts_root)
    if root_md:
        mtime = max(os.path.getmtime(f) for f in root_md)
        tree.insert(
            0,
            {
                "name": "(root)",
                "path": "",
                "post_count": len(root_md),
                "last_modified": datetime.fromtimestamp(mtime).isoformat(),
                "children": [],
            },
        )
    return jsonify(tree)


@bp.route("/api/posts/folder/", defaults={"folder_path": ""})
@bp.route("/api/posts/folder/<path:folder_path>")
def posts_folder(folder_path):
    """Posts in a folder (title, date, categories, preview), newest first."""
    preview_length = load_settings()["posts"]["preview_length"]
    result = list_posts(folder_path, site_dir=_site_dir(), preview_length=preview_length)
    if "error" in result:
        code = 404 if result["error"] == "Folder not found" else 400
        return jsonify(result), code
    return jsonify(result)


@bp.route("/api/post/<path:rel_path>", methods=["GET"])
def post_get(rel_path):
    """Document content + parsed front matter."""
    result = read_post(rel_path, site_dir=_site_dir())
    if "error" in result:
        code = 404 if result["error"] == "File not found" else 400
        return jsonify(result), code
    return jsonify(result)


@bp.route("/api/post/<path:rel_path>", methods=["POST"])
def post_write(rel_path):
    """Write (create/overwrite) a document after validating its front matter."""
    data = request.get_json(silent=True) or {}
    content = data.get("content", "")
    if not isinstance(content, str):
        return jsonify({"error": "content must be a string"}), 400

    known_layouts = load_settings()["lint"]["known_layouts"]
    result = write_post(rel_path, content, site_dir=_site_dir(), known_layouts=known_layouts)
    if "error" in result:
        return jsonify(result), 400
    return jsonify(result)


@bp.route("/api/posts/new", methods=["POST"])
def post_new():
    """Create _posts/YYYY-MM-DD-slug.md from a title (and optional date, categories)."""
    data = request.get_json(silent=True) or {}
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return jsonify({"error": "title must be a non-empty string"}), 400
    categories = data.get("categories")
    if categories is not None and not isinstance(categories, str | list):
        return jsonify({"error": "categories must be a string or a list"}), 400
    layout = data.get("layout", "post")
    if not isinstance(layout, str):
        return jsonify({"error": "layout must be a string"}), 400
    post_date = data.get("date")
    if post_date is not None and not isinstance(post_date, str):
        return jsonify({"error": "date must be a string"}), 400

    result = new_post(
        title.strip(),
        categories=categories,
        layout=layout,
        post_date=post_date,
        body=data.get("body", "") or "",
        site_dir=_site_dir(),
    )
    if "error" in result:
        code = 409 if result["error"] == "Post already exists" else 400
        return jsonify(result), code
    return jsonify(result), 201


@bp.route("/api/posts/links/<path:rel_path>")
def post_links(rel_path):
    """Forward links and backlinks between posts via post_url."""
    return jsonify(get_post_links(rel_path, site_dir=_site_dir()))


@bp.route("/api/posts/resolve")
def post_resolve():
    """Resolve a post_url name to the post's relative path."""
    name = request.args.get("name", "").strip()
    if not name:
        return jsonify({"error": "name parameter required"}), 400
    path = find_post(name, site_dir=_site_dir())
    if path:
        return jsonify({"path": path})
    return jsonify({"error": f"Not found: {name}"}), 404
