import html
import logging
import re
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)

STYLE = (
    "body{font-family:system-ui,Segoe UI,Arial,sans-serif;max-width:800px;margin:2rem auto;padding:0 1rem}"
    " ul{list-style-type:none;padding:0} li{margin:0.25rem 0}"
)


def url_path(path: str) -> str:
    # Percent-encode each segment, keep the separators. Undecodable bytes
    # from the filesystem come back as their original %XX escapes.
    return quote(path, safe="/", errors="surrogateescape")


def display(text: str) -> str:
    return html.escape(text.encode("utf-8", "replace").decode("utf-8"))


def sort_key(entry: Path) -> tuple[bool, str]:
    return (not entry.is_dir(), entry.name.lower())


def parent_link(directory: Path, document_root: Path) -> str | None:
    """Server path of the parent directory, or None at the document root."""
    directory = directory.resolve()
    root = document_root.resolve()
    if directory == root:
        return None
    try:
        relative = directory.parent.relative_to(root)
    except ValueError:
        logger.warning(f"Directory {directory} is outside {root}, omitting parent link")
        return None
    if relative == Path("."):
        return "/"
    return url_path("/" + relative.as_posix() + "/")


def render(directory: Path, request_path: str, document_root: Path) -> str:
    """HTML index of ``directory``: subdirectories first, then files, by name ignoring case."""
    base = re.sub(r"/+", "/", request_path.rstrip("/") + "/")
    entries = []

    parent = parent_link(directory, document_root)
    if parent is not None:
        entries.append(f'<li><a href="{html.escape(parent)}">.. (Parent Directory)</a></li>')

    for entry in sorted(directory.iterdir(), key=sort_key):
        slash = "/" if entry.is_dir() else ""
        href = url_path(base + entry.name) + slash
        name = display(entry.name) + slash
        entries.append(f'<li><a href="{html.escape(href)}">{name}</a></li>')

    title = display(base)
    return f"""<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>Index of {title}</title>
    <style>{STYLE}</style>
  </head>
  <body>
    <h1>Index of {title}</h1>
    <ul>
      {''.join(entries)}
    </ul>
  </body>
</html>
"""
