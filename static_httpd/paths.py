import os
import stat
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DOCUMENT = "index.html"

PATH_TRAVERSAL = "path traversal"
RESOLUTION_ERROR = "resolution error"


@dataclass(frozen=True)
class RegularFile:
    path: Path
    size: int


@dataclass(frozen=True)
class Directory:
    path: Path


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Forbidden:
    reason: str


ResolvedTarget = RegularFile | Directory | NotFound | Forbidden


def is_within(root: Path, target: Path) -> bool:
    # Both sides must already be canonical.
    root_str = str(root)
    target_str = str(target)
    if target_str == root_str:
        return True
    prefix = root_str if root_str.endswith(os.sep) else root_str + os.sep
    return target_str.startswith(prefix)


def resolve(document_root: str | Path, request_path: str) -> ResolvedTarget:
    """Map a decoded URL path to a target confined to ``document_root``.

    The confinement check runs on the canonical form, after ``..`` segments
    and symlinks are resolved, so it cannot be bypassed by either.
    """
    if request_path in ("", "/"):
        request_path = "/" + DEFAULT_DOCUMENT

    try:
        root = Path(document_root).resolve()
        target = (root / request_path.lstrip("/")).resolve()
    except (OSError, RuntimeError, ValueError):
        # permission denied, symlink loops, embedded NUL bytes
        return Forbidden(RESOLUTION_ERROR)

    if not is_within(root, target):
        return Forbidden(PATH_TRAVERSAL)

    try:
        st = target.stat()
    except (FileNotFoundError, NotADirectoryError):
        return NotFound()
    except (OSError, ValueError):
        return Forbidden(RESOLUTION_ERROR)

    if stat.S_ISDIR(st.st_mode):
        return Directory(target)
    if stat.S_ISREG(st.st_mode) and os.access(target, os.R_OK):
        return RegularFile(target, st.st_size)
    return NotFound()


def index_for(document_root: str | Path, directory_path: str) -> ResolvedTarget:
    """Resolve the default document inside the directory at ``directory_path``."""
    return resolve(document_root, directory_path.rstrip("/") + "/" + DEFAULT_DOCUMENT)
