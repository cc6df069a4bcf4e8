"""Path utilities: validation, key joining, listing prefixes."""

from __future__ import annotations

import posixpath

from .exceptions import InvalidPathError

# =============================================================================
# Path Validation
# =============================================================================


def valid_path(name: str) -> bool:
    """Report whether *name* is a valid filesystem path.

    Valid paths are unrooted, slash-separated sequences of elements with no
    empty, ``.`` or ``..`` elements.  The lone name ``.`` denotes the root.
    Backslashes are rejected outright.
    """
    if "\\" in name:
        return False
    if name == ".":
        return True
    if not name:
        return False
    return all(elem not in ("", ".", "..") for elem in name.split("/"))


def check_path(name: str, op: str) -> str:
    """Return *name* unchanged, or raise ``InvalidPathError``."""
    if not valid_path(name):
        raise InvalidPathError("invalid path", op=op, path=name)
    return name


# =============================================================================
# Keys
# =============================================================================


def normalize_root(root: str) -> str:
    """Normalize a configured root prefix.

    - Keeps a single leading ``/`` (rooted mode) or none (opaque mode)
    - Drops trailing slashes except on the bare ``/`` root
    - Resolves ``.`` references; ``..`` is rejected
    """
    if not root or root == ".":
        return ""
    rooted = root.startswith("/")
    parts = [p for p in root.split("/") if p not in ("", ".")]
    if ".." in parts:
        raise InvalidPathError("root must not contain '..'", op="root", path=root)
    joined = "/".join(parts)
    if rooted:
        return "/" + joined
    return joined


def join_key(root: str, *names: str) -> str:
    """Join *names* onto *root*, ignoring ``.`` and empty elements."""
    parts = [n for n in names if n not in ("", ".")]
    if not parts:
        return root
    if not root:
        return posixpath.join(*parts)
    return posixpath.join(root, *parts)


def list_prefix(key: str) -> str:
    """Return the listing prefix for the directory at *key*.

    The rooted root lists ``/`` and the opaque root lists everything (``""``);
    any other directory lists ``key + "/"``.
    """
    if key in ("", "/"):
        return key
    return key.rstrip("/") + "/"


def split_name(name: str) -> tuple[str, str]:
    """Split a valid path into ``(directory, base)``.

    ``"a/b/c"`` becomes ``("a/b", "c")``; ``"c"`` becomes ``("", "c")``;
    the root ``"."`` becomes ``("", "")``.
    """
    if name == ".":
        return "", ""
    directory, _, base = name.rpartition("/")
    return directory, base
