"""Path utilities shared by the index, executor and backends."""

from __future__ import annotations

import posixpath


def normalize_path(path: str) -> str:
    """Normalize a virtual file system path.

    - Ensures leading /
    - Resolves .. and . references
    - Removes double slashes
    - Removes trailing slash (except for root)

    Examples:
        normalize_path("foo") -> "/foo"
        normalize_path("/alice//notes") -> "/alice/notes"
        normalize_path("/alice/../bob") -> "/bob"
        normalize_path("/alice/") -> "/alice"
        normalize_path("") -> "/"
    """
    if not path:
        return "/"

    path = path.strip()

    if not path.startswith("/"):
        path = "/" + path

    path = posixpath.normpath(path)
    # posixpath keeps a leading "//" as-is
    if path.startswith("//"):
        path = "/" + path.lstrip("/")

    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_dir, name).

    Examples:
        split_path("/alice/0/1") -> ("/alice/0", "1")
        split_path("/alice") -> ("/", "alice")
        split_path("/") -> ("/", "")
    """
    path = normalize_path(path)
    if path == "/":
        return "/", ""
    return posixpath.split(path)


def join_path(directory: str, name: str) -> str:
    return normalize_path(posixpath.join(directory, name))


def user_root(user: str) -> str:
    """Root directory of *user*'s tree."""
    return f"/{user}"


def owner_of(path: str) -> str:
    """First path segment, i.e. the user whose tree holds *path*."""
    return normalize_path(path).strip("/").split("/", 1)[0]


def is_under(path: str, prefix: str) -> bool:
    """True if *path* equals *prefix* or lies below it at a segment boundary."""
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


def ancestors(path: str) -> list[str]:
    """*path* followed by each parent up to and including ``/``."""
    path = normalize_path(path)
    result = []
    current = path
    while True:
        result.append(current)
        if current == "/":
            break
        current = current.rsplit("/", 1)[0] or "/"
    return result
