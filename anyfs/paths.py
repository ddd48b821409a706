"""Path normalization shared by every backend.

Paths handled here are plain ``/``-separated strings. Backslashes are turned
into forward slashes and trailing separators are dropped. Internal runs of
separators are left alone: ``normalize("a//b")`` stays ``"a//b"``.
"""

from typing import Optional


def normalize(path: Optional[str]) -> Optional[str]:
    """Canonicalize separators and strip trailing separators.

    The whole trailing run is removed, not just the last separator, so
    ``normalize("a//")`` is ``"a"`` and ``normalize(normalize(p)) ==
    normalize(p)`` for every ``p``. ``None`` and the empty string are
    returned unchanged.
    """
    if not path:
        return path

    path = path.replace("\\", "/")
    return path.rstrip("/")


def strip_leading(path: Optional[str]) -> Optional[str]:
    """Normalize ``path`` and drop one leading separator.

    Used to turn a caller supplied directory into a base-relative child.
    """
    path = normalize(path)
    if path and path.startswith("/"):
        path = path[1:]
    return path


def join(base: str, relative: Optional[str]) -> str:
    """Compose ``base + "/" + relative``.

    Returns ``base`` itself when there is nothing to append.
    """
    relative = strip_leading(relative)
    if not relative:
        return base
    if base.endswith("/"):
        return base + relative
    return f"{base}/{relative}"
