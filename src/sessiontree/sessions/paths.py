# sessiontree/sessions/paths.py
"""
Compact string forms of tree addresses.

A name path joins the names from the root down with ``/``; a ``/`` inside a
name is doubled, so ``["a/b", "c"]`` becomes ``a//b/c``. An id path joins the
ids of the folders below the root and the node's own id with dots, e.g.
``0.3.5``.
"""

from typing import Iterable, List, Sequence, Tuple

from ..utils.exceptions import InvalidPathError

DELIMITER = "/"
ID_SEPARATOR = "."
_FORBIDDEN_CHARS = ("\0", "\r", "\n")


def validate_name(name: str) -> str:
    """Return ``name`` if it can be part of a name path, raise otherwise."""
    if not isinstance(name, str) or name == "":
        raise InvalidPathError(name, "names must be non-empty strings")
    if any(ch in name for ch in _FORBIDDEN_CHARS):
        raise InvalidPathError(name, "names cannot contain NUL, CR or LF")
    # "a" + "/b" and "a/" + "b" would both encode to "a///b".
    if name.startswith(DELIMITER):
        raise InvalidPathError(name, f"names cannot start with '{DELIMITER}'")
    return name


def encode_names(names: Sequence[str]) -> str:
    if not names:
        raise InvalidPathError(names, "a name path needs at least one name")
    parts = []
    for name in names:
        validate_name(name)
        parts.append(name.replace(DELIMITER, DELIMITER + DELIMITER))
    return DELIMITER.join(parts)


def decode_names(path: str) -> List[str]:
    """Inverse of :func:`encode_names`."""
    if not isinstance(path, str):
        raise InvalidPathError(path, "name paths are strings")

    parts: List[str] = []
    current = ""
    state = None  # None (start), "part" or "delimiter"
    for ch in path:
        if state in (None, "part"):
            if ch == DELIMITER:
                state = "delimiter"
                continue
            state = "part"
            current += ch
        else:
            state = "part"
            if ch == DELIMITER:
                current += ch
                continue
            if current == "":
                raise InvalidPathError(path, "empty name")
            parts.append(current)
            current = ch

    if state is None:
        raise InvalidPathError(path, "empty path")
    if state == "delimiter":
        raise InvalidPathError(path, "trailing delimiter")
    parts.append(current)

    for name in parts:
        if any(ch in name for ch in _FORBIDDEN_CHARS):
            raise InvalidPathError(path, "names cannot contain NUL, CR or LF")
    return parts


def encode_id_path(ids: Iterable[int], leaf_id: int) -> str:
    segments = list(ids) + [leaf_id]
    for value in segments:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidPathError(segments, f"ids must be non-negative integers, got {value!r}")
    return ID_SEPARATOR.join(str(value) for value in segments)


def decode_id_path(path: str) -> Tuple[List[int], int]:
    """Inverse of :func:`encode_id_path`: ``"0.3.5"`` -> ``([0, 3], 5)``."""
    if not isinstance(path, str) or path == "":
        raise InvalidPathError(path, "empty id path")
    ids = []
    for segment in path.split(ID_SEPARATOR):
        if not segment.isascii() or not segment.isdigit():
            raise InvalidPathError(path, f"segment {segment!r} is not a number")
        ids.append(int(segment))
    return ids[:-1], ids[-1]
