"""Keyspace name validation."""

from __future__ import annotations

import string

from velarixdb.consts import MAX_KEY_SPACE_SIZE

_VALID_CHARACTERS = frozenset(string.ascii_letters + string.digits + "_-")


def is_valid_keyspace_name(name: str) -> bool:
    """Return whether ``name`` is a valid keyspace name.

    Names are 1 to 255 characters of ASCII letters, digits, ``_`` and ``-``.
    """
    if not name:
        return False
    if len(name.encode("utf-8")) > MAX_KEY_SPACE_SIZE:
        return False
    return all(char in _VALID_CHARACTERS for char in name)