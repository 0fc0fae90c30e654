"""Prefix renderings.

One user-supplied prefix has two textual forms: the marker form (dashes),
used inside HTML comment markers, and the metadata form (underscores), used
as a frontmatter key prefix. These two functions are the only place the
conversion happens.
"""

from __future__ import annotations

import re

from agconf.errors import ConfigError

_PREFIX_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


def validate_prefix(prefix: str) -> str:
    """Validate a user-supplied prefix and return it unchanged.

    Prefixes mixing ``-`` and ``_`` are rejected because the two renderings
    would no longer convert back into each other.

    Raises:
        ConfigError: If the prefix is empty, has invalid characters, or mixes
            both separators.
    """
    if not prefix or not _PREFIX_RE.match(prefix):
        raise ConfigError(
            f"Invalid prefix {prefix!r}: use letters, digits, and a single "
            "separator style ('-' or '_')"
        )
    if "-" in prefix and "_" in prefix:
        raise ConfigError(
            f"Invalid prefix {prefix!r}: mixing '-' and '_' is not supported, "
            f"use {to_marker_form(prefix)!r} instead"
        )
    return prefix


def to_marker_form(prefix: str) -> str:
    """Render a prefix for comment markers (``my_prefix`` -> ``my-prefix``)."""
    return prefix.replace("_", "-")


def to_metadata_form(prefix: str) -> str:
    """Render a prefix for metadata keys (``my-prefix`` -> ``my_prefix``)."""
    return prefix.replace("-", "_")
