"""Content hashing.

Every hash agconf writes or compares comes from ``hash_content``. Content is
trimmed before hashing so an editor appending a trailing newline does not
register as a modification.
"""

from __future__ import annotations

import hashlib
import re

HASH_PREFIX = "sha256:"
HASH_LENGTH = 12
HASH_RE = re.compile(r"^sha256:[a-f0-9]{12}$")


def hash_content(content: str) -> str:
    """Return ``sha256:`` plus the first 12 hex chars of the trimmed content's digest."""
    digest = hashlib.sha256(content.strip().encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest[:HASH_LENGTH]}"


def is_valid_hash(value: str) -> bool:
    return bool(HASH_RE.match(value))


class ContentHasher:
    """Injectable wrapper around ``hash_content``."""

    def hash(self, content: str) -> str:
        return hash_content(content)

    def hash_entries(self, entries: list[tuple[str, str]]) -> str:
        """Aggregate hash over ``(path, body)`` pairs, sorted by path.

        Returns an empty string for an empty list.
        """
        if not entries:
            return ""
        combined = "\n---\n".join(f"{path}:{body}" for path, body in sorted(entries))
        return self.hash(combined)
