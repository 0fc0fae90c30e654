"""Schema version compatibility.

The schema version, not the CLI version, decides whether stored state can be
used. A different major version is fatal in either direction; a newer minor
version is accepted with a warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from agconf.config.settings import SUPPORTED_SCHEMA_VERSION

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")


@dataclass(frozen=True)
class SchemaCompatibility:
    """Outcome of comparing a stored schema version with the supported one."""

    compatible: bool
    version: str = ""
    """The stored version that was checked."""
    warning: str | None = None
    error: str | None = None


def is_valid_semver(version: str) -> bool:
    return bool(_SEMVER_RE.match(version))


def _version_parts(version: str) -> tuple[int, int] | None:
    """Major and minor of ``version``. Missing parts count as 0."""
    parts = version.strip().split(".")
    try:
        numbers = [int(p) for p in parts[:2]]
    except ValueError:
        return None
    while len(numbers) < 2:
        numbers.append(0)
    return numbers[0], numbers[1]


def check_schema_compatibility(
    stored: str,
    supported: str = SUPPORTED_SCHEMA_VERSION,
) -> SchemaCompatibility:
    """Decide whether state written with schema ``stored`` can be used.

    - newer major: incompatible, a newer CLI is required
    - older major: incompatible, the format is no longer supported
    - same major, newer minor: compatible with a warning
    - otherwise: compatible

    A version whose major or minor part is not numeric is incompatible.
    """
    stored_parts = _version_parts(str(stored))
    supported_parts = _version_parts(supported)
    if stored_parts is None or supported_parts is None:
        return SchemaCompatibility(
            compatible=False,
            version=str(stored),
            error=f"Schema version {stored!r} is not a valid version string.",
        )

    stored_major, stored_minor = stored_parts
    supported_major, supported_minor = supported_parts

    if stored_major > supported_major:
        return SchemaCompatibility(
            compatible=False,
            version=str(stored),
            error=(
                f"Schema version {stored} requires a newer CLI "
                f"(this CLI supports {supported}). Upgrade agconf and retry."
            ),
        )
    if stored_major < supported_major:
        return SchemaCompatibility(
            compatible=False,
            version=str(stored),
            error=(
                f"Schema version {stored} is outdated and no longer supported. "
                "This content was created with an older version of agconf."
            ),
        )
    if stored_minor > supported_minor:
        return SchemaCompatibility(
            compatible=True,
            version=str(stored),
            warning=(
                f"Content uses schema {stored}, CLI supports {supported}. "
                "Some fields may be ignored. Consider upgrading agconf."
            ),
        )
    return SchemaCompatibility(compatible=True, version=str(stored))
