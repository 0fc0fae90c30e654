"""Exception hierarchy for agconf.

Absence (missing files, missing markers, missing frontmatter) is never an
error. These exceptions cover the conditions that must stop an operation.
"""

from __future__ import annotations

from pathlib import Path


class AgconfError(Exception):
    """Base class for all agconf errors."""


class ConfigError(AgconfError, ValueError):
    """Invalid engine or canonical repository configuration."""


class SourceError(AgconfError):
    """The canonical source could not be resolved."""


class LockfileError(AgconfError):
    """The lockfile exists but cannot be read or parsed."""

    def __init__(self, path: str | Path, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


class SchemaIncompatibleError(AgconfError):
    """The lockfile was written with an incompatible schema major version."""

    def __init__(self, stored_version: str, message: str):
        self.stored_version = stored_version
        super().__init__(message)


class ManagedFileError(AgconfError):
    """An I/O failure while reading or writing a managed file."""

    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ProposeError(AgconfError):
    """Local edits could not be turned into a proposal for the canonical repository."""
