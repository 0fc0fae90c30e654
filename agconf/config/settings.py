"""Engine configuration.

An ``EngineConfig`` is built once per invocation and handed to every
component constructor. Leaf functions never read module-level defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from agconf import __version__
from agconf.config.prefix import to_marker_form, to_metadata_form, validate_prefix

DEFAULT_PREFIX = "agconf"
SUPPORTED_SCHEMA_VERSION = "1.0.0"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable settings shared by all engine components."""

    prefix: str = DEFAULT_PREFIX
    config_dir: str = ".agconf"
    lockfile_name: str = "lockfile.json"
    agents_md_name: str = "AGENTS.md"
    cli_name: str = "agconf"
    schema_version: str = SUPPORTED_SCHEMA_VERSION
    cli_version: str = __version__

    def __post_init__(self):
        validate_prefix(self.prefix)

    @property
    def marker_prefix(self) -> str:
        return to_marker_form(self.prefix)

    @property
    def metadata_prefix(self) -> str:
        return to_metadata_form(self.prefix)

    @property
    def managed_key(self) -> str:
        return f"{self.metadata_prefix}_managed"

    @property
    def content_hash_key(self) -> str:
        return f"{self.metadata_prefix}_content_hash"

    @property
    def source_path_key(self) -> str:
        return f"{self.metadata_prefix}_source_path"

    def with_prefix(self, prefix: str | None) -> EngineConfig:
        """Return a copy using ``prefix`` (or this config if it is unset)."""
        if not prefix or prefix == self.prefix:
            return self
        return replace(self, prefix=prefix)
