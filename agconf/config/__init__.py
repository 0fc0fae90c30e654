"""Engine configuration, prefix handling, and the canonical repo config loader."""

from agconf.config.prefix import to_marker_form, to_metadata_form, validate_prefix
from agconf.config.settings import DEFAULT_PREFIX, SUPPORTED_SCHEMA_VERSION, EngineConfig

__all__ = [
    "DEFAULT_PREFIX",
    "SUPPORTED_SCHEMA_VERSION",
    "EngineConfig",
    "to_marker_form",
    "to_metadata_form",
    "validate_prefix",
]
