"""Load the canonical repository config (``agconf.yaml``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from agconf.config.prefix import validate_prefix
from agconf.config.settings import DEFAULT_PREFIX
from agconf.errors import ConfigError
from agconf.sync.schema import check_schema_compatibility, is_valid_semver
from agconf.utils.fs import read_text_or_none

CANONICAL_CONFIG_NAMES = ("agconf.yaml", "agent-conf.yaml")


@dataclass
class CanonicalConfig:
    """Settings declared by a canonical repository."""

    name: str
    version: str = "1.0.0"
    organization: str = ""
    description: str = ""
    instructions: str = "instructions/AGENTS.md"
    skills_dir: str = "skills"
    rules_dir: str | None = None
    agents_dir: str | None = None
    marker_prefix: str = DEFAULT_PREFIX
    targets: list[str] = field(default_factory=lambda: ["claude"])
    preserve_repo_content: bool = True


def load_canonical_config(base_path: str | Path) -> CanonicalConfig | None:
    """Load the canonical config from a repository root.

    Returns None when no config file exists.

    Raises:
        ConfigError: If the file exists but is not a valid config.
    """
    base = Path(base_path)
    for file_name in CANONICAL_CONFIG_NAMES:
        config_path = base / file_name
        text = read_text_or_none(config_path)
        if text is None:
            continue
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e
        return _parse_config(data, config_path)
    return None


def _parse_config(data: object, config_path: Path) -> CanonicalConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a mapping at the top level")

    version = str(data.get("version", "1.0.0"))
    if not is_valid_semver(version):
        raise ConfigError(f"{config_path}: version must be semver (e.g. 1.0.0), got {version!r}")
    compatibility = check_schema_compatibility(version)
    if not compatibility.compatible:
        raise ConfigError(f"{config_path}: {compatibility.error}")

    meta = data.get("meta") or {}
    content = data.get("content") or {}
    markers = data.get("markers") or {}
    merge = data.get("merge") or {}

    name = meta.get("name", "")
    if not name:
        raise ConfigError(f"{config_path}: meta.name is required")

    targets = data.get("targets") or ["claude"]
    if not isinstance(targets, list) or not all(isinstance(t, str) for t in targets):
        raise ConfigError(f"{config_path}: targets must be a list of names")

    prefix = str(markers.get("prefix", DEFAULT_PREFIX))
    try:
        validate_prefix(prefix)
    except ConfigError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    return CanonicalConfig(
        name=name,
        version=version,
        organization=meta.get("organization", ""),
        description=meta.get("description", ""),
        instructions=content.get("instructions", "instructions/AGENTS.md"),
        skills_dir=content.get("skills_dir", "skills"),
        rules_dir=content.get("rules_dir"),
        agents_dir=content.get("agents_dir"),
        marker_prefix=prefix,
        targets=targets,
        preserve_repo_content=bool(merge.get("preserve_repo_content", True)),
    )
