"""Target layouts — where each agent tool expects its configuration."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from agconf.errors import ConfigError

DEFAULT_TARGET = "claude"


@dataclass(frozen=True)
class TargetConfig:
    """Filesystem layout for one target agent tool."""

    name: str
    dir: str
    """Configuration directory at the repository root, e.g. ``.claude``."""

    pointer_file: str | None = None
    """Root file that references ``AGENTS.md`` (None if the tool reads it directly)."""

    per_file_rules: bool = True
    """Rules are loaded from ``<dir>/rules``; otherwise they go into ``AGENTS.md``."""

    supports_agents: bool = False

    @property
    def skills_dir(self) -> str:
        return f"{self.dir}/skills"

    @property
    def rules_dir(self) -> str:
        return f"{self.dir}/rules"

    @property
    def agents_dir(self) -> str:
        return f"{self.dir}/agents"


TARGETS: dict[str, TargetConfig] = {
    "claude": TargetConfig(
        name="claude",
        dir=".claude",
        pointer_file="CLAUDE.md",
        per_file_rules=True,
        supports_agents=True,
    ),
    "codex": TargetConfig(
        name="codex",
        dir=".codex",
        pointer_file=None,
        per_file_rules=False,
        supports_agents=False,
    ),
}


def get_target_config(name: str) -> TargetConfig:
    try:
        return TARGETS[name]
    except KeyError:
        raise ConfigError(
            f'Invalid target "{name}". Supported targets: {", ".join(TARGETS)}'
        ) from None


def parse_target_names(values: str | Iterable[str] | None) -> list[str]:
    """Parse target names from user input.

    Accepts a comma-separated string or several of them. Names are
    case-insensitive and deduplicated in first-seen order. No names means
    the default target.

    Raises:
        ConfigError: If a name is not a known target.
    """
    if values is None:
        values = []
    elif isinstance(values, str):
        values = [values]

    targets: list[str] = []
    for value in values:
        for part in value.split(","):
            name = part.strip().lower()
            if not name:
                continue
            get_target_config(name)
            if name not in targets:
                targets.append(name)

    return targets or [DEFAULT_TARGET]
