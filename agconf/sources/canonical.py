"""Scaffold a new canonical repository: config, instructions, example skill."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from agconf.config.loader import CANONICAL_CONFIG_NAMES
from agconf.config.prefix import to_marker_form, validate_prefix
from agconf.config.settings import SUPPORTED_SCHEMA_VERSION
from agconf.errors import ConfigError
from agconf.log import get_logger
from agconf.utils.fs import write_text_atomic

logger = get_logger(__name__)

CONFIG_NAME = CANONICAL_CONFIG_NAMES[0]
EXAMPLE_SKILL = "example-skill"

AGENTS_MD_TEMPLATE = """\
# {organization} Engineering Standards for AI Agents

This document defines company-wide engineering standards that all AI coding agents must follow.

## Purpose

These standards ensure consistency, maintainability, and operational excellence across all engineering projects.

---

## Development Principles

### Code Quality

- Write clean, readable code with meaningful names
- Follow existing patterns in the codebase
- Keep functions small and focused
- Add comments only when the "why" isn't obvious

### Testing

- Write tests for new functionality
- Ensure tests are deterministic and fast
- Use descriptive test names

---

## Getting Started

Add your organization's specific engineering standards below.

---

**Version**: 1.0
**Last Updated**: {date}
"""

EXAMPLE_SKILL_MD = """\
---
name: example-skill
description: An example skill demonstrating the skill format
---

# Example Skill

This is an example skill that demonstrates the skill format.

## When to Use

Use this skill when you need an example of how skills are structured.

## Instructions

1. Skills are defined in their own directories under `skills/`
2. Each skill has a `SKILL.md` file with frontmatter
3. The frontmatter must include `name` and `description`
4. Optional: Include a `references/` directory for additional files
"""


@dataclass
class InitResult:
    root: Path
    created: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    """Existing files left untouched."""


def init_canonical_repo(
    target_dir: str | Path,
    name: str | None = None,
    organization: str | None = None,
    marker_prefix: str | None = None,
    rules_dir: str | None = None,
    include_examples: bool = True,
    force: bool = False,
) -> InitResult:
    """Create the layout of a canonical repository in ``target_dir``.

    Args:
        name: Repository name (defaults to the directory name).
        marker_prefix: Marker prefix for synced content (defaults to ``name``).
        rules_dir: Also declare and create a rules directory.
        force: Overwrite an existing config file.

    Raises:
        ConfigError: If a config file already exists and ``force`` is not
            set, or the name or prefix is invalid.
    """
    root = Path(target_dir).resolve()
    existing = [n for n in CANONICAL_CONFIG_NAMES if (root / n).is_file()]
    if existing and not force:
        raise ConfigError(f"{root / existing[0]} already exists (use --force to overwrite)")

    name = (name or root.name).strip()
    if not name:
        raise ConfigError("A canonical repository name is required")
    prefix = validate_prefix(marker_prefix or to_marker_form(name))

    result = InitResult(root=root)
    _write(result, CONFIG_NAME, _config_yaml(name, organization, prefix, rules_dir))

    agents_md = "instructions/AGENTS.md"
    if (root / agents_md).exists():
        result.kept.append(agents_md)
    else:
        date = datetime.now(timezone.utc).date().isoformat()
        _write(result, agents_md, AGENTS_MD_TEMPLATE.format(organization=organization or "Your Organization", date=date))

    (root / "skills").mkdir(parents=True, exist_ok=True)
    if include_examples:
        _write(result, f"skills/{EXAMPLE_SKILL}/SKILL.md", EXAMPLE_SKILL_MD)
        _write(result, f"skills/{EXAMPLE_SKILL}/references/.gitkeep", "")
    if rules_dir:
        _write(result, f"{rules_dir.strip('/')}/.gitkeep", "")

    logger.info("Initialized canonical repository %s in %s", name, root)
    return result


def _write(result: InitResult, rel: str, text: str) -> None:
    write_text_atomic(result.root / rel, text)
    result.created.append(rel)


def _config_yaml(name: str, organization: str | None, prefix: str, rules_dir: str | None) -> str:
    meta = {"name": name}
    if organization:
        meta["organization"] = organization
    content = {"instructions": "instructions/AGENTS.md", "skills_dir": "skills"}
    if rules_dir:
        content["rules_dir"] = rules_dir.strip("/")

    config = {
        "version": SUPPORTED_SCHEMA_VERSION,
        "meta": meta,
        "content": content,
        "targets": ["claude"],
        "markers": {"prefix": prefix},
        "merge": {"preserve_repo_content": True},
    }
    text = yaml.safe_dump(config, sort_keys=False, default_flow_style=False)
    if not rules_dir:
        text = text.replace("  skills_dir: skills\n", "  skills_dir: skills\n  # rules_dir: rules\n", 1)
    return text
