"""Rule files and the aggregated rules section.

A rule is a markdown file under the canonical ``rules/`` directory. Its
optional ``paths`` frontmatter lists glob patterns the rule applies to. For
targets that cannot load rule files individually, all rules are concatenated
into one section of ``AGENTS.md`` with their headings pushed one level down.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from agconf.content import frontmatter as fm

RULES_HEADING = "# Project Rules"
_HEADING_RE = re.compile(r"^(#{1,6})(\s+.*)$")
_FENCE = "```"


@dataclass
class Rule:
    """A parsed rule file."""

    relative_path: str
    """POSIX path relative to the rules directory, e.g. ``security/api-auth.md``."""

    raw_content: str
    frontmatter: fm.Frontmatter | None
    body: str

    @property
    def paths(self) -> list[str]:
        value = (self.frontmatter or {}).get("paths")
        if isinstance(value, list):
            return [p for p in value if p]
        if isinstance(value, str) and value:
            return [value]
        return []


def parse_rule(content: str, relative_path: str) -> Rule:
    parsed = fm.parse(content)
    return Rule(
        relative_path=relative_path,
        raw_content=content,
        frontmatter=parsed.frontmatter,
        body=parsed.body,
    )


def shift_heading_levels(content: str, increment: int) -> str:
    """Move every ATX heading ``increment`` levels deeper.

    Levels are clamped to 1..6. Lines inside fenced code blocks are left
    alone, as are setext (underlined) headings.
    """
    if not content:
        return ""

    in_fence = False
    lines = []
    for line in content.split("\n"):
        if line.strip().startswith(_FENCE):
            in_fence = not in_fence
            lines.append(line)
            continue
        match = None if in_fence else _HEADING_RE.match(line)
        if not match:
            lines.append(line)
            continue
        level = min(6, max(1, len(match.group(1)) + increment))
        lines.append("#" * level + match.group(2))
    return "\n".join(lines)


def paths_comment(paths: list[str]) -> str:
    """HTML comment naming the globs a rule applies to ("" for none)."""
    if not paths:
        return ""
    if len(paths) == 1:
        return f"<!-- Applies to: {paths[0]} -->"
    items = "\n".join(f"     - {p}" for p in paths)
    return f"<!-- Applies to:\n{items}\n-->"


def build_rules_content(rules: list[Rule]) -> str:
    """Concatenate rules into the hashed body of the rules section.

    Rules are ordered by relative path so the output is deterministic.
    """
    parts = [RULES_HEADING, ""]
    for rule in sorted(rules, key=lambda r: r.relative_path):
        parts.append(f"<!-- Rule: {rule.relative_path} -->")
        comment = paths_comment(rule.paths)
        if comment:
            parts.append(comment)
        parts.append(shift_heading_levels(rule.body.strip(), 1))
        parts.append("")
    return "\n".join(parts).strip()
