"""Registry — managed content types and their sync/check operations.

The registry provides:
- Skills: directories copied per target, with a tagged SKILL.md
- Rules: per-file copies, or one aggregated section in AGENTS.md
- Agents: sub-agent definitions for targets that support them
- Checker: read-only detection of hand-edits to anything managed
"""
