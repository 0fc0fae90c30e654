"""Tests for rule parsing and the aggregated rules content."""

from agconf.content.rules import (
    build_rules_content,
    parse_rule,
    paths_comment,
    shift_heading_levels,
)


# --- Heading Shift Tests ---


def test_shift_heading_levels():
    assert shift_heading_levels("# Title\n## Sub\ntext", 1) == "## Title\n### Sub\ntext"


def test_shift_clamps_levels():
    assert shift_heading_levels("###### Deep", 2) == "###### Deep"
    assert shift_heading_levels("## Two", -5) == "# Two"


def test_shift_skips_fenced_code():
    text = "# Real\n```bash\n# comment in code\n```\n# After"
    assert shift_heading_levels(text, 1) == "## Real\n```bash\n# comment in code\n```\n## After"


def test_shift_ignores_hash_without_space():
    assert shift_heading_levels("#hashtag\n#", 1) == "#hashtag\n#"


def test_shift_empty():
    assert shift_heading_levels("", 1) == ""


# --- Paths Comment Tests ---


def test_paths_comment_single():
    assert paths_comment(["src/**"]) == "<!-- Applies to: src/** -->"


def test_paths_comment_multiple():
    assert paths_comment(["src/**", "lib/*.py"]) == (
        "<!-- Applies to:\n     - src/**\n     - lib/*.py\n-->"
    )


def test_paths_comment_none():
    assert paths_comment([]) == ""


# --- Rule Tests ---


def test_parse_rule_paths():
    rule = parse_rule("---\npaths:\n  - src/**\n---\n# Auth\n", "security/auth.md")
    assert rule.paths == ["src/**"]
    assert rule.body == "# Auth\n"

    assert parse_rule("---\npaths: src/**\n---\nx", "a.md").paths == ["src/**"]
    assert parse_rule("# No header", "b.md").paths == []


def test_build_rules_content():
    rule = parse_rule("---\npaths:\n  - src/**\n---\n# Auth\nUse tokens.\n", "security/auth.md")
    assert build_rules_content([rule]) == (
        "# Project Rules\n"
        "\n"
        "<!-- Rule: security/auth.md -->\n"
        "<!-- Applies to: src/** -->\n"
        "## Auth\n"
        "Use tokens."
    )


def test_build_rules_content_is_sorted():
    rules = [parse_rule("# B", "b.md"), parse_rule("# A", "a.md")]
    content = build_rules_content(rules)
    assert content.index("<!-- Rule: a.md -->") < content.index("<!-- Rule: b.md -->")
    assert content == build_rules_content(list(reversed(rules)))


def test_build_rules_content_empty():
    assert build_rules_content([]) == "# Project Rules"
