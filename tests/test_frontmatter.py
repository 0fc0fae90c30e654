"""Tests for frontmatter parsing and serialization."""

import pytest

from agconf.content import frontmatter as fm


# --- Parse Tests ---


def test_parse_scalars_lists_and_maps():
    text = (
        "---\n"
        "name: review\n"
        'description: "Review: carefully"\n'
        "tools:\n"
        "  - Read\n"
        "  - Write\n"
        "metadata:\n"
        "  author: platform\n"
        "---\n"
        "# Review\n"
    )
    parsed = fm.parse(text)
    assert parsed.has_frontmatter
    assert parsed.frontmatter == {
        "name": "review",
        "description": "Review: carefully",
        "tools": ["Read", "Write"],
        "metadata": {"author": "platform"},
    }
    assert parsed.body == "# Review\n"


def test_parse_without_header():
    text = "# Just markdown\n\nNo header here.\n"
    parsed = fm.parse(text)
    assert parsed.frontmatter is None
    assert parsed.body == text
    assert parsed.raw == ""


def test_parse_malformed_header_is_treated_as_no_header():
    text = "---\nthis is not yaml\n---\nbody\n"
    parsed = fm.parse(text)
    assert parsed.frontmatter is None
    assert parsed.body == text


def test_parse_indented_line_before_key_is_malformed():
    text = "---\n  orphan: value\n---\nbody\n"
    assert fm.parse(text).frontmatter is None


def test_parse_inline_list_with_quoted_comma():
    parsed = fm.parse_header('tags: [a, "b, c", \'d\']')
    assert parsed == {"tags": ["a", "b, c", "d"]}


def test_parse_empty_inline_collections():
    parsed = fm.parse_header("tags: []\nmetadata: {}")
    assert parsed == {"tags": [], "metadata": {}}


def test_parse_unindented_block_list():
    parsed = fm.parse_header("tools:\n- Read\n- Grep\nname: x")
    assert parsed == {"tools": ["Read", "Grep"], "name": "x"}


def test_parse_key_without_value_is_empty_string():
    assert fm.parse_header("name:\ndescription: d") == {"name": "", "description": "d"}


def test_parse_skips_comments_and_blank_lines():
    parsed = fm.parse_header("# a comment\n\nname: x # trailing\n")
    assert parsed == {"name": "x"}


def test_parse_single_quoted_escape():
    assert fm.parse_header("title: 'it''s'") == {"title": "it's"}


def test_parse_double_quoted_escapes():
    assert fm.parse_header('title: "say \\"hi\\" \\\\ done"') == {"title": 'say "hi" \\ done'}


def test_parse_records_header_span():
    text = "---\nname: x\n---\nbody"
    parsed = fm.parse(text)
    assert text[parsed.raw_start:parsed.raw_end] == "name: x"


# --- Serialize Tests ---


def test_serialize_quotes_ambiguous_scalars():
    out = fm.serialize({
        "a": "plain",
        "b": "has: colon",
        "c": "true",
        "d": "42",
        "e": "",
        "f": "@mention",
        "g": " padded",
    })
    assert out.split("\n") == [
        "a: plain",
        'b: "has: colon"',
        'c: "true"',
        'd: "42"',
        'e: ""',
        'f: "@mention"',
        'g: " padded"',
    ]


def test_serialize_lists_and_maps():
    out = fm.serialize({"tools": ["Read"], "none": [], "meta": {"k": "v"}, "empty": {}})
    assert out == 'tools:\n  - "Read"\nnone: []\nmeta:\n  k: v\nempty: {}'


def test_round_trip_within_grammar():
    original = {
        "name": "x",
        "description": "Has: colon and # hash",
        "count": "42",
        "flag": "yes",
        "tags": ["a", "b # c", 'quote "d"'],
        "empty": [],
        "meta": {"k": "@v", "plain": "value"},
        "blank": "",
        "path": "C:\\temp",
    }
    assert fm.parse_header(fm.serialize(original)) == original


def test_render_and_parse_document():
    mapping = {"name": "x", "paths": ["src/**"]}
    doc = fm.render(mapping, "# Body\n")
    parsed = fm.parse(doc)
    assert parsed.frontmatter == mapping
    assert parsed.body == "# Body\n"


def test_render_empty_mapping_returns_body():
    assert fm.render({}, "body") == "body"


def test_needs_quoting():
    assert fm.needs_quoting("null")
    assert fm.needs_quoting("3.14")
    assert fm.needs_quoting("-dash")
    assert fm.needs_quoting("[list]")
    assert not fm.needs_quoting("simple value")
    assert not fm.needs_quoting("v1.2-beta")
    assert fm.needs_quoting("a\u2028b")
    assert fm.needs_quoting("a\x0bb")


def test_round_trip_unicode_line_separators():
    for value in ["a\u2028b", "a\u2029b", "a\x85b", "a\x0bb", "a\x0cb", "a\x1cb", "crlf\r\nend"]:
        header = fm.serialize({"description": value, "meta": {"note": value}})
        assert len(header.split("\n")) == 3
        assert fm.parse_header(header) == {"description": value, "meta": {"note": value}}


def test_parse_document_with_separator_in_value():
    doc = fm.render({"name": "x", "description": "first\u2028second"}, "# Body\n")
    parsed = fm.parse(doc)
    assert parsed.frontmatter == {"name": "x", "description": "first\u2028second"}
    assert parsed.body == "# Body\n"


def test_parse_keeps_raw_separator_inside_one_line():
    raw = "name: x\ndescription: before\u2028after\ntags: [a]"
    assert fm.parse_header(raw) == {"name": "x", "description": "before\u2028after", "tags": ["a"]}


def test_parse_crlf_header():
    assert fm.parse("---\r\nname: x\r\ntags:\r\n  - a\r\n---\r\nbody").frontmatter == {"name": "x", "tags": ["a"]}


def test_parse_hex_escape():
    assert fm.parse_header('title: "a\\x1cb \\x"') == {"title": "a\x1cb \\x"}


def test_serialize_rejects_unparseable_keys():
    with pytest.raises(fm.FrontmatterError):
        fm.serialize({"bad key": "v"})
    with pytest.raises(fm.FrontmatterError):
        fm.serialize({"metadata": {"my key": "v"}})
    with pytest.raises(fm.FrontmatterError):
        fm.serialize({"name\n": "v"})
    with pytest.raises(fm.FrontmatterError):
        fm.render({"-dash": "v"}, "body")
