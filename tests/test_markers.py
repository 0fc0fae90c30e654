"""Tests for marker blocks and the aggregated rules section."""

from agconf.config.settings import EngineConfig
from agconf.content.hashing import hash_content
from agconf.content.markers import MarkerBlockEngine

GLOBAL = "# Company Standards\n\nAlways write tests.\n"


def _engine(prefix: str = "agconf") -> MarkerBlockEngine:
    return MarkerBlockEngine(EngineConfig(prefix=prefix))


# --- Document Tests ---


def test_build_document_layout():
    doc = _engine().build_document(GLOBAL, "Local notes")
    assert doc == (
        "<!-- agconf:global:start -->\n"
        "<!-- DO NOT EDIT THIS SECTION - Managed by agconf CLI -->\n"
        f"<!-- Content hash: {hash_content(GLOBAL)} -->\n"
        "\n"
        "# Company Standards\n\nAlways write tests.\n"
        "\n"
        "<!-- agconf:global:end -->\n"
        "\n"
        "<!-- agconf:repo:start -->\n"
        "<!-- Repository-specific instructions below -->\n"
        "\n"
        "Local notes\n"
        "\n"
        "<!-- agconf:repo:end -->\n"
    )


def test_parse_and_extract_repo_content():
    engine = _engine()
    parsed = engine.parse(engine.build_document(GLOBAL, "Local notes"))
    assert parsed.has_markers
    assert parsed.global_block.startswith("<!-- DO NOT EDIT")
    assert engine.extract_repo_content(parsed) == "Local notes"


def test_empty_repo_block_extracts_none():
    engine = _engine()
    assert engine.extract_repo_content(engine.parse(engine.build_document(GLOBAL, None))) is None


def test_parse_document_without_markers():
    parsed = _engine().parse("# Plain\n")
    assert not parsed.has_markers
    assert parsed.global_block is None
    assert parsed.repo_block is None


def test_strip_bookkeeping_and_metadata():
    engine = _engine()
    block = engine.parse(engine.build_document(GLOBAL, None)).global_block
    assert engine.strip_bookkeeping(block) == GLOBAL.strip()
    assert engine.block_metadata(block).content_hash == hash_content(GLOBAL)


def test_global_block_change_detection():
    engine = _engine()
    doc = engine.build_document(GLOBAL, "Local notes")
    assert not engine.has_global_block_changes(doc)
    assert engine.has_global_block_changes(doc.replace("Always write tests.", "Tests optional."))
    # edits to the repo block are not managed
    assert not engine.has_global_block_changes(doc.replace("Local notes", "Other notes"))


def test_global_block_without_hash_is_not_changed():
    doc = "<!-- agconf:global:start -->\nold content\n<!-- agconf:global:end -->\n"
    engine = _engine()
    assert engine.is_managed(doc)
    assert not engine.has_global_block_changes(doc)


def test_is_managed():
    engine = _engine()
    assert engine.is_managed(engine.build_document(GLOBAL, None))
    assert not engine.is_managed("# Plain\n")
    assert not engine.is_managed("<!-- agconf:repo:start -->\nx\n<!-- agconf:repo:end -->\n")


def test_markers_use_marker_form_of_prefix():
    doc = _engine("my_org").build_document(GLOBAL, None)
    assert "<!-- my-org:global:start -->" in doc
    assert _engine("my-org").is_managed(doc)


# --- Rules Section Tests ---


def _section(engine: MarkerBlockEngine, body: str = "# Project Rules\n\n## Auth") -> str:
    return engine.build_rules_section(body, 1)


def test_rules_section_metadata():
    engine = _engine()
    section = _section(engine)
    meta = engine.block_metadata(section)
    assert meta.rule_count == 1
    assert meta.content_hash == hash_content("# Project Rules\n\n## Auth")


def test_insert_replaces_existing_section():
    engine = _engine()
    doc = engine.insert_rules_section(engine.build_document(GLOBAL, None), _section(engine))
    updated = engine.insert_rules_section(doc, _section(engine, "# Project Rules\n\n## Changed"))
    assert updated.count("<!-- agconf:rules:start -->") == 1
    assert "## Changed" in updated
    assert "## Auth" not in updated


def test_insert_after_global_block():
    engine = _engine()
    doc = engine.build_document(GLOBAL, "Local notes")
    section = _section(engine)
    end = "<!-- agconf:global:end -->"
    assert engine.insert_rules_section(doc, section) == doc.replace(end, f"{end}\n\n{section}")


def test_insert_before_repo_block():
    engine = _engine()
    doc = engine.build_repo_block("Local notes") + "\n"
    section = _section(engine)
    assert engine.insert_rules_section(doc, section) == f"{section}\n\n{doc}"


def test_insert_appends_without_markers():
    engine = _engine()
    section = _section(engine)
    assert engine.insert_rules_section("Plain text\n\n\n", section) == f"Plain text\n\n{section}\n"


def test_rules_section_change_detection():
    engine = _engine()
    doc = engine.insert_rules_section(engine.build_document(GLOBAL, None), _section(engine))
    assert not engine.has_rules_section_changes(doc)
    assert engine.has_rules_section_changes(doc.replace("## Auth", "## Auth (edited)"))
    assert not engine.has_global_block_changes(doc)


def test_parse_rules_section():
    engine = _engine()
    assert not engine.parse_rules_section("# Plain\n").has_markers
    doc = engine.insert_rules_section(engine.build_document(GLOBAL, None), _section(engine))
    parsed = engine.parse_rules_section(doc)
    assert parsed.has_markers
    assert "## Auth" in parsed.content


def test_remove_rules_section():
    engine = _engine()
    base = engine.build_document(GLOBAL, "Local notes")
    with_rules = engine.insert_rules_section(base, _section(engine))
    assert engine.remove_rules_section(with_rules) == base
    assert engine.remove_rules_section(base) == base


def test_insert_with_end_marker_before_start_keeps_text_once():
    engine = _engine()
    doc = (
        "Intro\n"
        "<!-- agconf:rules:end -->\n"
        "Between the stray markers\n"
        "<!-- agconf:rules:start -->\n"
        "Tail\n"
    )
    section = _section(engine)
    updated = engine.insert_rules_section(doc, section)
    assert updated == f"{doc.rstrip()}\n\n{section}\n"
    assert updated.count("Between the stray markers") == 1
    assert updated.count("Tail") == 1


def test_out_of_order_markers_converge_on_resync():
    engine = _engine()
    doc = "<!-- agconf:rules:end -->\nNotes\n<!-- agconf:rules:start -->\nTail\n"
    once = engine.insert_rules_section(doc, _section(engine))
    twice = engine.insert_rules_section(once, _section(engine, "# Project Rules\n\n## Changed"))
    assert twice.count("## Changed") == 1
    assert "## Auth" not in twice
    assert twice.count("Notes") == 1
    assert twice.count("Tail") == 1
    assert "## Changed" in engine.parse_rules_section(twice).content


def test_remove_ignores_out_of_order_markers():
    engine = _engine()
    doc = "<!-- agconf:rules:end -->\nNotes\n<!-- agconf:rules:start -->\n"
    assert engine.remove_rules_section(doc) == doc
    assert engine.parse_rules_section(doc).content is None
