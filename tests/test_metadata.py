"""Tests for content hashing and managed metadata tagging."""

from agconf.config.settings import EngineConfig
from agconf.content.frontmatter import parse
from agconf.content.hashing import ContentHasher, hash_content, is_valid_hash
from agconf.content.metadata import InvalidMetadata, MetadataTagger, string_metadata

SKILL = "---\nname: review\ndescription: Reviews code\n---\n# Review\n\nLook closely.\n"


def _tagger(prefix: str = "agconf") -> MetadataTagger:
    return MetadataTagger(EngineConfig(prefix=prefix), ContentHasher())


# --- Hashing Tests ---


def test_hash_format():
    value = hash_content("hello")
    assert value.startswith("sha256:")
    assert len(value) == len("sha256:") + 12
    assert is_valid_hash(value)


def test_hash_ignores_surrounding_whitespace():
    assert hash_content("abc") == hash_content("\n  abc \n\n")
    assert hash_content("abc") != hash_content("abd")


def test_hash_entries_is_order_independent():
    hasher = ContentHasher()
    a = hasher.hash_entries([("b.md", "two"), ("a.md", "one")])
    b = hasher.hash_entries([("a.md", "one"), ("b.md", "two")])
    assert a == b
    assert a == hash_content("a.md:one\n---\nb.md:two")


def test_hash_entries_empty():
    assert ContentHasher().hash_entries([]) == ""


# --- Tagging Tests ---


def test_add_managed_metadata_appends_block():
    tagged = _tagger().add_managed_metadata(SKILL)
    expected_hash = hash_content(SKILL)
    assert tagged == (
        "---\n"
        "name: review\n"
        "description: Reviews code\n"
        "metadata:\n"
        '  agconf_managed: "true"\n'
        f'  agconf_content_hash: "{expected_hash}"\n'
        "---\n"
        "# Review\n\nLook closely.\n"
    )


def test_strip_restores_original_exactly():
    tagger = _tagger()
    for doc in [
        SKILL,
        "# No header\n",
        "---\nname: x\nmetadata:\n  author: me\n---\nbody",
        "---\nname: 'quoted'   \ntools: [a, b]\n---\n\nbody\n",
        "",
    ]:
        assert tagger.strip_managed_metadata(tagger.add_managed_metadata(doc)) == doc


def test_empty_metadata_key_is_normalized_before_hashing():
    tagger = _tagger()
    expected = "---\nname: Foo\n---\nbody\n"
    for doc in [
        "---\nname: Foo\nmetadata:\n---\nbody\n",
        "---\nname: Foo\nmetadata: {}\n---\nbody\n",
        "---\nname: Foo\nmetadata:\n  # filled in by sync\n---\nbody\n",
    ]:
        tagged = tagger.add_managed_metadata(doc)
        assert tagger.strip_managed_metadata(tagged) == expected
        assert tagger.stored_hash(tagged) == hash_content(expected)
        assert not tagger.has_manual_changes(tagged)
        assert tagger.add_managed_metadata(tagged) == tagged


def test_metadata_only_header_is_normalized_to_body():
    tagger = _tagger()
    tagged = tagger.add_managed_metadata("---\nmetadata: {}\n---\n# Body\n")
    assert tagger.strip_managed_metadata(tagged) == "# Body\n"
    assert not tagger.has_manual_changes(tagged)


def test_add_is_idempotent():
    tagger = _tagger()
    once = tagger.add_managed_metadata(SKILL)
    assert tagger.add_managed_metadata(once) == once


def test_add_to_document_without_header():
    tagger = _tagger()
    tagged = tagger.add_managed_metadata("# Body\n")
    assert tagged.startswith("---\nmetadata:\n  agconf_managed: \"true\"\n")
    assert tagged.endswith("---\n# Body\n")
    assert tagger.strip_managed_metadata(tagged) == "# Body\n"


def test_add_keeps_existing_metadata_entries():
    doc = "---\nname: x\nmetadata:\n  author: me\n---\nbody"
    tagged = _tagger().add_managed_metadata(doc, source_path="sec/auth.md")
    metadata = parse(tagged).frontmatter["metadata"]
    assert metadata["author"] == "me"
    assert metadata["agconf_managed"] == "true"
    assert metadata["agconf_source_path"] == "sec/auth.md"


def test_is_managed_and_stored_hash():
    tagger = _tagger()
    tagged = tagger.add_managed_metadata(SKILL)
    assert tagger.is_managed(tagged)
    assert not tagger.is_managed(SKILL)
    assert tagger.stored_hash(tagged) == hash_content(SKILL)
    assert tagger.stored_hash(SKILL) is None


def test_manual_changes_detected():
    tagger = _tagger()
    tagged = tagger.add_managed_metadata(SKILL)
    assert not tagger.has_manual_changes(tagged)
    assert tagger.has_manual_changes(tagged.replace("Look closely.", "Skim it."))


def test_trailing_whitespace_edit_is_not_a_change():
    tagger = _tagger()
    tagged = tagger.add_managed_metadata(SKILL)
    assert not tagger.has_manual_changes(tagged + "\n\n")


def test_no_stored_hash_is_not_a_change():
    assert not _tagger().has_manual_changes(SKILL)


def test_prefix_uses_metadata_form():
    tagger = _tagger("my-org")
    tagged = tagger.add_managed_metadata(SKILL)
    assert "my_org_managed" in tagged
    assert tagger.is_managed(tagged)


def test_other_prefix_keys_are_left_alone():
    other = _tagger("other").add_managed_metadata(SKILL)
    tagger = _tagger()
    assert not tagger.is_managed(other)
    assert tagger.strip_managed_metadata(other) == other


# --- Typed Metadata Tests ---


def test_string_metadata_accessor():
    assert string_metadata(None) == {}
    assert string_metadata({"name": "x"}) == {}
    assert string_metadata({"metadata": {"a": "b"}}) == {"a": "b"}
    assert isinstance(string_metadata({"metadata": ["a"]}), InvalidMetadata)
    assert isinstance(string_metadata({"metadata": "text"}), InvalidMetadata)


def test_invalid_metadata_is_not_managed():
    doc = "---\nmetadata: [agconf_managed]\n---\nbody"
    assert not _tagger().is_managed(doc)
