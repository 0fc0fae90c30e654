"""Tests for schema compatibility and the lockfile store."""

import json
import tempfile
from pathlib import Path

import pytest

from agconf.config.settings import EngineConfig
from agconf.content.hashing import hash_content
from agconf.errors import LockfileError
from agconf.sync.lockfile import ContentSet, LockfileSource, LockfileStore
from agconf.sync.schema import check_schema_compatibility, is_valid_semver


def _store(repo_dir: str) -> LockfileStore:
    return LockfileStore(repo_dir, EngineConfig())


def _write_raw(store: LockfileStore, data) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    text = data if isinstance(data, str) else json.dumps(data)
    store.path.write_text(text, encoding="utf-8")


# --- Schema Tests ---


def test_same_version_is_compatible():
    result = check_schema_compatibility("1.0.0", "1.0.0")
    assert result.compatible
    assert result.warning is None
    assert result.error is None


def test_older_minor_is_compatible():
    assert check_schema_compatibility("1.0.0", "1.2.0").compatible


def test_newer_minor_warns():
    result = check_schema_compatibility("1.3.0", "1.0.0")
    assert result.compatible
    assert "1.3.0" in result.warning


def test_newer_major_requires_newer_cli():
    result = check_schema_compatibility("2.0.0", "1.0.0")
    assert not result.compatible
    assert "requires a newer CLI" in result.error
    assert result.version == "2.0.0"


def test_older_major_is_outdated():
    result = check_schema_compatibility("1.0.0", "2.0.0")
    assert not result.compatible
    assert "outdated and no longer supported" in result.error


def test_missing_parts_count_as_zero():
    assert check_schema_compatibility("1", "1.0.0").compatible
    assert check_schema_compatibility("1.0", "1.0.0").compatible


def test_non_numeric_version_is_incompatible():
    assert not check_schema_compatibility("one.two", "1.0.0").compatible


def test_is_valid_semver():
    assert is_valid_semver("1.2.3")
    assert not is_valid_semver("1.2")
    assert not is_valid_semver("v1.2.3")


# --- Lockfile Tests ---


def test_read_missing_lockfile():
    with tempfile.TemporaryDirectory() as tmp:
        assert _store(tmp).read() is None


def test_write_and_read():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        written = store.write(
            source=LockfileSource(type="github", repository="org/standards", ref="v1.2.0", commit_sha="abc123"),
            global_content="# Standards\n",
            skills=["review", "deploy"],
            targets=["claude", "codex"],
            marker_prefix="agconf",
            pinned_version="1.2.0",
            rules=ContentSet(["security/auth.md"], "sha256:000000000000"),
        )
        assert store.path == Path(tmp) / ".agconf" / "lockfile.json"
        assert store.path.read_text().endswith("}\n")

        result = store.read()
        assert result.compatibility.compatible
        lockfile = result.lockfile
        assert lockfile == written
        assert lockfile.version == "1.0.0"
        assert lockfile.synced_at.endswith("Z")
        assert lockfile.source.display == "org/standards@v1.2.0"
        assert lockfile.content.global_block_hash == hash_content("# Standards\n")
        assert lockfile.content.rules.files == ["security/auth.md"]
        assert lockfile.content.agents is None


def test_empty_content_sets_are_omitted():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        store.write(
            source=LockfileSource(type="local", path="/canonical"),
            global_content="x",
            skills=[],
            targets=["claude"],
            rules=ContentSet([], ""),
        )
        data = json.loads(store.path.read_text())
        assert "rules" not in data["content"]
        assert data["source"] == {"type": "local", "path": "/canonical"}


def test_invalid_json_raises():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        _write_raw(store, "{not json")
        with pytest.raises(LockfileError):
            store.read()


def test_missing_version_raises():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        _write_raw(store, {"synced_at": "x"})
        with pytest.raises(LockfileError):
            store.read()


def test_missing_field_raises():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        _write_raw(store, {"version": "1.0.0", "synced_at": "x", "source": {"type": "local", "path": "/c"}})
        with pytest.raises(LockfileError, match="content"):
            store.read()


def test_incompatible_lockfile_is_not_parsed():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        _write_raw(store, {"version": "2.0.0", "future": True})
        result = store.read()
        assert result.lockfile is None
        assert not result.compatibility.compatible
        assert "requires a newer CLI" in result.compatibility.error


def test_legacy_major_only_version_is_read():
    with tempfile.TemporaryDirectory() as tmp:
        store = _store(tmp)
        _write_raw(store, {
            "version": "1",
            "synced_at": "2025-01-01T00:00:00.000Z",
            "source": {"type": "local", "path": "/canonical"},
            "content": {"agents_md": {"global_block_hash": "sha256:000000000000"}, "skills": ["a"]},
        })
        lockfile = store.read().lockfile
        assert lockfile.content.skills == ["a"]
        assert lockfile.content.targets == ["claude"]
        assert lockfile.content.merged is True
