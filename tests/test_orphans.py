"""Tests for orphan detection and safe deletion."""

import tempfile
from pathlib import Path

import pytest

from agconf.config.settings import EngineConfig
from agconf.content.metadata import MetadataTagger
from agconf.sources.targets import TARGETS
from agconf.sync.orphans import OrphanResolver, find_orphans

SKILL = "---\nname: old\ndescription: Old skill\n---\n# Old\n"
RULE = "---\npaths:\n  - src/**\n---\n# Old rule\n"


def _resolver(repo_dir: str) -> OrphanResolver:
    config = EngineConfig()
    return OrphanResolver(repo_dir, config, MetadataTagger(config))


def _write_skill(repo_dir: str, name: str, content: str) -> Path:
    skill_dir = Path(repo_dir) / ".claude" / "skills" / name
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(content)
    return skill_dir


# --- Detection Tests ---


def test_find_orphans():
    assert find_orphans(["a", "b", "c"], ["b"]) == ["a", "c"]
    assert find_orphans([], ["a"]) == []
    assert find_orphans(["a"], ["a"]) == []


# --- Resolution Tests ---


def test_tracked_managed_skill_is_deleted():
    with tempfile.TemporaryDirectory() as tmp:
        skill_dir = _write_skill(tmp, "old", MetadataTagger(EngineConfig()).add_managed_metadata(SKILL))
        report = _resolver(tmp).resolve("skills", ["old"], ["old"], [TARGETS["claude"]])
        assert report.deleted == ["old"]
        assert report.skipped == []
        assert not skill_dir.exists()


def test_unmanaged_skill_is_kept():
    with tempfile.TemporaryDirectory() as tmp:
        skill_dir = _write_skill(tmp, "old", SKILL)
        report = _resolver(tmp).resolve("skills", ["old"], ["old"], [TARGETS["claude"]])
        assert report.deleted == []
        assert report.skipped == ["old"]
        assert skill_dir.exists()


def test_modified_untracked_skill_is_kept():
    with tempfile.TemporaryDirectory() as tmp:
        tagged = MetadataTagger(EngineConfig()).add_managed_metadata(SKILL)
        skill_dir = _write_skill(tmp, "old", tagged.replace("# Old", "# Edited"))
        report = _resolver(tmp).resolve("skills", ["old"], [], [TARGETS["claude"]])
        assert report.skipped == ["old"]
        assert skill_dir.exists()


def test_unmodified_untracked_skill_is_deleted():
    with tempfile.TemporaryDirectory() as tmp:
        skill_dir = _write_skill(tmp, "old", MetadataTagger(EngineConfig()).add_managed_metadata(SKILL))
        report = _resolver(tmp).resolve("skills", ["old"], [], [TARGETS["claude"]])
        assert report.deleted == ["old"]
        assert not skill_dir.exists()


def test_modified_tracked_skill_is_deleted():
    with tempfile.TemporaryDirectory() as tmp:
        tagged = MetadataTagger(EngineConfig()).add_managed_metadata(SKILL)
        skill_dir = _write_skill(tmp, "old", tagged.replace("# Old", "# Edited"))
        report = _resolver(tmp).resolve("skills", ["old"], ["old"], [TARGETS["claude"]])
        assert report.deleted == ["old"]
        assert not skill_dir.exists()


def test_missing_location_is_ignored():
    with tempfile.TemporaryDirectory() as tmp:
        report = _resolver(tmp).resolve("skills", ["gone"], ["gone"], [TARGETS["claude"]])
        assert report.deleted == []
        assert report.skipped == []


def test_deleted_rule_prunes_empty_directories():
    with tempfile.TemporaryDirectory() as tmp:
        rules_root = Path(tmp) / ".claude" / "rules"
        rule_path = rules_root / "security" / "auth.md"
        rule_path.parent.mkdir(parents=True)
        rule_path.write_text(MetadataTagger(EngineConfig()).add_managed_metadata(RULE, "security/auth.md"))

        report = _resolver(tmp).resolve("rules", ["security/auth.md"], ["security/auth.md"], [TARGETS["claude"]])
        assert report.deleted == ["security/auth.md"]
        assert not (rules_root / "security").exists()
        assert rules_root.is_dir()


def test_rules_ignored_for_aggregating_target():
    with tempfile.TemporaryDirectory() as tmp:
        rule_path = Path(tmp) / ".codex" / "rules" / "a.md"
        rule_path.parent.mkdir(parents=True)
        rule_path.write_text(MetadataTagger(EngineConfig()).add_managed_metadata(RULE))
        report = _resolver(tmp).resolve("rules", ["a.md"], ["a.md"], [TARGETS["codex"]])
        assert report.deleted == []
        assert rule_path.exists()


def test_unknown_kind_raises():
    with tempfile.TemporaryDirectory() as tmp:
        with pytest.raises(ValueError):
            _resolver(tmp).resolve("widgets", ["a"], [], [TARGETS["claude"]])
