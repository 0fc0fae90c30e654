"""Skills: ``skills/<name>/`` directories copied into every target."""

from __future__ import annotations

from pathlib import Path

from agconf.log import get_logger
from agconf.registry.base import CheckedFile, ContentRegistry, SyncOutcome, ValidationError, missing_required_fields
from agconf.sources.targets import TargetConfig
from agconf.utils.file_scanner import list_subdirectories, scan_files
from agconf.utils.fs import read_bytes_or_none, read_text_or_none, write_bytes_atomic

logger = get_logger(__name__)

SKILL_FILE = "SKILL.md"


class SkillRegistry(ContentRegistry):
    """Syncs and checks skill directories.

    ``SKILL.md`` is tagged with managed metadata; support files next to it
    are copied as-is when their bytes differ.
    """

    kind = "skill"

    def discover(self, skills_path: Path) -> list[str]:
        return list_subdirectories(skills_path)

    def validate(self, skills_path: Path, names: list[str]) -> list[ValidationError]:
        errors = []
        for name in names:
            skill_md = skills_path / name / SKILL_FILE
            content = read_text_or_none(skill_md)
            problems = [f"Missing {SKILL_FILE}"] if content is None else missing_required_fields(content)
            if problems:
                errors.append(ValidationError(item=name, path=str(skill_md), errors=problems))
        return errors

    def target_dir(self, target: TargetConfig, name: str) -> Path:
        return self.repo_dir / target.skills_dir / name

    def sync(self, skills_path: Path, targets: list[TargetConfig]) -> SyncOutcome:
        names = self.discover(skills_path)
        outcome = SyncOutcome(items=names, validation_errors=self.validate(skills_path, names))
        for error in outcome.validation_errors:
            logger.warning("Skill %s: %s", error.item, "; ".join(error.errors))

        for target in targets:
            for name in names:
                changed = self._copy_skill(skills_path / name, self.target_dir(target, name))
                outcome.record(name, changed)

        logger.info(
            "Skills: %d synced, %d written", len(names), len(outcome.written)
        )
        return outcome

    def check(self, targets: list[TargetConfig]) -> list[CheckedFile]:
        results = []
        for target in targets:
            skills_root = self.repo_dir / target.skills_dir
            for name in list_subdirectories(skills_root):
                checked = self.check_file(skills_root / name / SKILL_FILE)
                if checked:
                    results.append(checked)
        return results

    def _copy_skill(self, source_dir: Path, dest_dir: Path) -> bool:
        changed = False
        for rel in scan_files(source_dir):
            src = source_dir / rel
            dst = dest_dir / rel
            if rel.as_posix() == SKILL_FILE:
                tagged = self.tagger.add_managed_metadata(read_text_or_none(src) or "")
                changed = self.write_if_changed(dst, tagged) or changed
                continue
            data = read_bytes_or_none(src) or b""
            if read_bytes_or_none(dst) != data:
                write_bytes_atomic(dst, data)
                changed = True
        return changed
