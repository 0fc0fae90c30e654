"""Shared pieces of the per-content-type registries."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agconf.config.settings import EngineConfig
from agconf.content import frontmatter as fm
from agconf.content.hashing import ContentHasher
from agconf.content.metadata import MetadataTagger
from agconf.log import get_logger
from agconf.utils.fs import read_text_or_none, write_text_atomic

logger = get_logger(__name__)

REQUIRED_FIELDS = ("name", "description")


@dataclass
class ValidationError:
    """Required frontmatter missing from a canonical file. Sync continues."""

    item: str
    path: str
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncOutcome:
    """What one content type's sync did."""

    items: list[str] = field(default_factory=list)
    """Canonical identifiers that were synced."""

    written: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    content_hash: str = ""
    validation_errors: list[ValidationError] = field(default_factory=list)

    def record(self, item: str, changed: bool) -> None:
        """Mark ``item`` written or unchanged. Written wins across targets."""
        if changed:
            if item in self.unchanged:
                self.unchanged.remove(item)
            if item not in self.written:
                self.written.append(item)
        elif item not in self.written and item not in self.unchanged:
            self.unchanged.append(item)


@dataclass
class CheckedFile:
    """A managed file (or managed block) found by a check."""

    path: str
    """Path relative to the repository root."""

    kind: str  # skill | rule | agent | global-block | rules-section
    expected_hash: str | None
    """Hash stored at sync time (None for legacy content without one)."""

    current_hash: str

    @property
    def has_changes(self) -> bool:
        return self.expected_hash is not None and self.expected_hash != self.current_hash


def missing_required_fields(content: str, required: tuple[str, ...] = REQUIRED_FIELDS) -> list[str]:
    """Describe required frontmatter fields absent from ``content``."""
    frontmatter = fm.parse(content).frontmatter
    if not frontmatter:
        return ["Missing frontmatter (must have --- delimiters)"]
    return [f"Missing required field: {key}" for key in required if not frontmatter.get(key)]


class ContentRegistry:
    """Base for registries that write tagged markdown into target directories."""

    kind = ""

    def __init__(
        self,
        repo_dir: str | Path,
        config: EngineConfig,
        tagger: MetadataTagger | None = None,
        hasher: ContentHasher | None = None,
    ):
        self.repo_dir = Path(repo_dir)
        self.config = config
        self.hasher = hasher or ContentHasher()
        self.tagger = tagger or MetadataTagger(config, self.hasher)

    def write_if_changed(self, path: Path, content: str) -> bool:
        """Write ``content`` unless the file already holds exactly it."""
        if read_text_or_none(path) == content:
            return False
        write_text_atomic(path, content)
        logger.debug("Wrote %s", self.relative(path))
        return True

    def check_file(self, path: Path) -> CheckedFile | None:
        """Inspect one synced file; None if it is missing or not managed."""
        content = read_text_or_none(path)
        if content is None or not self.tagger.is_managed(content):
            return None
        return CheckedFile(
            path=self.relative(path),
            kind=self.kind,
            expected_hash=self.tagger.stored_hash(content),
            current_hash=self.tagger.compute_hash(content),
        )

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.repo_dir).as_posix()
        except ValueError:
            return path.as_posix()
