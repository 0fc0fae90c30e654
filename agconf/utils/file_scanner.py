"""File scanner — discover canonical and synced content files."""

from pathlib import Path

# Directories to always skip
SKIP_DIRS = {".git", "__pycache__", "node_modules", ".DS_Store"}

MARKDOWN_SUFFIX = ".md"


def scan_markdown_files(root: Path, recursive: bool = True) -> list[str]:
    """List markdown files under ``root`` as sorted relative POSIX paths.

    A missing directory yields an empty list.
    """
    if not root.is_dir():
        return []
    pattern = f"**/*{MARKDOWN_SUFFIX}" if recursive else f"*{MARKDOWN_SUFFIX}"
    files = []
    for item in root.glob(pattern):
        if item.is_file() and _should_include(item.relative_to(root)):
            files.append(item.relative_to(root).as_posix())
    return sorted(files)


def scan_files(root: Path) -> list[Path]:
    """Recursively list every file under ``root`` (sorted, relative)."""
    if not root.is_dir():
        return []
    files = []
    for item in root.rglob("*"):
        rel = item.relative_to(root)
        if item.is_file() and _should_include(rel):
            files.append(rel)
    return sorted(files)


def list_subdirectories(root: Path) -> list[str]:
    """Names of the immediate, non-hidden subdirectories of ``root``, sorted."""
    if not root.is_dir():
        return []
    return sorted(
        item.name for item in root.iterdir()
        if item.is_dir() and not item.name.startswith(".")
    )


def _should_include(relative: Path) -> bool:
    """Check if a file should be included in a scan."""
    for part in relative.parts:
        if part in SKIP_DIRS:
            return False
    return True
