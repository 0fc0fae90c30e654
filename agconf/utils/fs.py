"""File helpers shared by every component that touches the filesystem.

Writes are whole-file replacements through a temporary sibling file, so a
managed file is never left half written.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from agconf.errors import ManagedFileError


def read_text_or_none(path: str | Path) -> str | None:
    """Read a UTF-8 text file, returning None if it does not exist.

    Raises:
        ManagedFileError: On any other I/O failure.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None
    except IsADirectoryError as e:
        raise ManagedFileError(path, "expected a file, found a directory") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ManagedFileError(path, str(e)) from e


def read_bytes_or_none(path: str | Path) -> bytes | None:
    """Read a binary file, returning None if it does not exist."""
    try:
        return Path(path).read_bytes()
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as e:
        raise ManagedFileError(path, str(e)) from e


def write_text_atomic(path: str | Path, text: str) -> None:
    """Replace ``path`` with ``text`` in one step, creating parent dirs."""
    write_bytes_atomic(path, text.encode("utf-8"))


def write_bytes_atomic(path: str | Path, data: bytes) -> None:
    dst = Path(path)
    tmp = dst.with_name(dst.name + ".tmp")
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_bytes(data)
        os.replace(tmp, dst)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise ManagedFileError(dst, f"write failed: {e}") from e


def remove_path(path: str | Path) -> None:
    """Delete a file or a directory tree."""
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise ManagedFileError(target, f"delete failed: {e}") from e


def prune_empty_dirs(start: Path, stop: Path) -> None:
    """Remove empty directories from ``start`` upward, stopping at ``stop``."""
    current = start
    stop = stop.resolve()
    while current.resolve() != stop and stop in current.resolve().parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent
