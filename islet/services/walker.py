"""Recursive source-file discovery."""

import logging
from pathlib import Path
from typing import List

from islet.errors import FileAccessError

logger = logging.getLogger(__name__)


def relative_stem(path: Path, root: Path) -> str:
    """Return *path* relative to *root*, extension dropped, ``/``-separated."""
    return path.relative_to(root).with_suffix("").as_posix()


def find_source_files(directory: Path, extension: str) -> List[Path]:
    """Return every file under *directory* whose suffix is *extension*.

    Paths are sorted so that registry collisions resolve the same way on every
    run.  A missing *directory* yields an empty list.
    """
    if not directory.is_dir():
        logger.debug("Walker: no directory at %s", directory)
        return []
    return sorted(p for p in directory.rglob(f"*{extension}") if p.is_file())


def read_source(path: Path) -> str:
    """Read *path* as UTF-8 text.

    Raises:
        FileAccessError: the file is missing, unreadable or not valid UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileAccessError("could not read file", str(path), exc) from exc
