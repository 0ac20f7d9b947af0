"""Discovery of stack definition files inside the repository tree."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from .constants import APP_NAME, COMPOSE_FILENAMES

logger = logging.getLogger(APP_NAME)


def is_excluded(stack_file: Path, exclude: str | None) -> bool:
    """Checks whether a stack file's directory contains the exclude pattern.

    The match is plain substring containment against the containing directory
    as ``find .`` reports it: ``.`` for files at the repository root and
    ``./<dir>`` for everything else, so ``./legacy`` matches ``legacy/...``.

    Args:
        stack_file (Path): The stack file, relative to the base directory.
        exclude (str | None): The substring to look for. None or empty
                              never excludes anything.

    Returns:
        bool: True if the file should be skipped.
    """
    if not exclude:
        return False
    directory = stack_file.parent.as_posix()
    if directory != ".":
        directory = f"./{directory}"
    return exclude in directory


def find_stack_files(base_dir: Path) -> list[Path]:
    """Lists every stack file under base_dir, sorted by path.

    Args:
        base_dir (Path): The directory to walk recursively.

    Returns:
        list[Path]: Paths relative to base_dir, ordered by their POSIX string.
    """
    found = []
    for root, dirs, files in os.walk(base_dir):
        # Never descend into git metadata.
        dirs[:] = [d for d in dirs if d != ".git"]
        for name in files:
            if name in COMPOSE_FILENAMES:
                found.append((Path(root) / name).relative_to(base_dir))
    return sorted(found, key=lambda p: p.as_posix())


def iter_stack_files(base_dir: Path, exclude: str | None = None) -> Iterator[Path]:
    """Yields the stack files to redeploy, in sorted order.

    The tree is walked afresh each time the generator is started; nothing is
    cached between calls.

    Args:
        base_dir (Path): The repository root.
        exclude (str | None): Directory substring that skips a file.

    Yields:
        Path: Each non-excluded stack file, relative to base_dir.
    """
    for stack_file in find_stack_files(base_dir):
        if is_excluded(stack_file, exclude):
            logger.debug(f"Excluding {stack_file} (matches '{exclude}')")
            continue
        yield stack_file
