"""Source set resolution for smartpy-build.

Expands a contracts directory into the candidate SmartPy source files
and filters arbitrary path lists down to the toolchain pattern.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path, PurePosixPath

import structlog

from smartpy_build.errors import NotFoundError

logger = structlog.get_logger(__name__)

SMARTPY_PATTERN = "**/*.py"
"""Glob matching SmartPy contract sources."""

_GLOB_CHARS = frozenset("*?[")


def split_pattern(contracts_directory: str | Path) -> tuple[Path, str]:
    """Split a contracts directory that may carry a glob suffix.

    Args:
        contracts_directory: Plain directory, or directory followed by a
            glob such as ``contracts/**/*.py``.

    Returns:
        Tuple of (root directory, pattern). A plain directory yields the
        SmartPy pattern.

    Example:
        >>> split_pattern("contracts/**/*.py")
        (PosixPath('contracts'), '**/*.py')
    """
    parts = Path(contracts_directory).parts
    for index, part in enumerate(parts):
        if _GLOB_CHARS.intersection(part):
            root = Path(*parts[:index]) if index else Path(".")
            return root, "/".join(parts[index:])
    return Path(contracts_directory), SMARTPY_PATTERN


def find_contracts(root: str | Path, pattern: str = SMARTPY_PATTERN) -> list[Path]:
    """Find all files under ``root`` matching ``pattern``, recursively.

    Ordering follows the filesystem and is not sorted; callers needing
    a deterministic order must sort.

    Args:
        root: Directory to search.
        pattern: Glob relative to ``root``.

    Returns:
        Matching file paths.

    Raises:
        NotFoundError: If ``root`` does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotFoundError(str(root), kind="Contracts directory")

    files = [path for path in root.glob(pattern) if path.is_file()]
    logger.debug("contracts_found", root=str(root), pattern=pattern, count=len(files))
    return files


def matches_pattern(path: str | Path, pattern: str = SMARTPY_PATTERN) -> bool:
    """Check whether ``path`` matches a toolchain glob.

    A leading ``**/`` also matches zero directories, so ``Token.py``
    matches ``**/*.py``.
    """
    posix = PurePosixPath(Path(path).as_posix())
    if posix.match(pattern):
        return True
    if pattern.startswith("**/"):
        return posix.match(pattern[3:])
    return False


def filter_sources(paths: Iterable[str | Path], pattern: str = SMARTPY_PATTERN) -> list[Path]:
    """Keep only the paths matching the toolchain pattern, in order."""
    return [Path(path) for path in paths if matches_pattern(path, pattern)]
