"""Change detection for smartpy-build.

Decides which sources need compiling. Both modes are pure queries over
the filesystem:

- Full mode: every candidate, unconditionally.
- Incremental mode: a candidate is stale when its build artifact
  ``<build_directory>/<contract name>.json`` is missing, or when the
  source was modified strictly after the artifact. Equal timestamps
  count as current.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from smartpy_build.models import ChangeSet, DetectionMode

logger = structlog.get_logger(__name__)

ARTIFACT_SUFFIX = ".json"
"""Suffix of build artifacts written for each contract."""


def contract_name(source_path: str | Path) -> str:
    """Derive the logical contract name: the basename without its extension.

    Example:
        >>> contract_name("/proj/contracts/Token.py")
        'Token'
    """
    return Path(source_path).stem


def artifact_path(source_path: str | Path, build_directory: str | Path) -> Path:
    """Path of the build artifact for ``source_path``."""
    return Path(build_directory) / f"{contract_name(source_path)}{ARTIFACT_SUFFIX}"


def is_stale(source_path: str | Path, build_directory: str | Path) -> bool:
    """Check whether one source needs compiling.

    Args:
        source_path: Source file to check.
        build_directory: Directory holding previous build artifacts.

    Returns:
        True if no artifact exists or the source is strictly newer.
    """
    artifact = artifact_path(source_path, build_directory)
    try:
        artifact_mtime = artifact.stat().st_mtime_ns
    except FileNotFoundError:
        return True

    return Path(source_path).stat().st_mtime_ns > artifact_mtime


def select_all(paths: Iterable[str | Path]) -> ChangeSet:
    """Full mode: every candidate is stale."""
    return ChangeSet(paths=tuple(Path(p) for p in paths), mode=DetectionMode.FULL)


def updated(paths: Iterable[str | Path], build_directory: str | Path) -> ChangeSet:
    """Incremental mode: select candidates newer than their build artifact.

    A missing build directory means nothing was built yet, so every
    candidate is stale.

    Args:
        paths: Candidate source paths, in order.
        build_directory: Directory holding previous build artifacts.

    Returns:
        ChangeSet of stale sources, preserving candidate order.
    """
    candidates = [Path(p) for p in paths]
    build_directory = Path(build_directory)

    if not build_directory.is_dir():
        stale = candidates
    else:
        stale = [path for path in candidates if is_stale(path, build_directory)]

    logger.info(
        "stale_sources_detected",
        build_directory=str(build_directory),
        candidates=len(candidates),
        stale=len(stale),
    )
    return ChangeSet(paths=tuple(stale), mode=DetectionMode.INCREMENTAL)
