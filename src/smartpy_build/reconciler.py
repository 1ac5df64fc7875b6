"""Reconciliation of compiler output files.

SmartPy-Basic writes several loosely named files into its output
directory, a staging directory under the build directory. After each
invocation the reconciler classifies every entry against a closed set
of artifact kinds, checked in a fixed priority order, extracts what the
contract record needs, and deletes what it recognized so the directory
is clean for the next invocation:

    1. SOURCE_ECHO      *.py                     deleted
    2. STORAGE_JSON     contractStorage.tz.json  deleted
    3. PROGRAM_JSON     *.tz.json                parsed into michelson, deleted
    4. INITIAL_STORAGE  contractStorage.tz       read into initial_storage, deleted
    5. RAW_OUTPUT       *.tz                     deleted

Anything else is left untouched.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path

import structlog

from smartpy_build.errors import ReconciliationError

logger = structlog.get_logger(__name__)

INITIAL_STORAGE_FILE_NAME = "contractStorage.tz"
"""File holding the initial storage emitted by SmartPy-Basic."""


class ArtifactKind(str, Enum):
    """Recognized classes of compiler output files, in priority order."""

    SOURCE_ECHO = "source_echo"
    STORAGE_JSON = "storage_json"
    PROGRAM_JSON = "program_json"
    INITIAL_STORAGE = "initial_storage"
    RAW_OUTPUT = "raw_output"
    UNRECOGNIZED = "unrecognized"

    @property
    def recognized(self) -> bool:
        """True for every kind the reconciler consumes."""
        return self is not ArtifactKind.UNRECOGNIZED


ARTIFACT_PATTERNS: tuple[tuple[str, ArtifactKind], ...] = (
    ("*.py", ArtifactKind.SOURCE_ECHO),
    (f"{INITIAL_STORAGE_FILE_NAME}.json", ArtifactKind.STORAGE_JSON),
    ("*.tz.json", ArtifactKind.PROGRAM_JSON),
    (INITIAL_STORAGE_FILE_NAME, ArtifactKind.INITIAL_STORAGE),
    ("*.tz", ArtifactKind.RAW_OUTPUT),
)


def classify(file_name: str) -> ArtifactKind:
    """Classify an output file name.

    Example:
        >>> classify("contractCode.tz.json")
        <ArtifactKind.PROGRAM_JSON: 'program_json'>
        >>> classify("Token.json")
        <ArtifactKind.UNRECOGNIZED: 'unrecognized'>
    """
    for pattern, kind in ARTIFACT_PATTERNS:
        if fnmatchcase(file_name, pattern):
            return kind
    return ArtifactKind.UNRECOGNIZED


def canonical_json(raw: str) -> str:
    """Parse JSON text and dump it in compact canonical form."""
    return json.dumps(json.loads(raw), separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class ReconciledArtifacts:
    """Fields extracted from one invocation's output."""

    michelson: str | None = None
    initial_storage: str | None = None


class ArtifactReconciler:
    """Classifies, extracts and removes compiler output in a build directory.

    Example:
        >>> reconciler = ArtifactReconciler(Path("build/contracts"))
        >>> with reconciler.claim():
        ...     invoker.invoke(source, None, request)
        ...     artifacts = reconciler.reconcile()
    """

    def __init__(self, build_directory: str | Path) -> None:
        self.build_directory = Path(build_directory)
        self._log = logger.bind(component="artifact_reconciler")

    def _entries(self) -> list[Path]:
        if not self.build_directory.is_dir():
            return []
        try:
            return sorted(p for p in self.build_directory.iterdir() if p.is_file())
        except OSError as e:
            raise ReconciliationError(
                "Cannot list build directory",
                path=str(self.build_directory),
                internal_details=str(e),
            ) from e

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ReconciliationError(
                "Cannot remove build output",
                path=str(path),
                internal_details=str(e),
            ) from e

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ReconciliationError(
                "Cannot read build output",
                path=str(path),
                internal_details=str(e),
            ) from e

    def reconcile(self) -> ReconciledArtifacts:
        """Consume the recognized output of the last invocation.

        Returns:
            ReconciledArtifacts with the compiled program and initial storage.

        Raises:
            ReconciliationError: If an artifact cannot be read, parsed or deleted.
        """
        michelson: str | None = None
        initial_storage: str | None = None

        for path in self._entries():
            kind = classify(path.name)
            if not kind.recognized:
                continue

            if kind is ArtifactKind.PROGRAM_JSON:
                raw = self._read(path)
                try:
                    michelson = canonical_json(raw)
                except json.JSONDecodeError as e:
                    raise ReconciliationError(
                        "Compiled program is not valid JSON",
                        path=str(path),
                        internal_details=str(e),
                    ) from e
            elif kind is ArtifactKind.INITIAL_STORAGE:
                initial_storage = self._read(path)

            self._remove(path)
            self._log.debug("artifact_reconciled", file=path.name, kind=kind.value)

        return ReconciledArtifacts(michelson=michelson, initial_storage=initial_storage)

    def purge(self) -> list[Path]:
        """Delete every recognized artifact without extracting anything.

        Returns:
            Paths that were removed.
        """
        removed = [path for path in self._entries() if classify(path.name).recognized]
        for path in removed:
            self._remove(path)
        if removed:
            self._log.info("artifacts_purged", count=len(removed))
        return removed

    @contextmanager
    def claim(self) -> Iterator[ArtifactReconciler]:
        """Hold the build directory for one invocation.

        Leftovers from an interrupted earlier run are removed on entry. On
        every exit path, success or failure, recognized artifacts left in
        the directory are removed.
        """
        self.purge()
        try:
            yield self
        finally:
            self.purge()
