"""Build artifact writer.

Persists each compiled contract as ``<build_directory>/<name>.json``.
These artifacts are what incremental change detection compares source
modification times against. They sit outside the compiler's staging
directory, so the reconciler never sees them, whatever the contract name.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import structlog

from smartpy_build.errors import SmartPyBuildError
from smartpy_build.models import BuildResult, ContractRecord
from smartpy_build.profiler import ARTIFACT_SUFFIX

logger = structlog.get_logger(__name__)


def artifact_document(record: ContractRecord, updated_at: datetime | None = None) -> dict:
    """Serialize a record in the Truffle artifact shape (camelCase keys)."""
    updated_at = updated_at or datetime.now(timezone.utc)
    return {
        "contractName": record.contract_name,
        "abi": list(record.abi),
        "michelson": record.michelson,
        "initialStorage": record.initial_storage,
        "source": record.source,
        "sourcePath": record.source_path,
        "compiler": record.compiler.model_dump(),
        "updatedAt": updated_at.isoformat(),
    }


def write_artifacts(result: BuildResult, build_directory: str | Path) -> list[Path]:
    """Write one JSON artifact per compiled contract.

    Args:
        result: Build result to persist.
        build_directory: Destination directory; created if missing.

    Returns:
        Paths of the written artifacts, in compile order.

    Raises:
        SmartPyBuildError: If an artifact cannot be written.
    """
    build_directory = Path(build_directory)
    written: list[Path] = []
    if result.is_empty:
        return written

    try:
        build_directory.mkdir(parents=True, exist_ok=True)
        for name, record in result.contracts.items():
            path = build_directory / f"{name}{ARTIFACT_SUFFIX}"
            path.write_text(json.dumps(artifact_document(record), indent=2), encoding="utf-8")
            written.append(path)
    except OSError as e:
        raise SmartPyBuildError(
            f"Cannot write build artifacts to {build_directory}",
            internal_details=str(e),
        ) from e

    logger.info("artifacts_written", build_directory=str(build_directory), count=len(written))
    return written
