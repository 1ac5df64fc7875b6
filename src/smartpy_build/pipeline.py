"""Build pipeline for SmartPy contracts.

Entry points:
- compile_all: Compile every SmartPy source under the contracts directory
- compile_necessary: Compile only sources newer than their build artifact
- compile_sources: Compile an explicit list of sources

Flow per request:

    find_contracts -> change detection -> for each stale source:
        claim output dir -> invoke compiler -> reconcile output
    -> aggregate into BuildResult

Compilation is strictly sequential. The build directory is shared by
every invocation and holds a single writer at a time. The compiler
writes into a staging directory under the build directory, apart from
the persisted artifacts.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from smartpy_build.aggregator import aggregate, check_unique_names
from smartpy_build.config import BuildConfig
from smartpy_build.errors import NotFoundError, SmartPyBuildError
from smartpy_build.invoker import CompilerInvoker
from smartpy_build.models import BuildResult, CompilerInfo, ContractRecord
from smartpy_build.profiler import select_all, updated
from smartpy_build.reconciler import ArtifactReconciler
from smartpy_build.sources import SMARTPY_PATTERN, filter_sources, find_contracts, split_pattern

logger = structlog.get_logger(__name__)


def display(paths: Iterable[str | Path], config: BuildConfig) -> None:
    """Log ``> Compiling <path>`` for each source, sorted, unless quiet.

    Absolute paths are shown relative to the working directory.
    """
    if config.quiet:
        return

    for path in sorted(str(p) for p in paths):
        if os.path.isabs(path):
            path = f".{os.sep}{os.path.relpath(path, config.working_directory)}"
        config.logger.log(f"> Compiling {path}")


def narrow_to_toolchain(config: BuildConfig) -> BuildConfig:
    """Return a copy whose contracts directory carries the SmartPy pattern."""
    root, _ = split_pattern(config.contracts_directory)
    return config.with_overrides(contracts_directory=root / SMARTPY_PATTERN)


def _discover(config: BuildConfig) -> list[Path]:
    root, pattern = split_pattern(config.contracts_directory)
    if not root.is_absolute():
        root = config.working_directory / root
    return find_contracts(root, pattern)


def _read_source(source_path: Path) -> str:
    try:
        return source_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFoundError(str(source_path), kind="Source file") from e
    except OSError as e:
        raise SmartPyBuildError(
            f"Cannot read source {source_path}",
            internal_details=str(e),
        ) from e


def compile_sources(
    paths: Iterable[str | Path],
    config: BuildConfig,
    *,
    invoker: CompilerInvoker | None = None,
) -> BuildResult:
    """Compile the SmartPy sources among ``paths``.

    Non-SmartPy paths are dropped. When none remain, an empty result is
    returned without probing Docker.

    Args:
        paths: Candidate source paths, compiled in order.
        config: Build configuration.
        invoker: Compiler invoker; a default Docker invoker if omitted.

    Returns:
        BuildResult keyed by contract name.

    Raises:
        NameCollisionError: If two sources share a contract name.
        EnvironmentUnavailableError: If the compiler image cannot run.
        CompileError: On the first source that fails to compile.
        ReconciliationError: If compiler output cannot be processed.
    """
    sources = filter_sources(paths)
    if not sources:
        return BuildResult(compiler=CompilerInfo(version=config.image))

    request = config.to_request(sources)
    check_unique_names(request.paths)

    invoker = invoker or CompilerInvoker()
    invoker.check_environment(request.image)

    display(request.paths, config)

    log = logger.bind(build_directory=str(request.build_directory))
    log.info("build_started", sources=len(request.paths), strict=request.strict)

    reconciler = ArtifactReconciler(request.output_directory)
    records: list[ContractRecord] = []
    for source_path in request.paths:
        with reconciler.claim():
            name = invoker.invoke(source_path, request.entry_point, request)
            artifacts = reconciler.reconcile()

        records.append(
            ContractRecord(
                contract_name=name,
                source_path=str(source_path),
                source=_read_source(source_path),
                michelson=artifacts.michelson,
                initial_storage=artifacts.initial_storage,
                compiler=request.compiler,
            )
        )

    contracts = aggregate(records)
    log.info("build_completed", contracts=len(contracts))

    return BuildResult(
        contracts=contracts,
        paths=tuple(str(p) for p in request.paths),
        compiler=request.compiler,
    )


def compile_all(config: BuildConfig, *, invoker: CompilerInvoker | None = None) -> BuildResult:
    """Compile every SmartPy source under the contracts directory.

    Raises:
        NotFoundError: If the contracts directory does not exist.
    """
    config = narrow_to_toolchain(config)
    changes = select_all(_discover(config))
    return compile_sources(changes.paths, config, invoker=invoker)


def compile_necessary(
    config: BuildConfig,
    build_directory: str | Path | None = None,
    *,
    invoker: CompilerInvoker | None = None,
) -> BuildResult:
    """Compile only sources modified since their last build artifact.

    Args:
        config: Build configuration.
        build_directory: Artifact directory to compare against; defaults
            to the configured build directory.
        invoker: Compiler invoker; a default Docker invoker if omitted.

    Returns:
        BuildResult for the stale sources; empty when nothing changed.

    Raises:
        NotFoundError: If the contracts directory does not exist.
    """
    config = narrow_to_toolchain(config)
    if build_directory is not None:
        config = config.with_overrides(build_directory=Path(build_directory))

    changes = updated(_discover(config), config.contracts_build_directory)
    if changes.is_empty:
        logger.info("build_up_to_date", build_directory=str(config.contracts_build_directory))
        return BuildResult(compiler=CompilerInfo(version=config.image))

    return compile_sources(changes.paths, config, invoker=invoker)
