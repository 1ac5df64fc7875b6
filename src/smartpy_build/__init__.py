"""smartpy-build: Incremental SmartPy contract compilation.

This package provides:
- compile_all / compile_necessary: Build entry points
- BuildConfig: Build configuration with immutable updates
- BuildResult / ContractRecord: Caller-visible build output
- write_artifacts: Persist compiled contracts as JSON artifacts
- The smartpy-build error hierarchy
"""

from __future__ import annotations

__version__ = "0.1.0"

from smartpy_build.config import BuildConfig
from smartpy_build.errors import (
    CompileError,
    ConfigurationError,
    EnvironmentUnavailableError,
    NameCollisionError,
    NotFoundError,
    ReconciliationError,
    SmartPyBuildError,
)
from smartpy_build.invoker import CompilerInvoker
from smartpy_build.models import (
    BuildRequest,
    BuildResult,
    ChangeSet,
    CompilerInfo,
    ContractRecord,
)
from smartpy_build.pipeline import compile_all, compile_necessary, compile_sources
from smartpy_build.writer import write_artifacts

__all__ = [
    "__version__",
    # Entry points
    "compile_all",
    "compile_necessary",
    "compile_sources",
    "write_artifacts",
    "CompilerInvoker",
    # Configuration and models
    "BuildConfig",
    "BuildRequest",
    "BuildResult",
    "ChangeSet",
    "CompilerInfo",
    "ContractRecord",
    # Errors
    "SmartPyBuildError",
    "EnvironmentUnavailableError",
    "NotFoundError",
    "CompileError",
    "ReconciliationError",
    "NameCollisionError",
    "ConfigurationError",
]
