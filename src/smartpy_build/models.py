"""Build data models for smartpy-build.

This module defines the immutable records that flow through the pipeline:
- CompilerInfo: Identity of the external compiler (name + image tag)
- BuildRequest: Everything one compile invocation needs
- ChangeSet: Stale sources selected by the change detector
- ContractRecord: One successfully compiled contract
- BuildResult: Caller-visible mapping of contract name to record
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SMARTPY_IMAGE = "trufflesuite/smartpy-basic:0.0.1"
"""Docker image running the SmartPy-Basic compiler.

Also reported as the compiler version. Artifacts from Truffle's
truffle-compile-smartpy name `:0.0.2` while running this same image; here
the reported version is the image that actually runs.
"""

OUTPUT_SUBDIR = ".smartpy-output"
"""Staging directory, under the build directory, that the compiler writes into."""


class CompilerInfo(BaseModel):
    """Identity of the compiler that produced a contract.

    Attributes:
        name: Compiler name.
        version: Version tag (the Docker image reference).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="smartpy", description="Compiler name")
    version: str = Field(default=SMARTPY_IMAGE, description="Compiler version tag")


class BuildRequest(BaseModel):
    """Immutable parameters of one build invocation.

    Attributes:
        paths: Ordered source paths to compile.
        build_directory: Directory holding the persisted build artifacts.
        working_directory: Project root, mounted into the container.
        entry_point: Optional entry point overriding the contract name.
        quiet: Suppress progress output.
        strict: Treat any compiler stderr output as a failure.
        image: Docker image running the compiler.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: tuple[Path, ...] = Field(default=(), description="Source paths")
    build_directory: Path = Field(..., description="Build output directory")
    working_directory: Path = Field(..., description="Project working directory")
    entry_point: str | None = Field(default=None, description="Entry point override")
    quiet: bool = Field(default=False, description="Suppress output")
    strict: bool = Field(default=True, description="Compiler stderr fails the build")
    image: str = Field(default=SMARTPY_IMAGE, description="Compiler Docker image")

    @property
    def output_directory(self) -> Path:
        """Staging directory for raw compiler output.

        Kept apart from the persisted artifacts so that reconciling
        compiler output can never touch them.
        """
        return self.build_directory / OUTPUT_SUBDIR

    @property
    def compiler(self) -> CompilerInfo:
        """Compiler identity derived from the configured image."""
        return CompilerInfo(version=self.image)


class DetectionMode(str, Enum):
    """How the change detector selected sources.

    Attributes:
        FULL: Every candidate is compiled.
        INCREMENTAL: Only sources newer than their build artifact.
    """

    FULL = "full"
    INCREMENTAL = "incremental"


class ChangeSet(BaseModel):
    """Ordered set of sources that need compiling.

    An empty change set is a valid outcome; the pipeline returns an
    empty result without invoking the compiler.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: tuple[Path, ...] = Field(default=(), description="Stale source paths")
    mode: DetectionMode = Field(default=DetectionMode.FULL, description="Detection mode")

    @property
    def is_empty(self) -> bool:
        """True when nothing needs compiling."""
        return not self.paths

    def __len__(self) -> int:
        return len(self.paths)


class ContractRecord(BaseModel):
    """One compiled contract.

    Attributes:
        contract_name: Logical name derived from the source basename.
        source_path: Path of the compiled source.
        source: Raw source text.
        michelson: Compiled program as a canonical JSON string.
        initial_storage: Initial storage emitted by the compiler, if any.
        compiler: Compiler identity.
        abi: Always empty; SmartPy contracts carry no ABI.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    contract_name: str = Field(..., min_length=1, description="Logical contract name")
    source_path: str = Field(..., description="Source file path")
    source: str = Field(default="", description="Raw source text")
    michelson: str | None = Field(default=None, description="Compiled Michelson (JSON)")
    initial_storage: str | None = Field(default=None, description="Initial storage")
    compiler: CompilerInfo = Field(default_factory=CompilerInfo, description="Compiler")
    abi: tuple[Any, ...] = Field(default=(), description="Contract ABI")


class BuildResult(BaseModel):
    """Caller-visible outcome of a build.

    Attributes:
        contracts: Mapping of contract name to record, in compile order.
        paths: Source paths that were processed.
        compiler: Compiler identity.

    Example:
        >>> result = BuildResult()
        >>> result.is_empty
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    contracts: dict[str, ContractRecord] = Field(default_factory=dict)
    paths: tuple[str, ...] = Field(default=())
    compiler: CompilerInfo = Field(default_factory=CompilerInfo)

    @property
    def is_empty(self) -> bool:
        """True when no contract was compiled."""
        return not self.contracts

    @property
    def contract_names(self) -> list[str]:
        """Contract names in compile order."""
        return list(self.contracts)

    def __len__(self) -> int:
        return len(self.contracts)

    def __contains__(self, contract_name: object) -> bool:
        return contract_name in self.contracts

    def __getitem__(self, contract_name: str) -> ContractRecord:
        return self.contracts[contract_name]
