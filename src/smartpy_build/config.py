"""Build configuration for smartpy-build.

BuildConfig carries the directories and flags the pipeline needs, a
logger exposing ``log(str)``, and an immutable update operation used to
narrow the contracts directory to the SmartPy source pattern.

Configuration can also be loaded from a ``smartpy-build.yaml`` file:

    contracts_directory: contracts
    build_directory: build/contracts
    entry_point: main
    strict: false
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from smartpy_build.errors import ConfigurationError, NotFoundError
from smartpy_build.models import SMARTPY_IMAGE, BuildRequest
from smartpy_build.output import ConsoleLogger

CONFIG_FILE_NAME = "smartpy-build.yaml"
"""Default configuration file name."""

DEFAULT_BUILD_SUBDIR = Path("build") / "contracts"
"""Build directory relative to the working directory when none is given."""

_PATH_FIELDS = ("contracts_directory", "build_directory", "working_directory")


class BuildLogger(Protocol):
    """Anything with a ``log(str)`` method."""

    def log(self, message: str) -> None: ...


class BuildConfig(BaseModel):
    """Configuration for one build.

    Attributes:
        contracts_directory: Directory (optionally with a glob suffix) holding sources.
        build_directory: Directory for compiler output and build artifacts.
        working_directory: Project root mounted into the compiler container,
            always stored resolved to an absolute path.
        entry_point: Entry point expression name; defaults to the contract name.
        quiet: Suppress progress output.
        strict: Treat compiler stderr output as a failure even on exit code 0.
        image: Docker image running SmartPy-Basic.
        logger: Progress sink with a ``log(str)`` method.

    Example:
        >>> config = BuildConfig(contracts_directory="contracts")
        >>> narrowed = config.with_overrides(contracts_directory="contracts/**/*.py")
        >>> config.contracts_directory == narrowed.contracts_directory
        False
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    contracts_directory: Path = Field(..., description="Contracts source directory")
    build_directory: Path | None = Field(default=None, description="Build output directory")
    working_directory: Path = Field(default_factory=Path.cwd, description="Working directory")
    entry_point: str | None = Field(default=None, description="Entry point override")
    quiet: bool = Field(default=False, description="Suppress output")
    strict: bool = Field(default=True, description="Compiler stderr fails the build")
    image: str = Field(default=SMARTPY_IMAGE, min_length=1, description="Compiler image")
    logger: Any = Field(default_factory=ConsoleLogger, exclude=True, description="Progress sink")

    @field_validator("logger")
    @classmethod
    def logger_has_log(cls, v: Any) -> BuildLogger:
        """Require a callable ``log`` attribute."""
        if not callable(getattr(v, "log", None)):
            msg = "logger must provide a log(str) method"
            raise ValueError(msg)
        return v

    @field_validator("working_directory")
    @classmethod
    def working_directory_absolute(cls, v: Path) -> Path:
        """Resolve the working directory; it is bind-mounted at the same path."""
        return v.resolve()

    @field_validator("entry_point")
    @classmethod
    def entry_point_not_blank(cls, v: str | None) -> str | None:
        """Treat a blank entry point as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def contracts_build_directory(self) -> Path:
        """Build directory, defaulting to ``<working_directory>/build/contracts``.

        A relative build directory resolves against the working directory.
        """
        build_directory = self.build_directory or DEFAULT_BUILD_SUBDIR
        if build_directory.is_absolute():
            return build_directory
        return self.working_directory / build_directory

    def with_overrides(self, **fields: Any) -> BuildConfig:
        """Return a copy with the given fields replaced.

        Values are validated the same way as in the constructor.

        Raises:
            pydantic.ValidationError: If an override is invalid.
        """
        data = dict(self.__dict__)
        data.update(fields)
        return type(self).model_validate(data)

    def to_request(self, paths: list[Path] | tuple[Path, ...]) -> BuildRequest:
        """Build the immutable request for compiling ``paths``.

        Relative source paths resolve against the working directory.
        """
        resolved = tuple(
            path if path.is_absolute() else self.working_directory / path for path in paths
        )
        return BuildRequest(
            paths=resolved,
            build_directory=self.contracts_build_directory,
            working_directory=self.working_directory,
            entry_point=self.entry_point,
            quiet=self.quiet,
            strict=self.strict,
            image=self.image,
        )

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> BuildConfig:
        """Load configuration from a YAML file.

        Relative directories in the file resolve against the file's
        directory. Keyword overrides (e.g. from CLI flags) win over file
        values; ``None`` overrides are ignored.

        Raises:
            NotFoundError: If the file does not exist.
            ConfigurationError: If the YAML or its values are invalid.

        Example:
            >>> config = BuildConfig.from_yaml("smartpy-build.yaml", quiet=True)
        """
        path = Path(path)
        if not path.exists():
            raise NotFoundError(str(path), kind="Configuration file")

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Invalid YAML",
                file_path=str(path),
                internal_details=str(e),
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Expected a mapping at the top level", file_path=str(path))

        base_dir = path.parent.resolve()
        data.setdefault("working_directory", str(base_dir))
        for field_name in _PATH_FIELDS:
            value = data.get(field_name)
            if value is not None and not Path(value).is_absolute():
                data[field_name] = str(base_dir / value)

        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                first["msg"],
                file_path=str(path),
                field_path=".".join(str(x) for x in first["loc"]),
                internal_details=str(e),
            ) from e
