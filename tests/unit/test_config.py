"""Unit tests for BuildConfig."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from smartpy_build.config import BuildConfig
from smartpy_build.errors import ConfigurationError, NotFoundError
from smartpy_build.models import SMARTPY_IMAGE
from smartpy_build.output import ConsoleLogger


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Strict is on, quiet is off, the SmartPy image is used."""
        config = BuildConfig(contracts_directory=tmp_path / "contracts", working_directory=tmp_path)

        assert config.strict is True
        assert config.quiet is False
        assert config.entry_point is None
        assert config.image == SMARTPY_IMAGE
        assert isinstance(config.logger, ConsoleLogger)

    def test_default_build_directory(self, tmp_path: Path) -> None:
        """The build directory defaults under the working directory."""
        config = BuildConfig(contracts_directory="contracts", working_directory=tmp_path)
        assert config.contracts_build_directory == tmp_path / "build" / "contracts"

    def test_relative_build_directory(self, tmp_path: Path) -> None:
        """A relative build directory resolves against the working directory."""
        config = BuildConfig(
            contracts_directory="contracts",
            build_directory="out",
            working_directory=tmp_path,
        )
        assert config.contracts_build_directory == tmp_path / "out"

    def test_relative_working_directory_is_resolved(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A relative working directory is made absolute once."""
        (tmp_path / "proj").mkdir()
        monkeypatch.chdir(tmp_path)

        config = BuildConfig(contracts_directory="contracts", working_directory="proj")
        request = config.to_request([Path("contracts/A.py")])

        assert config.working_directory == tmp_path / "proj"
        assert config.contracts_build_directory == tmp_path / "proj" / "build" / "contracts"
        assert request.paths == (tmp_path / "proj" / "contracts" / "A.py",)

    def test_blank_entry_point_is_unset(self, tmp_path: Path) -> None:
        """A whitespace entry point is treated as missing."""
        config = BuildConfig(contracts_directory="c", entry_point="  ")
        assert config.entry_point is None

    def test_logger_requires_log_method(self) -> None:
        """Loggers without log() are rejected."""
        with pytest.raises(PydanticValidationError):
            BuildConfig(contracts_directory="c", logger=object())

    def test_is_frozen(self) -> None:
        """Configuration cannot be mutated in place."""
        config = BuildConfig(contracts_directory="c")
        with pytest.raises(PydanticValidationError):
            config.quiet = True  # type: ignore[misc]


class TestWithOverrides:
    """Tests for with_overrides()."""

    def test_returns_derived_copy(self, build_config: BuildConfig) -> None:
        """The original is unchanged; the copy has the override."""
        derived = build_config.with_overrides(strict=False)

        assert derived.strict is False
        assert build_config.strict is True
        assert derived.logger is build_config.logger
        assert derived.working_directory == build_config.working_directory

    def test_overrides_are_validated(self, build_config: BuildConfig) -> None:
        """Invalid overrides raise."""
        with pytest.raises(PydanticValidationError):
            build_config.with_overrides(image="")


class TestToRequest:
    """Tests for to_request()."""

    def test_request_carries_flags(self, build_config: BuildConfig, project_dir: Path) -> None:
        """Directories and policy flags are copied into the request."""
        config = build_config.with_overrides(entry_point="main", strict=False, quiet=True)

        request = config.to_request([Path("contracts/Counter.py")])

        assert request.paths == (project_dir / "contracts" / "Counter.py",)
        assert request.build_directory == project_dir / "build" / "contracts"
        assert request.working_directory == project_dir
        assert request.entry_point == "main"
        assert request.strict is False
        assert request.quiet is True
        assert request.compiler.version == SMARTPY_IMAGE


class TestFromYaml:
    """Tests for BuildConfig.from_yaml()."""

    def test_loads_and_resolves_relative_paths(self, tmp_path: Path) -> None:
        """Relative directories resolve against the YAML file's directory."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text(
            "contracts_directory: contracts\n"
            "build_directory: build/contracts\n"
            "entry_point: main\n"
            "strict: false\n"
        )

        config = BuildConfig.from_yaml(config_file)

        assert config.contracts_directory == tmp_path.resolve() / "contracts"
        assert config.contracts_build_directory == tmp_path.resolve() / "build" / "contracts"
        assert config.working_directory == tmp_path.resolve()
        assert config.entry_point == "main"
        assert config.strict is False

    def test_overrides_win_and_none_is_ignored(self, tmp_path: Path) -> None:
        """Explicit overrides replace file values; None keeps them."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text("contracts_directory: contracts\nstrict: false\n")

        config = BuildConfig.from_yaml(config_file, strict=None, quiet=True)

        assert config.strict is False
        assert config.quiet is True

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises NotFoundError."""
        with pytest.raises(NotFoundError):
            BuildConfig.from_yaml(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML raises ConfigurationError."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text("contracts_directory: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            BuildConfig.from_yaml(config_file)

        assert exc_info.value.file_path == str(config_file)

    def test_invalid_value_names_field(self, tmp_path: Path) -> None:
        """Schema violations name the offending field."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text("contracts_directory: contracts\nstrict: maybe\n")

        with pytest.raises(ConfigurationError) as exc_info:
            BuildConfig.from_yaml(config_file)

        assert exc_info.value.field_path == "strict"

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Unknown keys are configuration errors."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text("contracts_directory: contracts\nparallel: true\n")

        with pytest.raises(ConfigurationError):
            BuildConfig.from_yaml(config_file)

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        """A top-level list is rejected."""
        config_file = tmp_path / "smartpy-build.yaml"
        config_file.write_text("- contracts\n")

        with pytest.raises(ConfigurationError):
            BuildConfig.from_yaml(config_file)
