"""Shared pytest fixtures for smartpy-build tests.

Provides structlog configuration, project directory layouts and a fake
Docker runner that mimics SmartPy-Basic writing its output files.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog

from smartpy_build.config import BuildConfig
from smartpy_build.invoker import CompilerInvoker, ProcessOutput

SAMPLE_MICHELSON: list[dict[str, Any]] = [
    {"prim": "parameter", "args": [{"prim": "int"}]},
    {"prim": "storage", "args": [{"prim": "int"}]},
    {"prim": "code", "args": [[{"prim": "CDR"}, {"prim": "NIL", "args": [{"prim": "operation"}]}]]},
]
SAMPLE_STORAGE = "42"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


class RecordingLogger:
    """Collects ``log(str)`` calls."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def log(self, message: str) -> None:
        self.lines.append(message)


class FakeDocker:
    """Stands in for ``docker run``.

    Compile commands write SmartPy-Basic style output into the output
    directory (the last argument). Behavior per contract can be
    overridden through ``failures`` and ``warnings``.
    """

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.preflight_returncode = 0
        self.failures: dict[str, str] = {}
        self.warnings: dict[str, str] = {}
        self.write_storage = True

    @property
    def compile_commands(self) -> list[list[str]]:
        return [c for c in self.commands if "compile" in c]

    def __call__(self, args: Sequence[str]) -> ProcessOutput:
        args = list(args)
        self.commands.append(args)

        if args[-1] == "--help":
            stderr = "" if self.preflight_returncode == 0 else "Unable to find image"
            return ProcessOutput(returncode=self.preflight_returncode, stderr=stderr)

        source = Path(args[-3])
        build_directory = Path(args[-1])
        name = source.stem

        if name in self.failures:
            return ProcessOutput(returncode=1, stderr=self.failures[name])

        (build_directory / source.name).write_text(source.read_text())
        (build_directory / "contractCode.tz").write_text("parameter int;")
        (build_directory / "contractCode.tz.json").write_text(
            json.dumps(SAMPLE_MICHELSON, indent=4)
        )
        if self.write_storage:
            (build_directory / "contractStorage.tz").write_text(SAMPLE_STORAGE)
            (build_directory / "contractStorage.tz.json").write_text(
                json.dumps({"int": SAMPLE_STORAGE})
            )

        return ProcessOutput(returncode=0, stderr=self.warnings.get(name, ""))


@pytest.fixture
def fake_docker() -> FakeDocker:
    """Return a fresh fake Docker runner."""
    return FakeDocker()


@pytest.fixture
def invoker(fake_docker: FakeDocker) -> CompilerInvoker:
    """Return a CompilerInvoker backed by the fake Docker runner."""
    return CompilerInvoker(runner=fake_docker)


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Return a logger that records progress lines."""
    return RecordingLogger()


@pytest.fixture
def write_contract() -> Callable[[Path, str], Path]:
    """Return a helper that writes a SmartPy source file."""

    def _write(path: Path, class_name: str = "Contract") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            "import smartpy as sp\n\n"
            f"class {class_name}(sp.Contract):\n"
            "    def __init__(self):\n"
            "        self.init(storage=42)\n"
        )
        return path

    return _write


@pytest.fixture
def project_dir(tmp_path: Path, write_contract: Callable[[Path, str], Path]) -> Path:
    """Create a project with two SmartPy contracts and one stray file.

    Layout:
        contracts/Counter.py
        contracts/tokens/Token.py
        contracts/README.md
    """
    contracts = tmp_path / "contracts"
    write_contract(contracts / "Counter.py", "Counter")
    write_contract(contracts / "tokens" / "Token.py", "Token")
    (contracts / "README.md").write_text("# contracts\n")
    return tmp_path


@pytest.fixture
def build_config(project_dir: Path, recording_logger: RecordingLogger) -> BuildConfig:
    """Return a BuildConfig rooted at the sample project."""
    return BuildConfig(
        contracts_directory=project_dir / "contracts",
        build_directory=project_dir / "build" / "contracts",
        working_directory=project_dir,
        logger=recording_logger,
    )
