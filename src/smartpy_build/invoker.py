"""SmartPy-Basic invocation via Docker.

This module runs the external compiler, one isolated container per
source file, and turns its exit status and diagnostics into either a
contract name or a CompileError.

Path handling: the project working directory is bind-mounted into the
container at the same path, so host and container must agree on one
path string. Both the working directory and the source path are
normalized and the container-side source path uses forward slashes.

Diagnostics are drained on background threads while the process runs,
so a chatty compiler cannot deadlock on a full pipe buffer.
"""

from __future__ import annotations

import os
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

import structlog

from smartpy_build.errors import CompileError, EnvironmentUnavailableError
from smartpy_build.models import SMARTPY_IMAGE, BuildRequest
from smartpy_build.profiler import contract_name

logger = structlog.get_logger(__name__)

DOCKER_EXECUTABLE = "docker"


@dataclass(frozen=True)
class ProcessOutput:
    """Exit status and captured streams of one external process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


ProcessRunner = Callable[[Sequence[str]], ProcessOutput]


def _drain(stream: IO[str], chunks: list[str]) -> None:
    for chunk in iter(lambda: stream.read(4096), ""):
        chunks.append(chunk)
    stream.close()


def run_process(args: Sequence[str]) -> ProcessOutput:
    """Run a process with stdout and stderr drained concurrently.

    Arguments are passed as discrete tokens; no shell is involved.

    Args:
        args: Executable followed by its arguments.

    Returns:
        ProcessOutput with the exit code and captured streams.

    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    proc = subprocess.Popen(
        list(args),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    assert proc.stdout is not None and proc.stderr is not None

    stdout_chunks: list[str] = []
    stderr_chunks: list[str] = []
    drains = [
        threading.Thread(target=_drain, args=(proc.stdout, stdout_chunks), daemon=True),
        threading.Thread(target=_drain, args=(proc.stderr, stderr_chunks), daemon=True),
    ]
    for drain in drains:
        drain.start()

    returncode = proc.wait()
    for drain in drains:
        drain.join()

    return ProcessOutput(
        returncode=returncode,
        stdout="".join(stdout_chunks),
        stderr="".join(stderr_chunks),
    )


def normalize_paths(working_directory: str | Path, source_path: str | Path) -> tuple[str, str]:
    """Normalize the working directory and the container-side source path.

    Args:
        working_directory: Project root on the host.
        source_path: Source file on the host.

    Returns:
        Tuple of (normalized working directory, normalized source path
        using forward slashes).

    Example:
        >>> normalize_paths("/proj/./", "/proj/contracts/../contracts/x.py")
        ('/proj', '/proj/contracts/x.py')
    """
    working = os.path.normpath(str(working_directory))
    source = os.path.normpath(str(source_path)).replace("\\", "/")
    return working, source


def entry_expression(source_path: str | Path, entry_point: str | None = None) -> str:
    """Entry point call expression passed to the compiler.

    Example:
        >>> entry_expression("contracts/Token.py")
        'Token()'
        >>> entry_expression("contracts/Token.py", "main")
        'main()'
    """
    return f"{entry_point or contract_name(source_path)}()"


def build_compile_command(
    source_path: str | Path,
    request: BuildRequest,
    entry_point: str | None = None,
) -> list[str]:
    """Assemble the ``docker run ... compile`` argument list."""
    working, source = normalize_paths(request.working_directory, source_path)
    return [
        DOCKER_EXECUTABLE,
        "run",
        "-v",
        f"{working}:{working}",
        "-w",
        working,
        "--rm",
        "-i",
        request.image,
        "compile",
        source,
        entry_expression(source_path, entry_point),
        str(request.output_directory),
    ]


def build_preflight_command(image: str = SMARTPY_IMAGE) -> list[str]:
    """Assemble the ``docker run ... --help`` availability probe."""
    return [DOCKER_EXECUTABLE, "run", "--rm", "-i", image, "--help"]


class CompilerInvoker:
    """Runs SmartPy-Basic for single source files.

    Attributes:
        runner: Callable that executes an argument list and returns its
            ProcessOutput. Defaults to run_process.
        invocations: Number of compile invocations performed.

    Example:
        >>> invoker = CompilerInvoker()
        >>> invoker.check_environment(request.image)
        >>> invoker.invoke(Path("contracts/Token.py"), None, request)
        'Token'
    """

    def __init__(self, runner: ProcessRunner | None = None) -> None:
        self.runner: ProcessRunner = runner or run_process
        self.invocations = 0
        self._log = logger.bind(component="compiler_invoker")

    def _run(self, command: list[str], image: str) -> ProcessOutput:
        try:
            return self.runner(command)
        except FileNotFoundError as e:
            # Only a missing docker executable means the environment is unusable
            if e.filename not in (None, DOCKER_EXECUTABLE):
                raise
            raise EnvironmentUnavailableError(
                image,
                f"'{DOCKER_EXECUTABLE}' executable not found",
                internal_details=str(e),
            ) from e

    def check_environment(self, image: str = SMARTPY_IMAGE) -> None:
        """Verify that Docker can run the compiler image.

        Raises:
            EnvironmentUnavailableError: If the probe fails.
        """
        command = build_preflight_command(image)
        self._log.info("preflight_started", image=image)

        output = self._run(command, image)

        if output.returncode != 0:
            raise EnvironmentUnavailableError(
                image,
                output.stderr.strip(),
                internal_details=f"exit status {output.returncode}",
            )

        self._log.info("preflight_completed", image=image)

    def invoke(
        self,
        source_path: str | Path,
        entry_point: str | None,
        request: BuildRequest,
    ) -> str:
        """Compile one source file into the request's output directory.

        Args:
            source_path: Source file to compile.
            entry_point: Entry point name; defaults to the contract name.
            request: Build request providing directories, image and policy.

        Returns:
            The logical contract name.

        Raises:
            CompileError: If the compiler exits non-zero, or writes to
                stderr while ``request.strict`` is set.
            EnvironmentUnavailableError: If the docker executable is missing.
        """
        name = contract_name(source_path)
        request.output_directory.mkdir(parents=True, exist_ok=True)

        command = build_compile_command(source_path, request, entry_point)
        self.invocations += 1
        self._log.info("compile_started", contract=name, source=str(source_path))

        output = self._run(command, request.image)

        diagnostics = output.stderr
        if output.returncode != 0 or (diagnostics and request.strict):
            self._log.warning(
                "compile_failed",
                contract=name,
                returncode=output.returncode,
                strict=request.strict,
            )
            raise CompileError(str(source_path), diagnostics, returncode=output.returncode)

        if diagnostics:
            self._log.warning("compile_diagnostics", contract=name, diagnostics=diagnostics)

        self._log.info("compile_completed", contract=name)
        return name
