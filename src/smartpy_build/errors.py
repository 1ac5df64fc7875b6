"""Custom exception hierarchy for smartpy-build.

This module defines the exception classes raised by the build pipeline:
- SmartPyBuildError: Base exception for all build errors
- EnvironmentUnavailableError: Docker or the compiler image is unusable
- NotFoundError: A required directory or file does not exist
- CompileError: One source file failed to compile
- ReconciliationError: Build output could not be read or removed
- NameCollisionError: Two sources resolve to the same contract name
- ConfigurationError: A configuration file is malformed

User-facing messages are safe to display. Technical details passed as
``internal_details`` are logged via structlog and never shown to the user.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

logger = structlog.get_logger(__name__)


class SmartPyBuildError(Exception):
    """Base exception for smartpy-build.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging only.

    Example:
        >>> raise SmartPyBuildError(
        ...     "Build failed",
        ...     internal_details="docker exited with status 125",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "smartpy_build_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class EnvironmentUnavailableError(SmartPyBuildError):
    """Raised when the preflight check against the compiler image fails.

    Aborts the build before any source file is touched.

    Attributes:
        image: Docker image that was probed.
        diagnostics: Captured stderr of the preflight command.
    """

    def __init__(
        self,
        image: str,
        diagnostics: str = "",
        *,
        internal_details: str | None = None,
    ) -> None:
        user_message = f"Error executing SmartPy-Basic ({image}):"
        if diagnostics:
            user_message = f"{user_message}\n{diagnostics}"

        super().__init__(user_message, internal_details=internal_details)

        self.image = image
        self.diagnostics = diagnostics


class NotFoundError(SmartPyBuildError):
    """Raised when a contracts directory, build directory or file is missing.

    Attributes:
        path: The path that could not be found.
    """

    def __init__(
        self,
        path: str,
        *,
        kind: str = "Path",
        internal_details: str | None = None,
    ) -> None:
        super().__init__(f"{kind} not found: {path}", internal_details=internal_details)
        self.path = path
        self.kind = kind


class CompileError(SmartPyBuildError):
    """Raised when a single source file fails to compile.

    The message names the failing source, then the compiler's diagnostics
    verbatim, then a closing line naming the source again.

    Attributes:
        source_path: Source path exactly as it was passed to the compiler.
        diagnostics: Captured stderr of the compiler process.
        returncode: Exit status of the compiler process.

    Example:
        >>> err = CompileError("contracts/a.py", "SyntaxError", returncode=1)
        >>> str(err).splitlines()
        ['contracts/a.py:', 'SyntaxError', 'Compilation of contracts/a.py failed. See above.']
    """

    def __init__(
        self,
        source_path: str,
        diagnostics: str = "",
        *,
        returncode: int | None = None,
        internal_details: str | None = None,
    ) -> None:
        lines = [f"{source_path}:"]
        if diagnostics:
            lines.append(diagnostics.rstrip("\n"))
        lines.append(f"Compilation of {source_path} failed. See above.")
        user_message = "\n".join(lines)

        super().__init__(user_message, internal_details=internal_details)

        self.source_path = source_path
        self.diagnostics = diagnostics
        self.returncode = returncode


class ReconciliationError(SmartPyBuildError):
    """Raised when build output files cannot be classified, read or deleted.

    Attributes:
        path: Artifact path that triggered the failure.
    """

    def __init__(
        self,
        user_message: str,
        *,
        path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        if path:
            user_message = f"{user_message} ({path})"

        super().__init__(user_message, internal_details=internal_details)

        self.path = path


class NameCollisionError(SmartPyBuildError):
    """Raised when two sources in one request share a contract name.

    Attributes:
        contract_name: The colliding contract name.
        source_paths: All source paths that resolve to that name.

    Example:
        >>> raise NameCollisionError("Token", ["a/Token.py", "b/Token.py"])
        # User sees: "Duplicate contract name 'Token' from: a/Token.py, b/Token.py"
    """

    def __init__(
        self,
        contract_name: str,
        source_paths: Sequence[str],
        *,
        internal_details: str | None = None,
    ) -> None:
        user_message = (
            f"Duplicate contract name '{contract_name}' from: {', '.join(source_paths)}"
        )

        super().__init__(user_message, internal_details=internal_details)

        self.contract_name = contract_name
        self.source_paths = list(source_paths)


class ConfigurationError(SmartPyBuildError):
    """Raised when a build configuration file cannot be parsed or validated.

    Attributes:
        file_path: Path to the configuration file (if known).
        field_path: Dot-separated path to the invalid field (if known).
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path
