"""smartpy-build command line entry point.

Compiles the SmartPy contracts of a project, only those changed since
the last build unless ``--all`` is given, and writes one JSON artifact
per contract into the build directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import rich_click as rclick

from smartpy_build import __version__
from smartpy_build.errors import (
    CompileError,
    NameCollisionError,
    SmartPyBuildError,
)
from smartpy_build.output import error, print_summary, set_no_color, success

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True

# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Compile errors, name collisions
EXIT_SYSTEM_ERROR = 2  # Docker unavailable, missing directories, I/O


class CLIError(click.ClickException):
    """CLI exception with exit code support and Rich formatting."""

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        error(self.format_message())


def exit_code_for(err: SmartPyBuildError) -> int:
    """Map a build error to the CLI exit code."""
    if isinstance(err, (CompileError, NameCollisionError)):
        return EXIT_USER_ERROR
    return EXIT_SYSTEM_ERROR


def _resolve(path: str | None) -> Path | None:
    return Path(path).resolve() if path is not None else None


@rclick.command("smartpy-build")
@click.version_option(version=__version__, prog_name="smartpy-build")
@click.argument("entry_point", required=False)
@click.option(
    "-c",
    "--contracts-directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding SmartPy sources [default: ./contracts]",
)
@click.option(
    "-b",
    "--build-directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Build output directory [default: ./build/contracts]",
)
@click.option(
    "-w",
    "--working-directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Project root mounted into the compiler container [default: .]",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to smartpy-build.yaml",
)
@click.option("--all", "compile_everything", is_flag=True, help="Recompile every source.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress output.")
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Treat compiler warnings on stderr as errors [default: strict]",
)
@click.option("--no-write", is_flag=True, help="Do not write build artifacts.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Structured log level [default: WARNING]",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
def cli(
    entry_point: str | None,
    contracts_directory: str | None,
    build_directory: str | None,
    working_directory: str | None,
    config_path: str | None,
    compile_everything: bool,
    quiet: bool,
    strict: bool | None,
    no_write: bool,
    log_level: str,
) -> None:
    """Compile SmartPy contracts with SmartPy-Basic in Docker.

    Only sources modified since their last build artifact are compiled
    unless `--all` is given.

    Examples:

        smartpy-build

        smartpy-build --all --build-directory build/contracts

        smartpy-build main --no-strict
    """
    from smartpy_build.config import CONFIG_FILE_NAME, BuildConfig
    from smartpy_build.observability import configure_logging
    from smartpy_build.pipeline import compile_all, compile_necessary
    from smartpy_build.writer import write_artifacts

    configure_logging(log_level=log_level)

    overrides: dict[str, Any] = {
        "contracts_directory": _resolve(contracts_directory),
        "build_directory": _resolve(build_directory),
        "working_directory": _resolve(working_directory),
        "entry_point": entry_point,
        "quiet": quiet or None,
        "strict": strict,
    }

    try:
        if config_path is None and Path(CONFIG_FILE_NAME).exists():
            config_path = CONFIG_FILE_NAME

        if config_path is not None:
            config = BuildConfig.from_yaml(config_path, **overrides)
        else:
            defaults: dict[str, Any] = {"contracts_directory": Path("contracts")}
            defaults.update({k: v for k, v in overrides.items() if v is not None})
            config = BuildConfig(**defaults)

        if compile_everything:
            result = compile_all(config)
        else:
            result = compile_necessary(config)

        if result.is_empty:
            if not config.quiet:
                success("Everything is up to date")
            return

        if not no_write:
            write_artifacts(result, config.contracts_build_directory)

        if not config.quiet:
            print_summary(result)
            success(f"Compiled {len(result)} contract(s)")

    except SmartPyBuildError as e:
        raise CLIError(e.user_message, exit_code=exit_code_for(e)) from None


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
