"""vitestgpt CLI interface.

Commands:
- run: Generate, run and repair unit tests for one function
- check: Validate external tool availability
- init: Initialize vitestgpt configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

from pathlib import Path
from typing import Annotated

import typer

from vitestgpt import __version__
from vitestgpt.config import VitestGPTConfig, create_default_config, load_config
from vitestgpt.utils.logging import configure_from_cli, get_logger

# Create Typer app
app = typer.Typer(
    name="vitestgpt",
    help="Generate and repair Vitest unit tests with an LLM",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: VitestGPTConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"vitestgpt {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON output",
        ),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Also write debug logs to this file",
            dir_okay=False,
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """vitestgpt - LLM-assisted Vitest unit test generator."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci, log_file=log_file)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    if log_file is None and _config.logging.file:
        configure_from_cli(
            verbose=verbose, quiet=quiet, ci=ci, log_file=Path(_config.logging.file)
        )


# =============================================================================
# run command
# =============================================================================


@app.command()
def run(
    input_file: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Source file containing the function",
            exists=True,
            dir_okay=False,
        ),
    ],
    function: Annotated[
        str,
        typer.Option(
            "--function",
            "-f",
            help="Name of the exported function to test",
        ),
    ],
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Test file to write",
            dir_okay=False,
        ),
    ],
    attempts: Annotated[
        int | None,
        typer.Option(
            "--attempts",
            "-a",
            min=1,
            help="Maximum test runs in the repair loop (overrides config)",
        ),
    ] = None,
    test_name_pattern: Annotated[
        str | None,
        typer.Option(
            "--test-name-pattern",
            "-t",
            help="Only run tests matching this name (passed to vitest)",
        ),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="LLM model to use (overrides config)",
        ),
    ] = None,
) -> None:
    """Generate unit tests for one function and repair them until they pass.

    Exit codes:
        0: Tests generated and passing
        1: Pipeline halted (see the message above) or failed
    """
    from vitestgpt.pipeline import run_pipeline

    config = _config or VitestGPTConfig()
    if attempts is not None:
        config.runner.attempt_limit = attempts
    if test_name_pattern is not None:
        config.runner.test_name_pattern = test_name_pattern

    try:
        context = run_pipeline(
            input_file=input_file,
            function_name=function,
            output_file=output,
            config=config,
            model=model,
        )
    except Exception as e:
        _logger.error(f"Pipeline failed: {e}")
        _logger.debug("Pipeline failure", exc_info=True)
        raise typer.Exit(1)

    if context.message_to_user:
        typer.echo(context.message_to_user)

    if not context.should_continue:
        _logger.error(f"Pipeline halted for {function}")
        raise typer.Exit(1)

    typer.echo(f"✅ Tests for {function} written to {output}")


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Validate external tool availability.

    Checks that Node.js, vitest, tree-sitter and the LLM provider are usable
    before generating tests.

    Exit codes:
        0: All required tools available
        1: One or more required tools missing
    """
    import json as json_module

    from vitestgpt.utils.preflight import PreflightChecker

    config = _config or VitestGPTConfig()
    result = PreflightChecker().check_all(config.llm)

    if json_output:
        typer.echo(json_module.dumps(result.to_dict(), indent=2))
        raise typer.Exit(0 if result.success else 1)

    typer.echo("\n🔍 Preflight Check Results\n")

    for check_result in result.checks:
        status = "✅" if check_result.available else "❌"
        version_str = f" ({check_result.version})" if check_result.version else ""
        required_str = " [required]" if check_result.required else " [optional]"

        typer.echo(f"  {status} {check_result.name}{version_str}{required_str}")
        if check_result.available and check_result.path:
            typer.echo(f"     └─ {check_result.path}")
        elif not check_result.available:
            typer.echo(f"     └─ {check_result.message}")

    typer.echo()

    for warning in result.warnings:
        typer.echo(f"⚠️  {warning}")

    if result.errors:
        typer.echo("❌ Preflight check FAILED")
        for error in result.errors:
            typer.echo(f"   • {error}")
        raise typer.Exit(1)

    typer.echo("✅ All preflight checks passed")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Initialize vitestgpt configuration.

    Creates .vitestgpt/config.yaml with default settings.
    """
    config_dir = Path(".vitestgpt")
    config_dir.mkdir(exist_ok=True)
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config(), encoding="utf-8")
    typer.echo(f"✅ Created {config_file}")


if __name__ == "__main__":
    app()
