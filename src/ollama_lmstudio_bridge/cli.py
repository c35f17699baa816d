# src/ollama_lmstudio_bridge/cli.py
"""
CLI module for the Ollama-LM-Studio bridge.

Provides the command-line interface using Click and Rich.

Usage:
    ollama-lmstudio-bridge --run [OPTIONS]

Without --run the help text is shown and nothing is changed.
"""

from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import BridgeConfig, get_config
from .console import StatusReporter
from .core import Bridge, RunSummary
from .errors import PreconditionError


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

# Exit code for faults that are not fatal preconditions
UNEXPECTED_ERROR_EXIT = 2


def print_summary(reporter: StatusReporter, summary: RunSummary) -> None:
    """Report the outcome counts and where to point LM Studio."""
    reporter.success("Ollama Bridge complete.")
    reporter.notice(
        f"Linked: {summary.linked}  Copied: {summary.copied}  "
        f"Skipped: {summary.skipped}  Failed: {summary.failed}"
    )
    reporter.notice("Set the Models Directory in LMStudio to:")
    reporter.notice(f"    {summary.dest_root}")


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(
    version=__version__,
    prog_name="Ollama-LM-Studio Bridge",
    message="%(prog)s v%(version)s",
)
@click.option(
    "--run", "-r",
    is_flag=True,
    help="Run the bridge and execute the needed changes"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress non-essential output"
)
@click.option(
    "--skip-existing", "-s",
    is_flag=True,
    help="Skip existing symlinks instead of overwriting"
)
@click.option(
    "--dir", "-d", "lmstudio_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Specify custom LM Studio models directory"
)
@click.option(
    "--ollama-dir", "-o", "ollama_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Specify Ollama models directory"
)
@click.option(
    "--config", "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Read persisted defaults from this file"
)
@click.pass_context
def main(
    ctx: click.Context,
    run: bool,
    verbose: bool,
    quiet: bool,
    skip_existing: bool,
    lmstudio_dir: Optional[str],
    ollama_dir: Optional[str],
    config_file: Optional[Path],
):
    """
    Ollama-LM-Studio Bridge - link Ollama models into LM Studio.

    Scans the Ollama manifests, finds each model's blob and creates
    symbolic links (or copies) in a folder LM Studio can read.

    \b
    Examples:
      ollama-lmstudio-bridge --run --verbose --dir ~/custom/models/path
      ollama-lmstudio-bridge --run --ollama-dir /usr/share/ollama/.ollama/models
    """
    if not run:
        click.echo(ctx.get_help())
        ctx.exit(0)

    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet cannot be used together")

    reporter = StatusReporter(verbose=verbose, quiet=quiet)
    bridge = None

    try:
        config = BridgeConfig.build(
            verbose=verbose,
            quiet=quiet,
            skip_existing=True if skip_existing else None,
            ollama_dir=ollama_dir,
            lmstudio_dir=lmstudio_dir,
            manager=get_config(config_file),
        )
        bridge = Bridge(config, reporter)
        summary = bridge.run()
    except PreconditionError as e:
        reporter.error(str(e))
        raise SystemExit(e.exit_code)
    except Exception as e:
        step = bridge.step if bridge is not None else "startup"
        reporter.error(
            f"An error occurred during step '{step}': {e}. Exit code: {UNEXPECTED_ERROR_EXIT}"
        )
        if verbose:
            reporter.console.print_exception()
        raise SystemExit(UNEXPECTED_ERROR_EXIT)

    print_summary(reporter, summary)


# ============================================================
# Entry Point
# ============================================================

if __name__ == "__main__":
    main()
