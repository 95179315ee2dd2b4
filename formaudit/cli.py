"""CLI entrypoint for formaudit."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import AuditConfig, find_config, load_config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=verbose)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="formaudit")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a .formaudit.toml (defaults to the nearest one above the working directory)",
)
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Git repository holding the formulae (defaults to the one containing each file)",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, repo: Path | None, verbose: bool) -> None:
    """formaudit - Structural and version audits for formula definitions.

    Checks declaration order and placement, and compares each formula with its
    last committed revision to catch regressive revision/version changes.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)

    if config_path is None:
        config_path = find_config(Path.cwd())

    config = AuditConfig()
    if config_path is not None:
        try:
            config = load_config(config_path)
        except ValueError as exc:
            raise click.ClickException(f"Invalid config {config_path}: {exc}")

    ctx.obj["config"] = config.override(repository=repo.resolve() if repo else None)


@cli.command()
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Enable ordering, placement and test-block checks",
)
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.option(
    "--no-history",
    is_flag=True,
    help="Skip the comparison with the last committed revision",
)
@click.option(
    "--explain",
    "explain_rule",
    type=str,
    default=None,
    metavar="RULE_ID",
    help="Explain a specific rule and exit (e.g., --explain component-order)",
)
@click.pass_context
def audit(
    ctx: click.Context,
    paths: tuple[Path, ...],
    strict: bool | None,
    fail_on: str,
    output_json: bool,
    no_history: bool,
    explain_rule: str | None,
) -> None:
    """Audit formula files.

    PATHS may be formula files, a Formula/ directory, or a tap root.

    Examples:

        formaudit audit Formula/foo.rb

        formaudit audit --strict .

        formaudit audit --explain version-invariant
    """
    from .commands.audit import run_audit, run_explain

    if explain_rule:
        sys.exit(run_explain(explain_rule))

    if not paths:
        raise click.UsageError("Pass at least one formula file or directory.")

    config: AuditConfig = ctx.obj["config"]
    config = config.override(strict=strict, history=False if no_history else None)

    exit_code = run_audit(list(paths), config, fail_on=fail_on, output_json=output_json)
    sys.exit(exit_code)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
