"""Command-line interface for GitHub Daily Report."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from ._version import __version__
from .config import ConfigLoader, ConfigurationError
from .errors import DailyReportError, DateResolutionError
from .integrations.github_activity import GitHubActivityFetcher
from .integrations.linear_client import LinearClient
from .pipeline import build_daily_report
from .reports.daily_report_writer import FORMATS, DailyReportWriter, copy_to_clipboard
from .utils.date_utils import resolve_target_date

LOG_LEVELS = ("none", "INFO", "DEBUG")
LOG_NAMESPACE = "github_daily_report"


def configure_logging(level_name: str) -> logging.Logger:
    """Apply the --log option and return the CLI module logger.

    Records go to stderr so stdout carries only the report; "none" silences
    the package entirely.
    """
    level_name = level_name.upper()
    if level_name == "NONE":
        logging.getLogger().setLevel(logging.CRITICAL)
        logging.getLogger(LOG_NAMESPACE).setLevel(logging.CRITICAL)
        return logging.getLogger(__name__)

    level = getattr(logging, level_name)
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    logging.getLogger(LOG_NAMESPACE).setLevel(level)
    cli_logger = logging.getLogger(__name__)
    cli_logger.info(f"Logging enabled at {level_name} level")
    return cli_logger


def _validate_repos(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> tuple[str, ...]:
    for repo in value:
        if repo.count("/") != 1 or not all(repo.split("/")):
            raise click.BadParameter(f"{repo!r} is not in owner/name form")
    return value


@click.command()
@click.argument("date", required=False)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to YAML configuration file (environment variables are used without one)",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS),
    default=None,
    help="Output format (overrides config, default: markdown)",
)
@click.option(
    "--repo",
    "repos",
    multiple=True,
    callback=_validate_repos,
    help="Repository to include as owner/name; repeatable (overrides config)",
)
@click.option(
    "--lookback-days",
    type=click.IntRange(min=0),
    default=None,
    help="Days before DATE searched for reviewed/commented PRs (default: 3)",
)
@click.option("--copy/--no-copy", default=None, help="Copy the report to the clipboard (default: copy)")
@click.option(
    "--log",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="none",
    help="Enable logging with specified level (default: none)",
)
@click.version_option(version=__version__, prog_name="GitHub Daily Report")
@click.help_option("-h", "--help")
def cli(
    date: Optional[str],
    config: Optional[Path],
    fmt: Optional[str],
    repos: tuple[str, ...],
    lookback_days: Optional[int],
    copy: Optional[bool],
    log: str,
) -> None:
    """Summarize your GitHub activity for DATE.

    DATE may be YYYY-MM-DD, DD-MM-YYYY, 'today' or 'yesterday'. Without it
    the previous working day is reported (Friday when run on a Monday).
    """
    logger = configure_logging(log)

    # The date is checked before any configuration or network access
    try:
        target_date = resolve_target_date(date)
    except DateResolutionError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    try:
        cfg = ConfigLoader.load(config)
        if fmt:
            cfg.report.format = fmt
        if repos:
            cfg.github.repositories = list(repos)
        if lookback_days is not None:
            cfg.github.lookback_days = lookback_days
        if copy is not None:
            cfg.report.copy_to_clipboard = copy

        if not cfg.github.token:
            raise ConfigurationError("GitHub token not configured; set GITHUB_TOKEN or github.token", config)

        logger.info(f"Building report for {target_date} across {len(cfg.github.repositories)} repositories")
        candidates = GitHubActivityFetcher(cfg.github).collect(target_date)
    except DailyReportError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    linear = LinearClient(cfg.linear)
    report = build_daily_report(candidates, linear.ticket_extractor, linear.resolve)

    body = DailyReportWriter(cfg.report.format).print_report(report)

    if cfg.report.copy_to_clipboard and body:
        if copy_to_clipboard(body):
            click.echo("📋 Report copied to clipboard")
        else:
            click.echo("Clipboard not available; report not copied", err=True)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
