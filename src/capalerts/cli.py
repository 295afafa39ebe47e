"""Command-line tools for validating and converting CAP alerts."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.table import Table

from .builder import CapJsonBuilder, CapXmlBuilder
from .logging_utils import configure_logging
from .parser import CapXmlParser
from .reasons import CapError, Level, Reasons
from .settings import Settings, get_settings
from .sources import CachedSource, fetch_document, is_url
from .xpath import line_numbers

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

LEVEL_STYLES = {
    Level.ERROR: "bold red",
    Level.WARNING: "yellow",
    Level.RECOMMENDATION: "cyan",
    Level.INFO: "dim",
}
EXIT_FINDINGS = 1
EXIT_UNREADABLE = 2


def _unreadable(message: str) -> SystemExit:
    click.echo(message, err=True)
    return SystemExit(EXIT_UNREADABLE)


def load_document(location: str, settings: Settings) -> CachedSource:
    if location == "-":
        return CachedSource.from_stream(click.get_binary_stream("stdin"), system_id="<stdin>")
    if is_url(location):
        try:
            return asyncio.run(fetch_document(location, settings.http_timeout_seconds))
        except httpx.HTTPError as exc:
            LOGGER.warning("Failed to fetch %s: %s", location, exc)
            raise _unreadable(f"Could not fetch {location}: {exc}") from exc
    path = Path(location)
    if not path.is_file():
        raise _unreadable(f"Alert file not found: {path}")
    return CachedSource.from_path(path)


def _parse(source: CachedSource, parser: CapXmlParser):
    try:
        return parser.parse_with_reasons(source)
    except CapError as exc:
        raise _unreadable(f"{source.system_id or 'input'}: {exc}") from exc


def render_reasons(reasons: Reasons, lines: dict[str, int]) -> Table:
    table = Table(title="Findings")
    table.add_column("Level")
    table.add_column("Line", justify="right")
    table.add_column("Position")
    table.add_column("Source")
    table.add_column("Message")
    for reason in reasons:
        line = lines.get(reason.xpath)
        table.add_row(
            f"[{LEVEL_STYLES[reason.level]}]{reason.level.name}[/]",
            str(line) if line is not None else "",
            reason.xpath,
            reason.source,
            reason.message,
        )
    return table


@click.group()
@click.option("--log-level", type=str, default=None, help="Override CAP_LOG_LEVEL")
def main(log_level: str | None) -> None:
    """Validate and convert Common Alerting Protocol alerts."""
    settings = get_settings()
    configure_logging(
        log_level.upper() if log_level else settings.logging_level,
        stream=click.get_text_stream("stderr"),
    )


@main.command()
@click.argument("location")
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Skip semantic checks and use the extended schemas",
)
@click.option(
    "--fail-level",
    type=click.Choice([level.name for level in Level], case_sensitive=False),
    default=None,
    help="Lowest level that makes the command fail (defaults to CAP_FAIL_LEVEL)",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print findings as JSON")
def validate(location: str, strict: bool | None, fail_level: str | None, as_json: bool) -> None:
    """Report findings for the alert at LOCATION (a file, a URL or - for stdin)."""
    settings = get_settings()
    overrides = {} if strict is None else {"strict_schema": strict}
    parser = CapXmlParser.from_settings(settings, validate=False, **overrides)
    source = load_document(location, settings)
    alert, reasons = _parse(source, parser)
    failing = Level[fail_level.upper()] if fail_level else settings.failing_level

    if as_json:
        payload = [
            {
                "xpath": reason.xpath,
                "level": reason.level.name,
                "type": reason.type.name,
                "source": reason.source,
                "message": reason.message,
            }
            for reason in reasons
        ]
        click.echo(json.dumps(payload, indent=2))
    elif reasons:
        CONSOLE.print(render_reasons(reasons, line_numbers(source.data)))
    else:
        CONSOLE.print(f"[bold green]{alert.identifier or 'Alert'} is valid[/bold green]")

    LOGGER.debug("Validated %s with %s finding(s)", location, len(reasons))
    if reasons.contains_with_level_or_higher(failing):
        raise SystemExit(EXIT_FINDINGS)


@main.command()
@click.argument("location")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["xml", "json"], case_sensitive=False),
    default="json",
    show_default=True,
)
@click.option("--indent", type=click.IntRange(min=0), default=None, help="Defaults to CAP_INDENT")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write to a file instead of stdout",
)
def convert(location: str, output_format: str, indent: int | None, output: Path | None) -> None:
    """Re-serialize the alert at LOCATION as CAP XML or JSON."""
    settings = get_settings()
    parser = CapXmlParser.from_settings(settings)
    source = load_document(location, settings)
    alert, reasons = _parse(source, parser)
    if parser.validate:
        try:
            reasons.raise_for_level(Level.ERROR)
        except CapError as exc:
            click.echo(str(exc), err=True)
            raise SystemExit(EXIT_FINDINGS) from exc

    width = settings.indent if indent is None else indent
    if output_format.lower() == "xml":
        rendered = CapXmlBuilder(width).to_xml(alert)
    else:
        rendered = CapJsonBuilder(width).to_json(alert)

    if output is None:
        click.echo(rendered)
    else:
        output.write_text(rendered + "\n", encoding="utf-8")
        CONSOLE.print(f"Wrote {output_format.lower()} to [cyan]{output}[/cyan]")


if __name__ == "__main__":  # pragma: no cover
    main()
