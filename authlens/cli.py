"""CLI entry point for the auth component detector."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from authlens.models.auth_component import DetectionResult
from authlens.models.config import DetectorConfig
from authlens.scanner import Scanner

console = Console()
DEFAULT_CONFIG = "authlens.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def load_config(path: str, no_ai: bool) -> DetectorConfig:
    """Config from *path* when it exists, else defaults."""
    cfg = DetectorConfig.load(path) if Path(path).exists() else DetectorConfig()
    if no_ai:
        cfg.ai_enabled = False
    return cfg


def print_result(result: DetectionResult) -> None:
    if not result.success:
        console.print(f"[red]{result.url}: detection failed[/red] {result.error}")
        return
    if not result.found:
        console.print(f"[yellow]{result.url}:[/yellow] {result.message or 'No authentication components detected.'}")
        return

    table = Table(title=f"{result.url} ({result.detection_method})")
    table.add_column("Type", style="bold")
    table.add_column("Details")
    table.add_column("Snippet", overflow="fold")
    for component in result.components:
        detail = component.label
        if component.details.fields:
            detail += f" [{', '.join(component.details.fields)}]"
        snippet = (component.snippet or "")[:200]
        table.add_row(component.type, detail, snippet)
    console.print(table)


def emit(results: list[DetectionResult], as_json: bool) -> None:
    if as_json:
        payload = [r.model_dump(exclude_none=True) for r in results]
        click.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))
        return
    for result in results:
        print_result(result)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Detect login, OAuth and passwordless components on web pages."""
    setup_logging(verbose)


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.option("--no-ai", is_flag=True, help="Skip AI detection; use pattern matching only")
def detect(urls: tuple[str, ...], config: str, as_json: bool, no_ai: bool) -> None:
    """Render each URL in a browser and detect its auth components."""
    scanner = Scanner(load_config(config, no_ai))
    results = scanner.scan_many(list(urls))
    emit(results, as_json)
    if any(not r.success for r in results):
        sys.exit(1)


@cli.command("scan-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--url", default="", help="URL the markup was saved from")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.option("--no-ai", is_flag=True, help="Skip AI detection; use pattern matching only")
def scan_file(path: str, url: str, config: str, as_json: bool, no_ai: bool) -> None:
    """Detect auth components in a saved HTML file."""
    markup = Path(path).read_text(encoding="utf-8", errors="replace")
    scanner = Scanner(load_config(config, no_ai))
    result = scanner.scan_markup(markup, url or Path(path).resolve().as_uri())
    emit([result], as_json)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    DetectorConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nSet ANTHROPIC_API_KEY to enable AI detection, then run:")
    console.print("  [blue]authlens detect https://example.com/login[/blue]")


if __name__ == "__main__":
    cli()
