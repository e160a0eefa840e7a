"""Wine Value Finder CLI using Typer."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from wine_value.config import AppConfig, get_default_config, load_config
from wine_value.core.enums import SessionStatus
from wine_value.core.errors import WineValueError
from wine_value.core.schema import Session, WineRecord, WineValueResult

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

console = Console()
app = typer.Typer(
    name="wine-value",
    help="Wine Value Finder - find the best-value bottles on a restaurant wine list",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_path: Optional[Path]) -> AppConfig:
    """Load configuration from an explicit path or the defaults."""
    return load_config(config_path) if config_path else get_default_config()


def _check_ai_config(config: AppConfig) -> None:
    """Check and display API key status."""
    if config.ai_configured:
        typer.echo(f"  Anthropic: configured (model {config.search.model})")
    else:
        typer.echo("  Anthropic: Not configured (parsing and web search disabled)")
        typer.echo("  Tip: Set ANTHROPIC_API_KEY in .env file")

    if config.price_api.enabled:
        typer.echo(f"  Price API: configured ({config.price_api.daily_limit} calls/day)")
    else:
        typer.echo("  Price API: Not configured (web search only)")
        typer.echo("  Tip: Set WINE_SEARCHER_API_KEY in .env file")


def _fmt(value: object, suffix: str = "") -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}{suffix}"


def _wine_table(wines: list[WineValueResult], currency: str, title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Wine", style="bold")
    table.add_column("Vintage")
    table.add_column(f"Menu ({currency})", justify="right")
    table.add_column("Retail", justify="right")
    table.add_column("Markup", justify="right")
    table.add_column("Critic", justify="right")
    table.add_column("Community", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Status")
    table.add_column("Source")

    for i, wine in enumerate(wines):
        table.add_row(
            str(i),
            wine.name,
            _fmt(wine.vintage) if wine.vintage is not None else "NV",
            _fmt(wine.menu_price),
            _fmt(wine.retail_price_avg),
            _fmt(wine.markup_percent, "%"),
            _fmt(wine.critic_score),
            _fmt(wine.community_score),
            _fmt(wine.value_score),
            wine.lookup_status.value,
            wine.data_provenance.value,
        )
    return table


@app.command()
def run(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
) -> None:
    """Start the Wine Value Finder API server."""
    import uvicorn

    typer.echo(f"Starting Wine Value Finder on http://{host}:{port}")
    _check_ai_config(get_default_config())
    typer.echo("Press Ctrl+C to stop the server")
    typer.echo("")

    uvicorn.run(
        "wine_value.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version() -> None:
    """Show the Wine Value Finder version."""
    typer.echo("Wine Value Finder v0.1.0")


@app.command()
def check_config(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to enrichment.yaml"),
) -> None:
    """Check the current configuration status."""
    typer.echo("Wine Value Finder Configuration")
    typer.echo("=" * 40)

    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    try:
        config = _load(config_path)
    except (FileNotFoundError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    typer.echo(f"  Config file: {config.config_path or 'built-in defaults'}")
    _check_ai_config(config)
    typer.echo(f"  Wave size: {config.scheduler.wave_size}")
    typer.echo(f"  Retry pass: {'on' if config.scheduler.retry_pass else 'off'}")
    typer.echo(f"  Cache TTL: {config.cache.ttl_hours:g}h")


@app.command()
def lookup(
    name: str = typer.Argument(..., help="Wine name as printed on the list"),
    price: float = typer.Option(..., "--price", "-p", help="Menu price"),
    producer: str = typer.Option("", "--producer", help="Producer name"),
    vintage: Optional[int] = typer.Option(None, "--vintage", "-y", help="Vintage year (omit for NV)"),
    currency: str = typer.Option("USD", "--currency", help="Menu currency code"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to enrichment.yaml"),
) -> None:
    """
    Look up retail price and ratings for a single wine.

    Examples:
        wine-value lookup "Chateau Margaux" --vintage 2015 --price 900 --currency GBP
    """
    from wine_value.services.session_service import SessionService

    config = _load(config_path)
    if not config.ai_configured and not config.price_api.enabled:
        rprint("[red]Error:[/red] set ANTHROPIC_API_KEY or WINE_SEARCHER_API_KEY first")
        raise typer.Exit(1)

    try:
        record = WineRecord(name=name, producer=producer, vintage=vintage, menu_price=price)
    except ValueError as e:
        rprint(f"[red]Invalid wine:[/red] {e}")
        raise typer.Exit(1)

    service = SessionService.from_config(config)
    session = Session(
        currency=currency.upper(),
        status=SessionStatus.LOOKING_UP,
        wines=[WineValueResult.from_record(record)],
    )
    snapshots: list[Session] = []
    report = asyncio.run(service.scheduler.run(session, snapshots.append))

    final = snapshots[-1]
    console.print(_wine_table(final.wines, final.currency, "Lookup Result"))
    links = final.wines[0].verification_links
    if links.price_source_url:
        rprint(f"  Prices: {links.price_source_url}")
    if links.community_source_url:
        rprint(f"  Community: {links.community_source_url}")
    rprint(f"  Took {report.duration_seconds:.1f}s, {service.remaining_api_calls()} price API calls left today")

    if report.error:
        rprint(f"[red]Lookup failed:[/red] {report.error}")
        raise typer.Exit(1)


@app.command()
def parse(
    file_path: Path = typer.Argument(..., help="Wine list PDF or image", exists=True, dir_okay=False),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to enrichment.yaml"),
) -> None:
    """
    Extract the wines from a wine list file.

    Examples:
        wine-value parse menu.pdf
    """
    from wine_value.services.ai.document_parser import DocumentParser

    config = _load(config_path)
    if not config.ai_configured:
        rprint("[red]Error:[/red] ANTHROPIC_API_KEY is not configured")
        raise typer.Exit(1)

    parser = DocumentParser(
        api_key=config.anthropic_api_key,
        model=config.search.model,
        max_tokens=config.upload.parser_max_tokens,
        timeout=config.upload.parser_timeout,
    )
    try:
        result = asyncio.run(parser.parse_document(file_path))
    except WineValueError as e:
        rprint(f"[red]Parse failed:[/red] {e.reason}")
        raise typer.Exit(1)

    wines = [WineValueResult.from_record(wine) for wine in result.wines]
    console.print(_wine_table(wines, result.currency, f"{file_path.name}: {len(wines)} wines"))
    if result.truncated:
        rprint("[yellow]Response was truncated; some wines may be missing[/yellow]")


if __name__ == "__main__":
    app()
