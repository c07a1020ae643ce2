"""
bgtheme command line interface.
"""
import json
import sys
from pathlib import Path

import click
import uvicorn
from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text
from dotenv import load_dotenv

# Load environment variables before the config module reads them
load_dotenv()

from bgtheme import __version__  # noqa: E402
from bgtheme.config import Config, config  # noqa: E402
from bgtheme.errors import ThemeError  # noqa: E402
from bgtheme.services.orchestrator import DerivationResult, build_orchestrator  # noqa: E402
from bgtheme.services.watcher import WallpaperWatcher  # noqa: E402
from bgtheme.utils.logging import get_logger  # noqa: E402

logger = get_logger()
console = Console()


def _settings(runs=None, max_edge=None, parallel=None) -> Config:
    settings = Config()
    if runs is not None:
        if not Config.validate_runs(runs):
            raise click.BadParameter("runs must be 2 or 4", param_hint="--runs")
        settings.KMEANS_RUNS = runs
    if max_edge is not None:
        if not Config.validate_max_edge(max_edge):
            raise click.BadParameter("max edge must be between 16 and 4096", param_hint="--max-edge")
        settings.MAX_EDGE = max_edge
    if parallel is not None:
        settings.KMEANS_PARALLEL = parallel
    return settings


def _swatch(hex_color):
    if hex_color is None:
        return Text("-")
    text = Text(" " * 6, style=Style(bgcolor=hex_color))
    text.append(f" {hex_color}")
    return text


def render_result(result: DerivationResult):
    table = Table(title=f"{result.mode} theme ({result.cache_source} cache)",
                  show_header=True, header_style="bold")
    table.add_column("Role", justify="right", style="cyan", no_wrap=True)
    table.add_column("Color", justify="left")

    for role, hex_color in result.theme.hex().items():
        table.add_row(role, _swatch(hex_color))
    for slot, hex_color in result.palette_hex().items():
        table.add_row(slot, _swatch(hex_color))

    console.print(table)
    if result.persisted_to:
        console.print(f"Saved → {result.persisted_to}")


@click.group()
@click.version_option(__version__, prog_name="bgtheme")
def cli():
    """Derive desktop theme colors from wallpaper images."""


@cli.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", type=click.Choice(["dark", "light", "both"]), default="both",
              help="Theme mode to derive")
@click.option("--persist/--no-persist", default=False, help="Write the theme store")
@click.option("--cache/--no-cache", "use_cache", default=True, help="Consult the caches")
@click.option("--randomize/--no-randomize", default=None, help="Randomized accent selection")
@click.option("--runs", type=int, default=None, help="k-means runs (2 or 4)")
@click.option("--max-edge", type=int, default=None, help="Sampler working dimension")
@click.option("--parallel/--sequential", default=None, help="Run k-means runs concurrently")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
def derive(image_path, mode, persist, use_cache, randomize, runs, max_edge, parallel, as_json):
    """Derive the theme of IMAGE_PATH."""
    orchestrator = build_orchestrator(_settings(runs, max_edge, parallel))
    modes = (True, False) if mode == "both" else (mode == "dark",)

    results = []
    for is_dark in modes:
        try:
            results.append(orchestrator.derive_from_path(
                Path(image_path), is_dark,
                persist=persist, use_cache=use_cache, randomize=randomize,
            ))
        except ThemeError as e:
            raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            render_result(result)


@cli.command()
@click.option("--state", "state_path", type=click.Path(dir_okay=False), default=None,
              help="Wallpaper state document to watch")
@click.option("--interval", type=float, default=None, help="Polling interval in seconds")
def watch(state_path, interval):
    """Re-derive both themes whenever the wallpaper changes."""
    watcher = WallpaperWatcher(build_orchestrator(config), state_path=state_path, interval=interval)
    try:
        watcher.run()
    except KeyboardInterrupt:
        watcher.stop()
        logger.info("Watcher stopped")


@cli.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Bind port")
def serve(host, port):
    """Run the HTTP preview API."""
    logger.info("Starting bgtheme API", extra={"version": __version__, "host": host or config.API_HOST,
                                              "port": port or config.API_PORT})
    uvicorn.run("main:app", host=host or config.API_HOST, port=port or config.API_PORT)


@cli.command("clear-cache")
def clear_cache():
    """Remove every cached derivation."""
    removed = build_orchestrator(config).cache.clear()
    click.echo(f"Removed {removed} cache entries from {config.STATE_DIR}")


def main():
    try:
        cli()
    except ThemeError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
