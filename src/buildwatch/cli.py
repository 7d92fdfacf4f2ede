import asyncio
from datetime import datetime, timezone
import functools
import logging
from pathlib import Path

import aiohttp
import humanize
import typer

from buildwatch.clock import parse_iso
from buildwatch.config import SETTINGS
from buildwatch.fetch import fetch_page
from buildwatch.logger import get_log_handlers
from buildwatch.metric import push_metrics
from buildwatch.reconcile import BUILD_NUMBER_KEY
from buildwatch.runner import run
from buildwatch.store import HistoryStore


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("buildwatch")

app = typer.Typer()


@app.callback()
def init():
    logging.getLogger().setLevel(SETTINGS.OVERRIDE_LOGGING)
    logger.setLevel(SETTINGS.OVERRIDE_LOGGING)
    get_log_handlers(logger)


@app.command()
def check(
    url: str = typer.Option(SETTINGS.PAGE_URL, help="Page embedding the config block"),
    data_file: Path = typer.Option(
        SETTINGS.DATA_FILE_PATH, help="History document to update"
    ),
):
    """Fetch the page once and record the outcome in the history file."""

    async def handle():
        async with aiohttp.ClientSession() as session:
            return await run(
                HistoryStore(data_file),
                functools.partial(fetch_page, session),
                url,
                max_checks=SETTINGS.MAX_CHECKS,
                marker_id=SETTINGS.MARKER_ID,
            )

    result = asyncio.run(handle())
    logger.info("Run finished with status %s", result.status.value)
    push_metrics()
    raise typer.Exit(code=result.exit_code)


@app.command()
def show(
    data_file: Path = typer.Option(SETTINGS.DATA_FILE_PATH, help="History document"),
    limit: int = typer.Option(10, help="Number of recent checks to list"),
):
    """Summarize the recorded builds and the most recent checks."""
    document = HistoryStore(data_file).load()
    now = datetime.now(timezone.utc)

    build = document.current_build
    if build is None:
        typer.echo("No builds recorded yet")
    else:
        first_seen = parse_iso(build.first_seen_at)
        last_seen = parse_iso(build.last_seen_at)
        typer.echo(f"Current build: {build.identifier}")
        for key, value in sorted(build.environment.items()):
            if key == BUILD_NUMBER_KEY:
                continue
            typer.echo(f"  {key}: {value}")
        typer.echo(
            f"  first seen {humanize.naturaltime(now - first_seen)}, "
            f"live for {humanize.naturaldelta(last_seen - first_seen)}"
        )
    typer.echo(f"Known builds: {len(document.builds)}")

    if not document.checks:
        typer.echo("No checks recorded yet")
        return

    typer.echo(f"Last {min(limit, len(document.checks))} checks:")
    for item in document.checks[:limit]:
        detail = item.build_number or item.error_message or ""
        if item.is_new_build:
            detail += " (new)"
        typer.echo(
            f"  {item.checked_at}  {item.status.value:<18} {item.duration_ms:>6}ms  {detail}"
        )
