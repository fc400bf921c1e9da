"""Gratitude Wall CLI — serve the wall, moderate texts and watch a display."""

import asyncio
import sys
from datetime import timedelta

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from gratitude import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Gratitude Wall — short thank-you messages floating on a shared screen.

    Visitors submit messages, a filter keeps the wall friendly, and every
    connected display shows them as bubbles in near real time.
    """


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", envvar="HOST", default="0.0.0.0", help="Interface to bind")
@click.option("--port", envvar="PORT", default=3000, type=int, help="Port to listen on")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP/WebSocket server."""
    import uvicorn

    console.print(f"\n[bold magenta]Gratitude Wall[/] — serving on http://{host}:{port}\n")
    uvicorn.run("web.backend.app.main:app", host=host, port=port, reload=reload)


# ── Moderation ───────────────────────────────────────────────────────


@main.command()
@click.argument("text")
def check(text: str):
    """Run TEXT through length validation and the profanity filter."""
    from gratitude.moderation.moderator import Moderator

    result = Moderator().validate(text)
    if result.accepted:
        console.print(Panel("[green]Accepted[/]", title="Moderation"))
        return
    console.print(
        Panel(f"[red]Rejected[/] ({result.violation_type})\n{result.reason}", title="Moderation")
    )
    sys.exit(1)


@main.command()
@click.argument("text")
def normalize(text: str):
    """Show the normalized form and tokens the filter matches against."""
    from gratitude.moderation.moderator import Moderator

    normalized = Moderator.normalize(text)
    console.print(f"[bold]Normalized:[/] {normalized}")
    console.print(f"[bold]Tokens:[/] {', '.join(Moderator.tokenize(normalized)) or '-'}")


# ── Storage ──────────────────────────────────────────────────────────


def _store():
    from gratitude.messages.store import MessageStore
    from gratitude.settings import Settings

    return MessageStore.from_url(Settings.from_env().database_url)


@main.command()
def migrate():
    """Create the messages table if it does not exist."""
    store = _store()
    store.migrate()
    console.print("[green]Message table ready.[/]")


@main.command()
@click.option("--max-age", default=3600, type=int, help="Age in seconds after which messages go inactive")
def sweep(max_age: int):
    """Deactivate messages older than --max-age seconds."""
    store = _store()
    store.migrate()
    count = store.deactivate_older_than(timedelta(seconds=max_age))
    console.print(f"Deactivated [bold]{count}[/] message(s).")


# ── Watch ────────────────────────────────────────────────────────────


def _render_table(visible) -> Table:
    table = Table(title=f"On screen ({len(visible)})")
    table.add_column("Render id", style="dim")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column("Text", style="cyan")
    for bubble in visible:
        table.add_row(bubble.render_id, f"{bubble.x:.0f}", f"{bubble.y:.0f}", bubble.text)
    return table


@main.command()
@click.argument("url", default="http://localhost:3000")
@click.option("--width", default=1440, type=int, help="Simulated screen width")
@click.option("--height", default=900, type=int, help="Simulated screen height")
@click.option("--touch", is_flag=True, help="Simulate a touch device")
def watch(url: str, width: int, height: int, touch: bool):
    """Follow the wall at URL and print the bubbles a display would show."""
    from gratitude.display.viewer import ViewerSession
    from gratitude.display.viewport import Viewport
    from gratitude.logging_setup import setup_logging

    setup_logging("WARNING")
    viewport = Viewport(width=width, height=height, touch=touch)
    console.print(
        f"\n[bold magenta]Gratitude Wall[/] — watching {url} "
        f"as {viewport.tier.value} (up to {viewport.profile.max_concurrent} bubbles)\n"
    )

    with Live(_render_table([]), console=console, refresh_per_second=4) as live:
        session = ViewerSession(url, viewport, on_render=lambda v: live.update(_render_table(v)))
        try:
            asyncio.run(session.run())
        except KeyboardInterrupt:
            console.print("[yellow]Stopped.[/]")


if __name__ == "__main__":
    main()
