"""pagebeacon CLI commands."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from pagebeacon.cli.helpers import build_api, configure_logging, console
from pagebeacon.context import PageContext
from pagebeacon.errors import MissingIdentity, PageBeaconError
from pagebeacon.events.models import Event, EventType

app = typer.Typer(
    name="pagebeacon",
    help="Send behavioural events to the collector and manage the local retry queue.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    configure_logging(verbose)


async def _login(code: str) -> bool:
    api = build_api()
    try:
        if not await api.check_participant_code(code):
            return False
        api.set_auth(code)
        return True
    finally:
        await api.aclose()


@app.command("login")
def login_cmd(code: str = typer.Argument(..., help="Participant code")) -> None:
    """Validate a participant code with the collector and adopt it."""
    if not asyncio.run(_login(code)):
        console.print(f"[red]❌ Participant code [bold]{code}[/bold] was not accepted[/red]")
        raise typer.Exit(1)

    console.print(f"✅ Logged in as [bold]{code}[/bold]")


async def _logout() -> None:
    api = build_api()
    try:
        api.logout()
    finally:
        await api.aclose()


@app.command("logout")
def logout_cmd() -> None:
    """Forget the participant, its session and all queued events."""
    asyncio.run(_logout())
    console.print("✅ Logged out")


async def _status():
    api = build_api()
    try:
        return api.get_auth(), api.get_session(), api.queue.load()
    finally:
        await api.aclose()


@app.command("status")
def status_cmd() -> None:
    """Show identity and the retry queue."""
    code, session, entries = asyncio.run(_status())

    console.print(f"Participant: [cyan]{code or '(none)'}[/cyan]")
    console.print(f"Session: [cyan]{session or '(none)'}[/cyan]")

    table = Table(title=f"Queued events ({len(entries)})")
    table.add_column("Event ID")
    table.add_column("Type")
    table.add_column("Attempts", justify="right")
    table.add_column("Last Attempt")
    table.add_column("Due", style="dim")

    for entry in entries:
        table.add_row(
            entry.local_uuid,
            entry.event.type.value,
            str(entry.attempts),
            entry.last_attempt.strftime("%Y-%m-%d %H:%M:%S"),
            "now" if entry.try_immediately else "after backoff",
        )

    console.print(table)


async def _page_view(url: str, referrer: str) -> bool:
    api = build_api(PageContext(url=url, referrer=referrer))
    try:
        if not api.get_auth():
            raise MissingIdentity("Not logged in. Run: pagebeacon login <code>")
        event = Event(type=EventType.PAGE_VIEW, url=url, context=referrer)
        return await api.post_event(event, True)
    finally:
        await api.aclose()


@app.command("page-view")
def page_view_cmd(
    url: str = typer.Argument(..., help="Page URL"),
    referrer: str = typer.Option("", "--referrer", help="Referrer of the page"),
) -> None:
    """Record a page view (queued for retry if it cannot be delivered now)."""
    try:
        delivered = asyncio.run(_page_view(url, referrer))
    except PageBeaconError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    if delivered:
        console.print("✅ Page view delivered")
    else:
        console.print("⚠️  Page view queued for retry")


async def _flush():
    api = build_api()
    try:
        return await api.retry_now()
    finally:
        await api.aclose()


@app.command("flush")
def flush_cmd() -> None:
    """Run one retry sweep over the queue."""
    result = asyncio.run(_flush())
    console.print(
        f"Delivered [green]{result.delivered}[/green], "
        f"dropped [yellow]{result.dropped}[/yellow], "
        f"still queued [cyan]{result.retained}[/cyan]"
    )
