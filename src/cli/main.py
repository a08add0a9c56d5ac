"""CLI entry-point (Typer + Rich).

Why a CLI on top of an orchestration library:
- Support staff can see exactly what the manage view would load for a
  subscription, including the admitted sections and the shared billing slots.
- `--watch` follows a scheduled activation until the server applies it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.json_exporter import export_session_json
from adapters.profile_api import ProfileSubscriptionClient
from adapters.subscription_service import SubscriptionServiceClient
from adapters.unified_db import UnifiedDbDirectory
from cli import doctor
from cli.ui_components import print_banner, render_session
from core.config import AppSettings
from core.domain.constants import SessionVariant, ViewStatus
from core.interfaces.subscription_api import DirectoryApi, SubscriptionApi
from core.services.billing_sync import BillingRecordStore
from core.services.subscription_session import SessionHooks, SessionState, SubscriptionSession

app = typer.Typer(no_args_is_help=True, help="Inspect subscription manage-view sessions.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

_WATCH_CHECK_SECONDS = 0.5


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


async def _follow_activation(session: SubscriptionSession, store: BillingRecordStore) -> None:
    seen = session.state.reload_count
    while True:
        if session.state.reload_count != seen:
            seen = session.state.reload_count
            await session.wait_idle()
            render_session(_console, session.state, store, polling=session.is_polling)
            continue
        if not session.poller.is_armed:
            return
        await asyncio.sleep(_WATCH_CHECK_SECONDS)


async def _show(
    *,
    uuid: str,
    variant: SessionVariant,
    settings: AppSettings,
    watch: bool,
    json_path: Path | None,
) -> SessionState:
    store = BillingRecordStore()
    hooks = SessionHooks(warning=lambda message: _console.print(f"[yellow]![/yellow] {message}"))

    async with AsyncExitStack() as stack:
        api: SubscriptionApi
        directory: DirectoryApi | None = None
        if variant is SessionVariant.UNIFIED:
            api = await stack.enter_async_context(SubscriptionServiceClient(settings))
            directory = await stack.enter_async_context(UnifiedDbDirectory(settings))
        else:
            api = await stack.enter_async_context(ProfileSubscriptionClient(settings))

        session = await stack.enter_async_context(
            SubscriptionSession(
                uuid,
                api=api,
                variant=variant,
                directory=directory,
                billing_store=store,
                settings=settings,
                hooks=hooks,
            )
        )
        await session.wait_idle()
        render_session(_console, session.state, store, polling=session.is_polling)

        if watch:
            await _follow_activation(session, store)

        if json_path is not None:
            path = export_session_json(state=session.state, output_path=json_path, store=store)
            _console.print(f"[green]Snapshot written to:[/green] {path}")

        return session.state


@app.command()
def show(
    uuid: str = typer.Argument(..., help="Subscription UUID."),
    variant: SessionVariant = typer.Option(
        SessionVariant.UNIFIED,
        "--variant",
        case_sensitive=False,
        help="Which manage view to reproduce.",
    ),
    watch: bool = typer.Option(
        False,
        "--watch",
        help="Stay open while a scheduled activation is pending and re-render after each reload.",
    ),
    json_path: Path | None = typer.Option(
        None,
        "--json",
        help="Also export the session snapshot to this JSON file.",
    ),
    banner: bool = typer.Option(True, "--banner/--no-banner", help="Show the banner."),
) -> None:
    """Load the manage view of a subscription and render it."""

    settings = AppSettings()
    configure_logging(settings.log_level)
    if banner:
        print_banner(_console)

    state = asyncio.run(
        _show(uuid=uuid, variant=variant, settings=settings, watch=watch, json_path=json_path)
    )

    if state.status is ViewStatus.NOT_FOUND:
        raise typer.Exit(code=2)
    if state.status is ViewStatus.SERVER_ERROR:
        raise typer.Exit(code=1)


def run() -> None:
    app()
