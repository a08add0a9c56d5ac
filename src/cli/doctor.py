"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings, url: str) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        # Any HTTP answer proves the service is reachable.
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


async def _check_all(settings: AppSettings) -> list[tuple[str, bool, str]]:
    targets = {
        "Subscription service": settings.subscription_service_url,
        "SSO API": settings.sso_api_url,
        "Unified DB": settings.unified_db_url,
    }
    results = await asyncio.gather(*(_check_http(settings, url) for url in targets.values()))
    return [(name, ok, detail) for name, (ok, detail) in zip(targets, results)]


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="subscription-manage doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    if settings.api_token:
        table.add_row("API token", "OK", "Bearer token configured")
    else:
        table.add_row("API token", "OPTIONAL", "No token set -> anonymous requests")
    table.add_row("Poll interval", "OK", f"{settings.poll_interval_seconds:g}s")
    table.add_row("Page sizes", "OK", f"default={settings.default_page_size} users={settings.users_page_size}")

    failures = 0
    for name, ok, detail in asyncio.run(_check_all(settings)):
        table.add_row(name, "OK" if ok else "FAIL", detail)
        failures += 0 if ok else 1

    _console.print(table)

    if failures:
        _console.print(
            "\n[yellow]Note:[/yellow] run `subscription-manage doctor setup` to store the API base URLs."
        )
        raise typer.Exit(code=1)


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    defaults = AppSettings()
    service_url = typer.prompt("Subscription service URL", default=defaults.subscription_service_url).strip()
    sso_url = typer.prompt("SSO API URL", default=defaults.sso_api_url).strip()
    unified_db_url = typer.prompt("Unified DB URL", default=defaults.unified_db_url).strip()
    token = typer.prompt("API token (empty for none)", default="", hide_input=True, show_default=False).strip()

    if not service_url or not sso_url or not unified_db_url:
        raise typer.BadParameter("all base URLs are required")

    values = {
        "SUBMANAGE_SUBSCRIPTION_SERVICE_URL": service_url,
        "SUBMANAGE_SSO_API_URL": sso_url,
        "SUBMANAGE_UNIFIED_DB_URL": unified_db_url,
    }
    if token:
        values["SUBMANAGE_API_TOKEN"] = token

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved config to:[/green] {env_path}")
