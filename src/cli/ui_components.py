"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Mantiene la lógica de comandos separada de los detalles visuales.
- Las mismas tablas y paneles sirven a `show` y a los re-renders de `show --watch`.
"""

from __future__ import annotations

from typing import Any

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.constants import Section, SubscriptionStatus, ViewStatus
from core.services.admission import activation_errors
from core.services.billing_sync import BillingRecordStore
from core.services.sections import PagedSection
from core.services.subscription_session import SessionState

_STATUS_STYLES: dict[ViewStatus, str] = {
    ViewStatus.LOADING: "cyan",
    ViewStatus.READY: "green",
    ViewStatus.NOT_FOUND: "yellow",
    ViewStatus.SERVER_ERROR: "red",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (se omite en modos no interactivos / JSON)."""

    title = Text("subscription-manage", style="bold cyan")
    subtitle = Text("Manage-view sessions • Sections • Activation polling", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_header_panel(state: SessionState, *, polling: bool = False) -> Panel:
    style = _STATUS_STYLES[state.status]
    body = Text()
    body.append(f"Status: {state.status.value}\n", style=style)
    body.append(f"Variant: {state.variant.value}   Reloads: {state.reload_count}\n", style="dim")

    entity = state.entity
    if entity is not None:
        body.append(f"Type: {entity.type.value}   Lifecycle: {entity.status.value}   Billing: {entity.billing_type.value}\n")
        if entity.activation_date:
            body.append(f"Activation: {entity.activation_date.isoformat()}\n")
        if entity.status is SubscriptionStatus.DRAFT:
            for error in activation_errors(entity):
                body.append(f"Activation blocked: {error.code}", style="yellow")
                if error.message:
                    body.append(f" ({error.message})", style="dim")
                body.append("\n")
    elif state.error is not None:
        body.append(f"{state.error}\n", style="red")

    if polling:
        body.append("Waiting for the scheduled activation to be applied…\n", style="bold magenta")

    return Panel(body, title=Text(f"Subscription {state.uuid}", style="bold"), border_style=style)


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


_PAGED_COLUMNS: dict[Section, tuple[str, ...]] = {
    Section.PAYMENTS: ("uuid", "status", "amount", "currency", "is_current", "is_upcoming"),
    Section.MANAGERS: ("user_uuid", "role", "email"),
    Section.DOMAINS: ("domain", "verified"),
    Section.USERS: ("user_uuid", "role", "email"),
}


def build_section_table(paged: PagedSection[Any]) -> Table:
    pagination = paged.pagination
    caption = f"page {pagination.current_page}"
    if pagination.total_pages:
        caption += f"/{pagination.total_pages}"
    if pagination.total_count is not None:
        caption += f" • {pagination.total_count} total"

    table = Table(title=paged.section.value.title(), caption=caption)
    columns = _PAGED_COLUMNS[paged.section]
    for column in columns:
        table.add_column(column.replace("_", " ").title(), no_wrap=column.endswith("uuid"))
    for item in paged.items:
        data = item.model_dump()
        table.add_row(*(_cell(data.get(column)) for column in columns))
    return table


def build_detail_panel(section: Section, value: Any) -> Panel:
    body = Text()
    if value is None:
        body.append("Nothing to show", style="dim")
    else:
        for key, item in value.model_dump(exclude_none=True).items():
            body.append(f"{key}: ", style="bold")
            body.append(f"{item}\n")
    return Panel(body, title=section.label.title(), border_style="blue")


def build_billing_slots_panel(store: BillingRecordStore) -> Panel:
    body = Text()
    for label, record in (("Current", store.current), ("Upcoming", store.upcoming)):
        body.append(f"{label}: ", style="bold")
        body.append(f"{record.uuid}\n" if record is not None else "-\n")
    return Panel(body, title="Shared billing records", border_style="magenta")


def render_session(
    console: Console,
    state: SessionState,
    store: BillingRecordStore | None = None,
    *,
    polling: bool = False,
) -> None:
    renderables: list[Any] = [build_header_panel(state, polling=polling)]
    for section in Section:
        if section not in state.admitted:
            continue
        if section.is_paginated:
            renderables.append(build_section_table(state.paged(section)))
        else:
            renderables.append(build_detail_panel(section, state.detail(section).value))
    if store is not None and state.variant.publishes_billing_records:
        renderables.append(build_billing_slots_panel(store))
    console.print(Group(*renderables))
