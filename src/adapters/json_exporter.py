"""Exportación JSON del snapshot de una sesión.

Por qué JSON:
- Permite que otras herramientas (scripts de soporte, diffs entre reloads)
  consuman exactamente lo que renderizaría la vista de gestión.
- Formato estable (claves ordenadas): dos cargas idénticas exportan lo mismo.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from core.domain.constants import Section
from core.services.billing_sync import BillingRecordStore
from core.services.subscription_session import SessionState


def _dump(value: BaseModel | None) -> Any:
    return value.model_dump(mode="json") if value is not None else None


def session_snapshot(state: SessionState, store: BillingRecordStore | None = None) -> dict[str, Any]:
    sections: dict[str, Any] = {}
    for section in Section:
        if section not in state.admitted:
            continue
        if section.is_paginated:
            paged = state.paged(section)
            sections[section.value] = {
                "items": [item.model_dump(mode="json") for item in paged.items],
                "pagination": paged.pagination.model_dump(mode="json"),
            }
        else:
            sections[section.value] = {"value": _dump(state.detail(section).value)}

    payload: dict[str, Any] = {
        "uuid": state.uuid,
        "variant": state.variant.value,
        "status": state.status.value,
        "reloadCount": state.reload_count,
        "entity": _dump(state.entity),
        "admitted": sorted(section.value for section in state.admitted),
        "sections": sections,
        "notifications": list(state.notifications),
    }
    if store is not None:
        payload["billingRecords"] = {
            "current": _dump(store.current),
            "upcoming": _dump(store.upcoming),
        }
    return payload


def export_session_json(
    *,
    state: SessionState,
    output_path: Path,
    store: BillingRecordStore | None = None,
) -> Path:
    """Exporta el snapshot de la sesión a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(session_snapshot(state, store), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
