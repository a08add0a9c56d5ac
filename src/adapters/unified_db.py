"""Cliente del directorio de usuarios (API unified DB).

Lo usa el enriquecimiento: una búsqueda agrupada por página de managers/usuarios,
filtrada por `uuid anyOf [...]`, pidiendo solo los campos adicionales.
"""

from __future__ import annotations

from typing import Sequence

import httpx

from adapters.http_client import build_async_client, parse_model, request_json
from core.config import AppSettings
from core.domain.models import DirectoryUser, Page


def build_uuid_search(uuids: Sequence[str], *, fields: Sequence[str], page_size: int) -> dict[str, object]:
    return {
        "filterBy": {
            "filters": [
                {
                    "name": "uuid",
                    "value": list(uuids),
                    "comparison": "anyOf",
                }
            ],
        },
        "pageSize": page_size,
        "fields": list(fields),
    }


class UnifiedDbDirectory:
    def __init__(self, settings: AppSettings | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or AppSettings()
        self._client = client or build_async_client(self._settings, base_url=self._settings.unified_db_url)

    async def __aenter__(self) -> UnifiedDbDirectory:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_users(
        self,
        uuids: Sequence[str],
        *,
        fields: Sequence[str],
        page_size: int,
    ) -> list[DirectoryUser]:
        data = await request_json(
            self._client,
            "POST",
            "/users/search",
            json=build_uuid_search(uuids, fields=fields, page_size=page_size),
        )
        return parse_model(Page[DirectoryUser], data, what="directory search").data
