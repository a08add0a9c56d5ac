"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y autenticación para todos los clientes de API.
- Traduce fallos HTTP y de transporte a `ApiError`: el Core nunca ve httpx.
- Facilita testeo: un cliente sobre `httpx.MockTransport` encaja directamente.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from core.config import AppSettings
from core.domain.errors import ApiError
from core.domain.models import PaginationState

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    base_url: str = "",
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todos los clientes se comporten igual.
    - `transport` permite enchufar `httpx.MockTransport` en tests.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if settings.api_token:
        headers["Authorization"] = f"Bearer {settings.api_token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Envía una petición y devuelve el cuerpo JSON decodificado.

    Errores:
    - `ApiError(status=<code>)` para respuestas >= 400.
    - `ApiError(status=None)` para fallos de transporte y cuerpos no decodificables.
    """

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise ApiError(f"{method} {url} failed: {exc}") from exc

    if response.is_error:
        raise ApiError(
            f"{method} {url} returned HTTP {response.status_code}",
            status=response.status_code,
            payload=_error_payload(response),
        )

    try:
        return response.json()
    except ValueError as exc:
        raise ApiError(f"{method} {url} returned a non-JSON body", status=None) from exc


def pagination_params(pagination: PaginationState) -> dict[str, int]:
    return {"page": pagination.current_page, "pageSize": pagination.page_size}


def parse_model(model: type[ModelT], data: Any, *, what: str) -> ModelT:
    """Valida un payload de la API; si está mal formado se convierte en `ApiError(status=None)`."""

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ApiError(f"Malformed {what} payload: {exc.error_count()} validation error(s)", payload=data) from exc
