"""Cliente de la API de perfil SSO (vista self-service "mi suscripción").

Implementa `core.interfaces.subscription_api.SubscriptionApi` sobre las rutas
`/profile/subscriptions/...` de la API SSO.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from adapters.http_client import build_async_client, pagination_params, parse_model, request_json
from core.config import AppSettings
from core.domain.models import (
    BillingRecord,
    Domain,
    Page,
    PaginationState,
    PaymentMethodDetails,
    Subscription,
    SubscriptionUser,
    UsageSummary,
)


class ProfileSubscriptionClient:
    def __init__(self, settings: AppSettings | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or AppSettings()
        self._client = client or build_async_client(self._settings, base_url=self._settings.sso_api_url)

    async def __aenter__(self) -> ProfileSubscriptionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _path(uuid: str, suffix: str = "") -> str:
        return f"/profile/subscriptions/{quote(uuid, safe='')}{suffix}"

    async def _page(self, uuid: str, suffix: str, pagination: PaginationState) -> object:
        return await request_json(
            self._client,
            "GET",
            self._path(uuid, suffix),
            params=pagination_params(pagination),
        )

    async def get_subscription(self, uuid: str) -> Subscription:
        data = await request_json(self._client, "GET", self._path(uuid))
        return parse_model(Subscription, data, what="subscription")

    async def get_usage(self, uuid: str) -> UsageSummary:
        data = await request_json(self._client, "GET", self._path(uuid, "/usage"))
        return parse_model(UsageSummary, data, what="usage")

    async def get_billing_records(self, uuid: str, pagination: PaginationState) -> Page[BillingRecord]:
        data = await self._page(uuid, "/billing-records", pagination)
        return parse_model(Page[BillingRecord], data, what="billing records")

    async def get_managers(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        data = await self._page(uuid, "/managers", pagination)
        return parse_model(Page[SubscriptionUser], data, what="managers")

    async def get_domains(self, uuid: str, pagination: PaginationState) -> Page[Domain]:
        data = await self._page(uuid, "/domains", pagination)
        return parse_model(Page[Domain], data, what="domains")

    async def get_users(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        data = await self._page(uuid, "/users", pagination)
        return parse_model(Page[SubscriptionUser], data, what="users")

    async def get_payment_method(self, uuid: str) -> PaymentMethodDetails:
        data = await request_json(self._client, "GET", self._path(uuid, "/payment-method"))
        return parse_model(PaymentMethodDetails, data, what="payment method")
