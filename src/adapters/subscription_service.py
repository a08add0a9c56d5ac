"""Cliente del servicio de suscripciones (vista unificada / back-office).

Los datos de la suscripción vienen del servicio de suscripciones; método de pago
y datos de cliente pertenecen a la API SSO. Implementa
`core.interfaces.subscription_api.UnifiedSubscriptionApi`.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from adapters.http_client import build_async_client, pagination_params, parse_model, request_json
from core.config import AppSettings
from core.domain.models import (
    BillingRecord,
    CustomerInfo,
    Domain,
    Page,
    PaginationState,
    PaymentMethodDetails,
    PricingTerms,
    Subscription,
    SubscriptionUser,
    UsageSummary,
)


class SubscriptionServiceClient:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        service_client: httpx.AsyncClient | None = None,
        sso_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._service = service_client or build_async_client(
            self._settings, base_url=self._settings.subscription_service_url
        )
        self._sso = sso_client or build_async_client(self._settings, base_url=self._settings.sso_api_url)

    async def __aenter__(self) -> SubscriptionServiceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._service.aclose()
        await self._sso.aclose()

    @staticmethod
    def _path(uuid: str, suffix: str = "") -> str:
        return f"/subscriptions/{quote(uuid, safe='')}{suffix}"

    async def get_subscription(self, uuid: str) -> Subscription:
        data = await request_json(self._service, "GET", self._path(uuid))
        return parse_model(Subscription, data, what="subscription")

    async def get_usage(self, uuid: str) -> UsageSummary:
        data = await request_json(self._service, "GET", self._path(uuid, "/renewal-index"))
        return parse_model(UsageSummary, data, what="renewal index")

    async def get_billing_records(self, uuid: str, pagination: PaginationState) -> Page[BillingRecord]:
        data = await request_json(
            self._service,
            "GET",
            self._path(uuid, "/billing-records"),
            params=pagination_params(pagination),
        )
        return parse_model(Page[BillingRecord], data, what="billing records")

    async def get_managers(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        data = await request_json(
            self._service,
            "GET",
            self._path(uuid, "/managers"),
            params=pagination_params(pagination),
        )
        return parse_model(Page[SubscriptionUser], data, what="managers")

    async def get_domains(self, uuid: str, pagination: PaginationState) -> Page[Domain]:
        data = await request_json(
            self._service,
            "GET",
            self._path(uuid, "/domains"),
            params=pagination_params(pagination),
        )
        return parse_model(Page[Domain], data, what="domains")

    async def get_users(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        data = await request_json(
            self._service,
            "GET",
            self._path(uuid, "/users"),
            params=pagination_params(pagination),
        )
        return parse_model(Page[SubscriptionUser], data, what="users")

    async def get_pricing_terms(self, uuid: str) -> PricingTerms:
        data = await request_json(self._service, "GET", self._path(uuid, "/custom-pricing-terms"))
        return parse_model(PricingTerms, data, what="pricing terms")

    async def get_payment_method(self, uuid: str) -> PaymentMethodDetails:
        data = await request_json(self._sso, "GET", self._path(uuid, "/payment-method"))
        return parse_model(PaymentMethodDetails, data, what="payment method")

    async def get_customer_info(self, uuid: str) -> CustomerInfo:
        data = await request_json(self._sso, "GET", self._path(uuid, "/customer-info"))
        return parse_model(CustomerInfo, data, what="customer info")
