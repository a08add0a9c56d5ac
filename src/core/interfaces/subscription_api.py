"""Contratos de los colaboradores que consume una sesión de suscripción.

Por qué Protocol:
- Contratos estructurales (duck typing) sin herencia rígida.
- Los clientes HTTP y los fakes en memoria de los tests son intercambiables.

Reglas de diseño:
- Todo método es asíncrono: cada uno es un borde de red.
- Los fallos se lanzan como `core.domain.errors.ApiError`.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import (
    BillingRecord,
    CustomerInfo,
    DirectoryUser,
    Domain,
    Page,
    PaginationState,
    PaymentMethodDetails,
    PricingTerms,
    Subscription,
    SubscriptionUser,
    UsageSummary,
)


@runtime_checkable
class SubscriptionApi(Protocol):
    """Sub-recursos comunes a las vistas de perfil y unificada."""

    async def get_subscription(self, uuid: str) -> Subscription: ...

    async def get_usage(self, uuid: str) -> UsageSummary: ...

    async def get_billing_records(self, uuid: str, pagination: PaginationState) -> Page[BillingRecord]: ...

    async def get_managers(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]: ...

    async def get_domains(self, uuid: str, pagination: PaginationState) -> Page[Domain]: ...

    async def get_users(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]: ...

    async def get_payment_method(self, uuid: str) -> PaymentMethodDetails: ...


@runtime_checkable
class UnifiedSubscriptionApi(SubscriptionApi, Protocol):
    """Sub-recursos extra que solo carga la vista unificada (back-office)."""

    async def get_pricing_terms(self, uuid: str) -> PricingTerms:
        """Condiciones de precio personalizadas; lanza `ApiError(status=404)` si no existen."""

        ...

    async def get_customer_info(self, uuid: str) -> CustomerInfo: ...


@runtime_checkable
class DirectoryApi(Protocol):
    """Directorio de usuarios usado para enriquecer managers y usuarios."""

    async def search_users(
        self,
        uuids: Sequence[str],
        *,
        fields: Sequence[str],
        page_size: int,
    ) -> list[DirectoryUser]: ...
