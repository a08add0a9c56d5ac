"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta en el borde del wire y campos autodocumentados, sin acoplar
  el Core a ninguna librería de I/O.
- Las APIs hablan JSON camelCase; los modelos hablan Python snake_case.

Nota:
- Estos modelos describen *qué* es el dato, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from core.domain.constants import BillingType, SubscriptionAction, SubscriptionStatus, SubscriptionType


class ApiModel(BaseModel):
    """Base de todo payload intercambiado con las APIs de suscripciones."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class ActionError(ApiModel):
    code: str = Field(..., min_length=1)
    message: str | None = None


class SubscriptionActionState(ApiModel):
    """Disponibilidad de una acción de gestión, calculada por el servidor."""

    action: str = Field(
        ...,
        min_length=1,
        description="Identificador de la acción (ver `SubscriptionAction`).",
    )
    allowed: bool = Field(
        default=False,
        description="Indica si el servidor permite la acción ahora mismo.",
    )
    errors: list[ActionError] | None = Field(
        default=None,
        description="Motivos por los que la acción está bloqueada (o fallaría).",
    )
    extra: dict[str, Any] = Field(default_factory=dict)


class Subscription(ApiModel):
    """Entidad raíz: la suscripción de la que derivan todas las cargas.

    Una instancia cargada es un snapshot inmutable; un reload la reemplaza entera.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(
        ...,
        min_length=1,
        description="Identificador de la suscripción.",
    )
    type: SubscriptionType = Field(
        default=SubscriptionType.STANDARD,
        description="Categoría; las enterprise exponen dominios, usuarios y uso.",
    )
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.DRAFT,
        description="Estado del ciclo de vida.",
    )
    activation_date: datetime | None = Field(
        default=None,
        description="Fecha programada de activación (con zona horaria).",
    )
    updated_at: datetime | None = Field(
        default=None,
        description="Última modificación en servidor; sirve para detectar divergencia durante el polling.",
    )
    billing_type: BillingType = Field(
        default=BillingType.NONE,
        description="Cómo se factura la suscripción.",
    )
    has_custom_pricing: bool = Field(
        default=False,
        description="Indica si tiene condiciones de precio personalizadas.",
    )
    custom_attributes: dict[str, Any] = Field(default_factory=dict)
    actions: list[SubscriptionActionState] = Field(
        default_factory=list,
        description="Disponibilidad de acciones de gestión calculada por el servidor.",
    )

    def action_state(self, action: SubscriptionAction) -> SubscriptionActionState | None:
        for state in self.actions:
            if state.action == action.value:
                return state
        return None


class PaginationState(BaseModel):
    """Paginación de una sección, más los totales que informa el servidor."""

    model_config = ConfigDict(frozen=True)

    current_page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    total_count: int | None = Field(default=None, ge=0)
    total_pages: int | None = Field(default=None, ge=0)


T = TypeVar("T")


class Page(ApiModel, Generic[T]):
    """Una página de un endpoint paginado: `{data, currentPage, pageSize, totalCount, totalPages}`."""

    data: list[T] = Field(default_factory=list)
    current_page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    total_count: int | None = Field(default=None, ge=0)
    total_pages: int | None = Field(default=None, ge=0)

    def pagination(self) -> PaginationState:
        return PaginationState(
            current_page=self.current_page,
            page_size=self.page_size,
            total_count=self.total_count,
            total_pages=self.total_pages,
        )


class BillingRecord(ApiModel):
    uuid: str = Field(..., min_length=1)
    is_current: bool = Field(
        default=False,
        description="Registro que cubre el periodo en curso.",
    )
    is_upcoming: bool = Field(
        default=False,
        description="Registro de la próxima renovación.",
    )
    status: str | None = None
    amount: float | None = None
    currency: str | None = None
    period_start: datetime | None = None
    period_end: datetime | None = None


class SubscriptionUser(ApiModel):
    """Manager o usuario asociado a una suscripción.

    `email` y `job_info` solo existen tras el enriquecimiento con el directorio.
    """

    user_uuid: str = Field(..., min_length=1)
    role: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    job_info: dict[str, Any] | None = None


class DirectoryUser(ApiModel):
    """Datos adicionales de usuario devueltos por la búsqueda en el directorio."""

    uuid: str = Field(..., min_length=1)
    email: str | None = None
    job_info: dict[str, Any] | None = None


class Domain(ApiModel):
    domain: str = Field(..., min_length=1)
    uuid: str | None = None
    verified: bool = False


class UsageSummary(ApiModel):
    model_config = ConfigDict(extra="allow")

    renewal_index: float | None = None
    active_users: int | None = Field(default=None, ge=0)
    licensed_users: int | None = Field(default=None, ge=0)


class PaymentMethodDetails(ApiModel):
    type: str | None = None
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = Field(default=None, ge=1, le=12)
    exp_year: int | None = None


class PricingTerms(ApiModel):
    price_per_seat: float | None = None
    currency: str | None = None
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    notes: str | None = None


class BillingAddress(ApiModel):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None


class CustomerInfo(ApiModel):
    name: str | None = None
    email: str | None = None
    billing_address: BillingAddress | None = None
