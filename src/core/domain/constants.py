"""Enumerations shared across the domain, the services and the CLI.

Keeping them in the domain layer gives the session, the adapters and the
renderers a single source of truth without circular imports.
"""

from __future__ import annotations

from enum import Enum


class SubscriptionType(str, Enum):
    STANDARD = "standard"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BillingType(str, Enum):
    CARD = "card"
    INVOICE = "invoice"
    NONE = "none"


class SubscriptionAction(str, Enum):
    ACTIVATE = "activate"
    CANCEL = "cancel"
    RENEW = "renew"


class ActivationErrorCode(str, Enum):
    """Error codes reported for the `activate` action."""

    NO_BILLING_RECORD = "NO_BILLING_RECORD"
    NO_MANAGER = "NO_MANAGER"
    INVALID_STATUS = "INVALID_STATUS"


class ViewStatus(str, Enum):
    """Top-level status of a session."""

    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "notFound"
    SERVER_ERROR = "serverError"


class SessionVariant(str, Enum):
    """Which manage view the session feeds."""

    PROFILE = "profile"
    UNIFIED = "unified"

    @property
    def enriches_users(self) -> bool:
        return self is SessionVariant.UNIFIED

    @property
    def publishes_billing_records(self) -> bool:
        return self is SessionVariant.UNIFIED

    @property
    def polls_activation(self) -> bool:
        return self is SessionVariant.UNIFIED


class Section(str, Enum):
    """Named sub-resources of a subscription."""

    PAYMENTS = "payments"
    MANAGERS = "managers"
    DOMAINS = "domains"
    USERS = "users"
    USAGE = "usage"
    PAYMENT_METHOD = "paymentMethod"
    PRICING_TERMS = "pricingTerms"
    CUSTOMER_INFO = "customerInfo"

    @property
    def label(self) -> str:
        """Human label used in user-facing notifications."""

        return _SECTION_LABELS[self]

    @property
    def is_paginated(self) -> bool:
        return self in PAGINATED_SECTIONS


_SECTION_LABELS: dict[Section, str] = {
    Section.PAYMENTS: "billing record",
    Section.MANAGERS: "managers",
    Section.DOMAINS: "domains",
    Section.USERS: "users",
    Section.USAGE: "usage",
    Section.PAYMENT_METHOD: "payment method",
    Section.PRICING_TERMS: "pricing terms",
    Section.CUSTOMER_INFO: "customer",
}

PAGINATED_SECTIONS: frozenset[Section] = frozenset(
    {Section.PAYMENTS, Section.MANAGERS, Section.DOMAINS, Section.USERS}
)
