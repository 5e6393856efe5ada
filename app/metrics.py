"""Prometheus metric definitions and helpers for the commerce API."""

from __future__ import annotations

from prometheus_client import Counter

ORDERS_CREATED_TOTAL = Counter(
    "orders_created_total",
    "Total number of checkout orders created partitioned by currency.",
    ["currency"],
)

PAYMENT_VERIFICATIONS_TOTAL = Counter(
    "payment_verifications_total",
    "Total payment verification attempts partitioned by outcome.",
    ["outcome"],
)

SUBSCRIPTIONS_ACTIVATED_TOTAL = Counter(
    "subscriptions_activated_total",
    "Total number of subscriptions created by verified payments.",
)

SUBSCRIPTION_TRANSITIONS_TOTAL = Counter(
    "subscription_transitions_total",
    "Total subscription lifecycle transitions partitioned by action.",
    ["action"],
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests processed by the FastAPI application, partitioned by path.",
    ["path"],
)


def record_order_created(currency: str) -> None:
    ORDERS_CREATED_TOTAL.labels(currency=currency).inc()


def record_payment_verification(outcome: str) -> None:
    """Count a verification attempt (``activated``, ``already_active``, ``signature_invalid`` ...)."""

    PAYMENT_VERIFICATIONS_TOTAL.labels(outcome=outcome).inc()


def record_subscription_activated() -> None:
    SUBSCRIPTIONS_ACTIVATED_TOTAL.inc()


def record_subscription_transition(action: str) -> None:
    SUBSCRIPTION_TRANSITIONS_TOTAL.labels(action=action).inc()


def record_http_request(path: str) -> None:
    """Record a handled HTTP request for the provided path."""

    HTTP_REQUESTS_TOTAL.labels(path=path).inc()
