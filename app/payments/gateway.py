"""Adapter for the Razorpay-compatible payment gateway."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Callable, Dict, Mapping, Protocol

import httpx

from app.config import Settings
from app.errors import GatewayError

from .models import GatewayPayment, RemoteOrder

logger = logging.getLogger(__name__)


class GatewayTimeout(GatewayError):
    """The gateway did not answer within the client timeout."""

    category = "gateway_timeout"


class PaymentGateway(Protocol):
    """Operations the checkout flow needs from a payment provider."""

    async def create_remote_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> RemoteOrder:
        ...

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        ...


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Return the hex HMAC-SHA256 of ``"{order_id}|{payment_id}"``."""

    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class RazorpayGateway:
    """Talk to the gateway REST API using HTTP basic auth."""

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self._http_client_factory = http_client_factory or (lambda: httpx.AsyncClient(timeout=timeout))

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.gateway_key_id,
            key_secret=settings.gateway_key_secret,
            base_url=settings.gateway_base_url,
            timeout=settings.gateway_timeout_seconds,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with self._http_client_factory() as client:
                response = await client.request(method, url, auth=self._auth, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            logger.warning("Gateway request timed out", extra={"path": path})
            raise GatewayTimeout("Payment gateway timed out, please retry") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Gateway rejected request",
                extra={"path": path, "status_code": exc.response.status_code},
            )
            raise GatewayError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Gateway request failed", extra={"path": path, "error": str(exc)})
            raise GatewayError() from exc

    async def create_remote_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> RemoteOrder:
        data = await self._request(
            "POST",
            "/orders",
            json={"amount": amount, "currency": currency, "receipt": receipt, "notes": dict(notes)},
        )
        order_id = data.get("id")
        if not order_id:
            raise GatewayError("Payment gateway returned no order id")
        return RemoteOrder(
            order_id=str(order_id),
            amount=int(data.get("amount", amount)),
            currency=str(data.get("currency", currency)),
            receipt=str(data.get("receipt") or receipt),
            raw=data,
        )

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        data = await self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment(
            payment_id=str(data.get("id", payment_id)),
            status=str(data.get("status", "")).lower(),
            order_id=data.get("order_id"),
            amount=data.get("amount"),
            raw=data,
        )
