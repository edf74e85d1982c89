"""
Payment gateway strategies.

``DemoGateway`` auto-approves everything and is meant for development and
tests. ``RazorpayGateway`` talks to the Razorpay REST API (amounts in paise)
and verifies checkout signatures: HMAC-SHA256 of ``"<order_id>|<payment_id>"``
with the key secret.

The gateway is chosen once per process from ``settings.PAYMENT_GATEWAY``
and handed to ``SettlementEngine`` through its constructor.
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Optional

import requests
import structlog
from django.conf import settings  # type: ignore
from django.core.exceptions import ImproperlyConfigured  # type: ignore

from shared.domain.errors import GatewayError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount: Decimal
    currency: str
    gateway_data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentVerification:
    verified: bool
    gateway_payment_id: str
    status: str


@dataclass(frozen=True)
class RefundOutcome:
    refund_id: str
    amount: Decimal
    status: str


class PaymentGateway(ABC):
    """Interface every payment provider implements."""

    name: str = ""

    @abstractmethod
    def create_order(self, amount: Decimal, currency: str, metadata: Optional[Dict[str, Any]] = None) -> GatewayOrder:
        ...

    @abstractmethod
    def verify_payment(self, payment_id: str, order_id: str, signature: Optional[str] = None) -> PaymentVerification:
        ...

    @abstractmethod
    def process_refund(self, payment_id: str, amount: Decimal) -> RefundOutcome:
        ...


def _short_id() -> str:
    return uuid.uuid4().hex[:12]


class DemoGateway(PaymentGateway):
    """Simulated provider: every order verifies and every refund succeeds."""

    name = "DEMO"

    def create_order(self, amount, currency, metadata=None):
        order_id = f"demo_order_{_short_id()}"
        gateway_data = {
            "gateway": self.name,
            "mode": "test",
            "message": "Demo payment - auto-approves all transactions",
            **(metadata or {}),
        }
        return GatewayOrder(order_id=order_id, amount=amount, currency=currency, gateway_data=gateway_data)

    def verify_payment(self, payment_id, order_id, signature=None):
        return PaymentVerification(
            verified=True,
            gateway_payment_id=payment_id or f"demo_pay_{_short_id()}",
            status="CAPTURED",
        )

    def process_refund(self, payment_id, amount):
        return RefundOutcome(refund_id=f"demo_refund_{_short_id()}", amount=amount, status="processed")


def to_paise(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


class RazorpayGateway(PaymentGateway):
    """Razorpay REST integration for Indian payments (UPI, cards, net banking, wallets)."""

    name = "RAZORPAY"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1/",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not key_id or not key_secret:
            raise ImproperlyConfigured("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required")
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.base_url}{path}",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            body = exc.response.text[:500] if exc.response is not None else ""
            logger.error("razorpay.http_error", path=path, status=getattr(exc.response, "status_code", None), body=body)
            raise GatewayError(
                "Payment provider rejected the request",
                details={"path": path, "status": getattr(exc.response, "status_code", None)},
                retryable=False,
            ) from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("razorpay.unreachable", path=path, error=str(exc))
            raise GatewayError("Payment provider is unreachable", details={"path": path}) from exc

    def create_order(self, amount, currency, metadata=None):
        metadata = metadata or {}
        amount_in_paise = to_paise(amount)
        order = self._post(
            "orders",
            {
                "amount": amount_in_paise,
                "currency": currency or "INR",
                "receipt": f"rcpt_{_short_id()}",
                "notes": {
                    "booking_id": str(metadata.get("booking_id", "")),
                    "booking_number": metadata.get("booking_number", ""),
                    "hotel_name": metadata.get("hotel_name", ""),
                },
            },
        )
        gateway_data = {
            "gateway": self.name,
            "razorpay_key_id": self.key_id,
            "razorpay_order_id": order["id"],
            "amount": amount_in_paise,
            "currency": order.get("currency", currency),
            "name": metadata.get("hotel_name", ""),
            "description": f"Booking {metadata.get('booking_number', '')}".strip(),
            "prefill": metadata.get("prefill", {}),
        }
        return GatewayOrder(
            order_id=order["id"],
            amount=amount,
            currency=order.get("currency", currency),
            gateway_data=gateway_data,
        )

    def expected_signature(self, order_id: str, payment_id: str) -> str:
        return hmac.new(
            self.key_secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def verify_payment(self, payment_id, order_id, signature=None):
        if not signature or not payment_id:
            return PaymentVerification(verified=False, gateway_payment_id=payment_id or "", status="FAILED")
        verified = hmac.compare_digest(self.expected_signature(order_id, payment_id), signature)
        return PaymentVerification(
            verified=verified,
            gateway_payment_id=payment_id,
            status="CAPTURED" if verified else "FAILED",
        )

    def process_refund(self, payment_id, amount):
        path = f"payments/{payment_id}/refund"
        refund = self._post(path, {"amount": to_paise(amount)})
        refund_id = refund.get("id") if isinstance(refund, dict) else None
        if not refund_id:
            logger.error("razorpay.malformed_refund", path=path, body=str(refund)[:500])
            raise GatewayError("Payment provider returned an invalid refund response", details={"path": path})
        return RefundOutcome(refund_id=refund_id, amount=amount, status=refund.get("status", "pending"))


def build_payment_gateway(name: str) -> PaymentGateway:
    name = (name or "demo").lower()
    if name == "demo":
        return DemoGateway()
    if name == "razorpay":
        return RazorpayGateway(
            settings.RAZORPAY_KEY_ID,
            settings.RAZORPAY_KEY_SECRET,
            base_url=getattr(settings, "RAZORPAY_API_BASE_URL", "https://api.razorpay.com/v1/"),
            timeout=getattr(settings, "RAZORPAY_TIMEOUT", 30),
        )
    raise ImproperlyConfigured(f"Unknown PAYMENT_GATEWAY: {name!r}")


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    """Process-wide gateway chosen from settings on first use."""
    gateway = build_payment_gateway(getattr(settings, "PAYMENT_GATEWAY", "demo"))
    logger.info("payments.gateway_selected", gateway=gateway.name)
    return gateway
