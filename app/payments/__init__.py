"""Checkout orders, the payment gateway adapter and subscription activation."""

from .activator import ActivationResult, SubscriptionActivator
from .gateway import PaymentGateway, RazorpayGateway, compute_signature, verify_signature
from .ledger import OrderLedger
from .models import OrderRecord, OrderStatus

__all__ = [
    "ActivationResult",
    "OrderLedger",
    "OrderRecord",
    "OrderStatus",
    "PaymentGateway",
    "RazorpayGateway",
    "SubscriptionActivator",
    "compute_signature",
    "verify_signature",
]
