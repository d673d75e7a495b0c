"""Payment gateway seam and admin payment records."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from exceptions import NotFoundException, ValidationException
from schemas import PAYMENT_METHODS, PAYMENT_RECORD_STATUSES, Payment

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    success: bool
    reference: Optional[str] = None
    provider: str = ""
    message: str = ""


ResultCallback = Callable[[PaymentResult], None]


def default_provider(method: str) -> str:
    if method in ("mobile_money", "card"):
        return "Paystack"
    return "Cash"


class PaymentGateway(ABC):
    """Charges an amount and reports the outcome through ``on_result``."""

    @abstractmethod
    def charge(
        self,
        *,
        amount: float,
        method: str,
        email: str,
        reference: Optional[str],
        on_result: ResultCallback,
    ) -> None:
        """Start a charge; ``on_result`` fires once the provider answers."""


class ReferenceGateway(PaymentGateway):
    """Gateway for payments completed in the customer's browser.

    The hosted checkout (Paystack, Flutterwave) hands the client a transaction
    reference once the charge succeeds; the client sends it with the order.
    Cash is paid on delivery and succeeds immediately.
    """

    def charge(self, *, amount, method, email, reference, on_result):
        provider = default_provider(method)
        if method == "cash":
            on_result(PaymentResult(success=True, provider=provider, message="Pay on delivery"))
            return
        if reference:
            on_result(PaymentResult(success=True, reference=reference, provider=provider))
            return
        on_result(
            PaymentResult(
                success=False,
                provider=provider,
                message="Payment was not completed",
            )
        )


def confirm_payment(
    gateway: PaymentGateway,
    *,
    amount: float,
    method: str,
    email: str,
    reference: Optional[str] = None,
) -> PaymentResult:
    """Run a charge and wait for its callback. No callback means failure."""
    results: List[PaymentResult] = []
    gateway.charge(
        amount=amount,
        method=method,
        email=email,
        reference=reference,
        on_result=results.append,
    )
    if not results:
        logger.warning("Payment gateway did not report a result for %s (%s)", email, method)
        return PaymentResult(success=False, provider=default_provider(method), message="No payment confirmation")
    return results[0]


# ---- admin payment records ----

def list_payments(store, status: Optional[str] = None, method: Optional[str] = None) -> List[dict]:
    filt = {}
    if status:
        filt["status"] = status
    if method:
        filt["method"] = method
    return store.get_documents("payment", filt, sort=[["created_at", -1]])


def create_payment(store, data: dict) -> dict:
    missing = [f for f in ("order_id", "customer", "amount", "method", "reference") if not data.get(f)]
    if missing:
        raise ValidationException(f"Missing required fields: {', '.join(missing)}")
    if data["method"] not in PAYMENT_METHODS:
        raise ValidationException(f"Invalid payment method: {data['method']}")
    if data.get("status") and data["status"] not in PAYMENT_RECORD_STATUSES:
        raise ValidationException(f"Invalid payment status: {data['status']}")
    payment = Payment(
        order_id=data["order_id"],
        customer=data["customer"],
        amount=data["amount"],
        method=data["method"],
        provider=data.get("provider") or default_provider(data["method"]),
        status=data.get("status") or "pending",
        reference=data["reference"],
        date=data.get("date") or date.today().isoformat(),
    )
    payment_id = store.create_document("payment", payment)
    logger.info("Recorded %s payment %s for order %s", payment.method, payment_id, payment.order_id)
    return {"_id": payment_id, **payment.model_dump()}


def update_payment_status(store, payment_id: str, status: str) -> None:
    if status not in PAYMENT_RECORD_STATUSES:
        raise ValidationException(f"Invalid payment status: {status}")
    if not store.update_document("payment", payment_id, {"status": status}):
        raise NotFoundException("payment", payment_id)
