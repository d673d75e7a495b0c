"""Turning a cart plus delivery details into a persisted order."""
from __future__ import annotations

import logging
import random
import re
import string
import time
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel

from cart import CartStore
from exceptions import PaymentException, PersistenceException, ValidationException
from payments import PaymentGateway, confirm_payment
from schemas import PAYMENT_METHODS, Customer, Order, OrderItem

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS = (
    ("customer_name", "Full name"),
    ("customer_email", "Email"),
    ("customer_phone", "Phone number"),
    ("address", "Address"),
    ("campus", "Campus/Area"),
)


class CheckoutDetails(BaseModel):
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    address: str = ""
    campus: str = ""
    landmark: Optional[str] = None
    notes: Optional[str] = None
    payment_method: str = "cash"
    payment_reference: Optional[str] = None


@dataclass
class OrderConfirmation:
    order_id: str
    order_number: str
    total: float


def validate_checkout(details: CheckoutDetails, cart: CartStore) -> None:
    missing = [
        label
        for attr, label in REQUIRED_FIELDS
        if not isinstance(getattr(details, attr), str) or not getattr(details, attr).strip()
    ]
    if missing:
        raise ValidationException(f"Missing required fields: {', '.join(missing)}")
    if not EMAIL_RE.match(details.customer_email.strip()):
        raise ValidationException("Please enter a valid email address")
    if details.payment_method not in PAYMENT_METHODS:
        raise ValidationException(f"Unsupported payment method: {details.payment_method}")
    if cart.is_empty:
        raise ValidationException("Your cart is empty")


def generate_order_number() -> str:
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=3))
    return f"ORD{millis}{suffix}"


def build_order_payload(
    details: CheckoutDetails,
    cart: CartStore,
    user_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
) -> Order:
    address = f"{details.address.strip()}, {details.campus.strip()}"
    if details.landmark and details.landmark.strip():
        address += f", {details.landmark.strip()}"

    items: List[OrderItem] = [
        OrderItem(
            item_id=line.id,
            name=line.name,
            quantity=line.quantity,
            price=line.unit_price,
            total=round(line.line_total, 2),
            notes=line.notes or "",
            restaurant=line.restaurant.name,
            image=line.image or "",
        )
        for line in cart.items
    ]
    restaurant = cart.restaurant
    return Order(
        order_number=generate_order_number(),
        user_id=user_id,
        restaurant_id=restaurant.id if restaurant else None,
        customer=Customer(
            name=details.customer_name.strip(),
            email=details.customer_email.strip(),
            phone=details.customer_phone.strip(),
            address=details.address.strip(),
        ),
        items=items,
        status="pending",
        payment_status="pending" if details.payment_method == "cash" else "paid",
        payment_method=details.payment_method,
        payment_reference=payment_reference,
        subtotal=round(cart.subtotal, 2),
        delivery_fee=round(cart.delivery_fee, 2),
        total=round(cart.total, 2),
        address=address,
        notes=details.notes or "",
    )


def finalize_order(
    details: CheckoutDetails,
    cart: CartStore,
    store,
    gateway: PaymentGateway,
    user_id: Optional[str] = None,
) -> OrderConfirmation:
    """Validate, take payment, write the order once, then empty the cart.

    A failed write leaves the cart as it was. There is no retry and no
    idempotency key: resubmitting after a lost response creates a second order.
    """
    validate_checkout(details, cart)

    payment = confirm_payment(
        gateway,
        amount=round(cart.total, 2),
        method=details.payment_method,
        email=details.customer_email.strip(),
        reference=details.payment_reference,
    )
    if not payment.success:
        raise PaymentException(payment.message or "Payment failed")

    order = build_order_payload(details, cart, user_id=user_id, payment_reference=payment.reference)
    try:
        order_id = store.create_document("order", order)
    except Exception as exc:
        logger.exception("Order write failed for %s", order.customer.email)
        raise PersistenceException("Failed to process checkout") from exc

    logger.info("Order %s (%s) created, total %.2f", order.order_number, order_id, order.total)
    cart.clear()
    return OrderConfirmation(order_id=order_id, order_number=order.order_number, total=order.total)
