"""Order reads and admin order management."""
from __future__ import annotations

import logging
from typing import List, Optional

from exceptions import NotFoundException, ValidationException
from schemas import ORDER_STATUSES, PAYMENT_STATUSES

logger = logging.getLogger(__name__)


def list_orders(store, status: Optional[str] = None) -> List[dict]:
    filt = {"status": status} if status else {}
    return store.get_documents("order", filt, sort=[["created_at", -1]])


def list_orders_for_user(store, user_id: str) -> List[dict]:
    return store.get_documents("order", {"user_id": user_id}, sort=[["created_at", -1]])


def list_recent_orders(store, limit: int = 5) -> List[dict]:
    return store.get_documents("order", {}, limit=limit, sort=[["created_at", -1]])


def get_order(store, order_id: str) -> dict:
    order = store.get_document_by_id("order", order_id)
    if not order:
        raise NotFoundException("order", order_id)
    return order


def update_order(store, order_id: str, status: Optional[str] = None, payment_status: Optional[str] = None) -> dict:
    changes = {}
    if status is not None:
        if status not in ORDER_STATUSES:
            raise ValidationException(f"Invalid order status: {status}")
        changes["status"] = status
    if payment_status is not None:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationException(f"Invalid payment status: {payment_status}")
        changes["payment_status"] = payment_status
    if not changes:
        raise ValidationException("Nothing to update")
    if not store.update_document("order", order_id, changes):
        raise NotFoundException("order", order_id)
    logger.info("Order %s updated: %s", order_id, changes)
    return changes


def delete_order(store, order_id: str) -> None:
    if not store.delete_document("order", order_id):
        raise NotFoundException("order", order_id)
    logger.info("Order %s deleted", order_id)
