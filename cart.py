"""Cart state for the order being assembled.

A cart only ever holds items from one restaurant. Totals are computed from the
current lines on every read. Persistence is a subscriber on mutations, and a
failing storage never breaks the in-memory cart.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[["CartStore"], None]
# confirm(current_restaurant_name, new_restaurant_name) -> replace?
ConfirmReplace = Callable[[str, str], bool]


@dataclass
class RestaurantRef:
    id: str
    name: str
    delivery_fee: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "delivery_fee": float(self.delivery_fee)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RestaurantRef:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            delivery_fee=float(data.get("delivery_fee") or 0),
        )


@dataclass
class CartLineItem:
    """Single line in the cart."""

    id: str
    name: str
    unit_price: float
    restaurant: RestaurantRef
    quantity: int = 1
    notes: Optional[str] = None
    image: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unit_price": float(self.unit_price),
            "quantity": int(self.quantity),
            "restaurant": self.restaurant.to_dict(),
            "notes": self.notes,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartLineItem:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            unit_price=float(data.get("unit_price", 0)),
            quantity=int(data.get("quantity", 1)),
            restaurant=RestaurantRef.from_dict(data["restaurant"]),
            notes=data.get("notes"),
            image=data.get("image"),
        )


@dataclass
class CartStore:
    """Line items of one cart plus change listeners."""

    lines: list[CartLineItem] = field(default_factory=list)
    _listeners: list[Listener] = field(default_factory=list, repr=False)

    # ---- reads ----

    @property
    def items(self) -> list[CartLineItem]:
        return list(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def restaurant(self) -> Optional[RestaurantRef]:
        return self.lines[0].restaurant if self.lines else None

    @property
    def subtotal(self) -> float:
        return sum(line.unit_price * line.quantity for line in self.lines)

    @property
    def delivery_fee(self) -> float:
        restaurant = self.restaurant
        return restaurant.delivery_fee if restaurant else 0.0

    @property
    def total(self) -> float:
        return self.subtotal + self.delivery_fee

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def find(self, item_id: str) -> Optional[CartLineItem]:
        for line in self.lines:
            if line.id == item_id:
                return line
        return None

    def snapshot(self) -> dict[str, Any]:
        restaurant = self.restaurant
        return {
            "items": [line.to_dict() for line in self.lines],
            "restaurant": restaurant.to_dict() if restaurant else None,
            "subtotal": self.subtotal,
            "delivery_fee": self.delivery_fee,
            "total": self.total,
            "item_count": self.item_count,
        }

    # ---- mutations ----

    def add_item(self, item: CartLineItem, confirm: Optional[ConfirmReplace] = None) -> bool:
        """Add one unit of ``item``.

        When the cart holds another restaurant's items, ``confirm`` decides
        whether to drop them. Returns False (cart untouched) when it declines
        or is missing.
        """
        current = self.restaurant
        if current is not None and current.id != item.restaurant.id:
            if confirm is None or not confirm(current.name, item.restaurant.name):
                logger.info(
                    "Refused to add %s from %s: cart belongs to %s",
                    item.id,
                    item.restaurant.id,
                    current.id,
                )
                return False
            self.lines = []

        existing = self.find(item.id)
        if existing is not None:
            existing.quantity += 1
        else:
            self.lines.append(
                CartLineItem(
                    id=item.id,
                    name=item.name,
                    unit_price=item.unit_price,
                    restaurant=item.restaurant,
                    quantity=1,
                    notes=item.notes,
                    image=item.image,
                )
            )
        self._notify()
        return True

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(item_id)
            return
        line = self.find(item_id)
        if line is None:
            return
        line.quantity = int(quantity)
        self._notify()

    def remove_item(self, item_id: str) -> None:
        self.lines = [line for line in self.lines if line.id != item_id]
        self._notify()

    def clear(self) -> None:
        self.lines = []
        self._notify()

    # ---- listeners / persistence ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Cart listener %r failed", listener)

    def dumps(self) -> str:
        return json.dumps([line.to_dict() for line in self.lines])

    @classmethod
    def loads(cls, raw: Optional[str]) -> CartStore:
        if not raw:
            return cls()
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("cart payload is not a list")
        return cls(lines=[CartLineItem.from_dict(entry) for entry in data])

    @classmethod
    def hydrate(cls, storage, key: str) -> CartStore:
        """Load from storage; empty cart on absence, read failure or bad payload."""
        try:
            return cls.loads(storage.get(key))
        except Exception as exc:
            logger.warning("Error loading cart %s from storage: %s", key, exc)
            return cls()

    def persist_to(self, storage, key: str) -> Callable[[], None]:
        """Mirror every mutation into ``storage`` under ``key``."""

        def _save(store: CartStore) -> None:
            try:
                if store.is_empty:
                    storage.remove(key)
                else:
                    storage.set(key, store.dumps())
            except Exception as exc:
                logger.warning("Error saving cart %s to storage: %s", key, exc)

        return self.subscribe(_save)


def open_cart(storage, cart_id: str) -> CartStore:
    """Hydrated cart for ``cart_id`` that writes itself back on change."""
    key = f"cart:{cart_id}"
    store = CartStore.hydrate(storage, key)
    store.persist_to(storage, key)
    return store
