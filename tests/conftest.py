"""Shared pytest fixtures: in-memory stand-ins for MongoDB, cart storage and payments."""
from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from cart import CartLineItem, CartStore, RestaurantRef
from cart_storage import MemoryStorage


class FakeStore:
    """Collection-keyed documents with the same helpers as ``database``."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()

    def _record(self, op: str, collection: str) -> None:
        self.calls.append((op, collection))
        if (op, collection) in self.fail_on:
            raise RuntimeError(f"{op} on {collection} failed")

    def writes(self, collection: str) -> int:
        return sum(1 for op, name in self.calls if name == collection and op == "create")

    @staticmethod
    def is_valid_id(value) -> bool:
        return isinstance(value, str) and ObjectId.is_valid(value)

    _OPERATORS = {
        "$gte": lambda value, bound: value >= bound,
        "$gt": lambda value, bound: value > bound,
        "$lte": lambda value, bound: value <= bound,
        "$lt": lambda value, bound: value < bound,
    }

    @classmethod
    def _matches(cls, doc: dict, filt: dict) -> bool:
        for key, expected in filt.items():
            if key.startswith("$"):
                continue
            value = doc.get(key)
            if isinstance(expected, dict):
                for op, bound in expected.items():
                    check = cls._OPERATORS.get(op)
                    if check is None:
                        continue
                    if value is None or not check(value, bound):
                        return False
                continue
            if value != expected:
                return False
        return True

    def create_document(self, collection, data) -> str:
        self._record("create", collection)
        payload = data.model_dump() if hasattr(data, "model_dump") else dict(data)
        doc_id = str(ObjectId())
        now = datetime.now(timezone.utc)
        payload.setdefault("created_at", now)
        payload.setdefault("updated_at", now)
        payload["_id"] = doc_id
        self.collections.setdefault(collection, {})[doc_id] = payload
        return doc_id

    def get_documents(self, collection, filter_dict=None, limit=None, sort=None):
        self._record("find", collection)
        docs = [d for d in self.collections.get(collection, {}).values() if self._matches(d, filter_dict or {})]
        if sort:
            key, direction = sort[0]
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        if limit:
            docs = docs[: int(limit)]
        return copy.deepcopy(docs)

    def get_document_by_id(self, collection, _id):
        self._record("get", collection)
        doc = self.collections.get(collection, {}).get(_id)
        return copy.deepcopy(doc) if doc else None

    def update_document(self, collection, _id, update_data) -> bool:
        self._record("update", collection)
        doc = self.collections.get(collection, {}).get(_id)
        if doc is None:
            return False
        doc.update(dict(update_data))
        doc["updated_at"] = datetime.now(timezone.utc)
        return True

    def delete_document(self, collection, _id) -> bool:
        self._record("delete", collection)
        return self.collections.get(collection, {}).pop(_id, None) is not None

    def count_documents(self, collection, filter_dict=None) -> int:
        self._record("count", collection)
        return sum(1 for d in self.collections.get(collection, {}).values() if self._matches(d, filter_dict or {}))

    def insert(self, collection: str, **fields) -> str:
        """Seed a document without recording a call."""
        doc_id = str(ObjectId())
        now = datetime.now(timezone.utc)
        self.collections.setdefault(collection, {})[doc_id] = {
            "_id": doc_id,
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        return doc_id


class BrokenStorage:
    def get(self, key):
        raise OSError("storage offline")

    def set(self, key, value):
        raise OSError("storage offline")

    def remove(self, key):
        raise OSError("storage offline")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def pizza_place() -> RestaurantRef:
    return RestaurantRef(id="r-pizza", name="Pizza Corner", delivery_fee=5.0)


@pytest.fixture
def ghana_kitchen() -> RestaurantRef:
    return RestaurantRef(id="r-ghana", name="Ghana Kitchen", delivery_fee=10.0)


def make_item(item_id: str, price: float, restaurant: RestaurantRef, name: str | None = None) -> CartLineItem:
    return CartLineItem(id=item_id, name=name or item_id, unit_price=price, restaurant=restaurant)


@pytest.fixture
def filled_cart(pizza_place) -> CartStore:
    cart = CartStore()
    cart.add_item(make_item("supreme", 25, pizza_place, "Pizza Supreme"))
    cart.add_item(make_item("supreme", 25, pizza_place, "Pizza Supreme"))
    cart.add_item(make_item("garlic-bread", 10, pizza_place, "Garlic Bread"))
    return cart
