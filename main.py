import logging
import os
import threading
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr
from passlib.context import CryptContext

import database
import analytics
import orders as order_service
import payments as payment_service
import reviews as review_service
from cart import CartLineItem, RestaurantRef, open_cart
from cart_storage import build_storage
from checkout import CheckoutDetails, finalize_order
from exceptions import CartConflictException, SouceyException
from payments import ReferenceGateway
from schemas import User, Restaurant, Menuitem

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("soucey")

app = FastAPI(title="Soucey Food Ordering API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_cart_storage = None
_cart_storage_lock = threading.Lock()


@app.exception_handler(SouceyException)
async def soucey_exception_handler(request: Request, exc: SouceyException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ============ Collaborators (overridden in tests) ==========
def get_store():
    return database


def get_cart_storage():
    global _cart_storage
    if _cart_storage is None:
        # sync dependencies run in the threadpool; build exactly one storage
        with _cart_storage_lock:
            if _cart_storage is None:
                _cart_storage = build_storage()
    return _cart_storage


def get_gateway():
    return ReferenceGateway()


def current_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id or None


# ============ Auth models (simple tokenless demo auth for this environment) ==========
class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    user_id: str
    name: str
    email: EmailStr
    is_admin: bool


# ===================== Public Endpoints =====================
@app.get("/")
def root():
    return {"message": "Soucey Food Ordering API running"}


@app.get("/test")
def test_database():
    db = database.db
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


# ===================== Auth =====================
@app.post("/auth/signup", response_model=LoginResponse)
def signup(payload: SignupRequest, store=Depends(get_store)):
    existing = store.get_documents("user", {"email": payload.email}, limit=1)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    password_hash = pwd_context.hash(payload.password)
    user = User(name=payload.name, email=payload.email, password_hash=password_hash)
    user_id = store.create_document("user", user)
    return LoginResponse(user_id=user_id, name=user.name, email=user.email, is_admin=user.is_admin)


@app.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, store=Depends(get_store)):
    users = store.get_documents("user", {"email": payload.email}, limit=1)
    if not users:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user = users[0]
    if not pwd_context.verify(payload.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return LoginResponse(user_id=user["_id"], name=user["name"], email=user["email"], is_admin=user.get("is_admin", False))


# ===================== Restaurants =====================
class RestaurantCreate(BaseModel):
    name: str
    description: Optional[str] = None
    address: str
    phone: str
    email: EmailStr
    logo_url: Optional[str] = None
    cover_url: Optional[str] = None
    cuisine_type: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    delivery_fee: float = 0.0
    delivery_time: str = "30-45"
    min_order_amount: float = 0.0
    is_active: bool = True
    featured: bool = False


@app.get("/restaurants")
def list_restaurants(featured: Optional[bool] = None, store=Depends(get_store)):
    filt = {"is_active": True}
    if featured is not None:
        filt["featured"] = featured
    return store.get_documents("restaurant", filt, sort=[["name", 1]])


@app.get("/restaurants/{restaurant_id}")
def get_restaurant(restaurant_id: str, store=Depends(get_store)):
    restaurant = store.get_document_by_id("restaurant", restaurant_id)
    if not restaurant:
        raise HTTPException(404, "Restaurant not found")
    return restaurant


@app.get("/restaurants/{restaurant_id}/menu")
def restaurant_menu(restaurant_id: str, store=Depends(get_store)):
    return store.get_documents("menuitem", {"restaurant_id": restaurant_id, "is_available": True}, sort=[["name", 1]])


@app.post("/admin/restaurants", status_code=201)
def create_restaurant(payload: RestaurantCreate, store=Depends(get_store)):
    restaurant = Restaurant(**payload.model_dump())
    restaurant_id = store.create_document("restaurant", restaurant)
    return {"_id": restaurant_id}


@app.put("/admin/restaurants/{restaurant_id}")
def update_restaurant(restaurant_id: str, payload: RestaurantCreate, store=Depends(get_store)):
    ok = store.update_document("restaurant", restaurant_id, payload.model_dump())
    if not ok:
        raise HTTPException(404, "Restaurant not found")
    return {"updated": True}


@app.delete("/admin/restaurants/{restaurant_id}")
def delete_restaurant(restaurant_id: str, store=Depends(get_store)):
    ok = store.delete_document("restaurant", restaurant_id)
    if not ok:
        raise HTTPException(404, "Restaurant not found")
    return {"deleted": True}


# ===================== Menu Items =====================
class MenuItemCreate(BaseModel):
    name: str
    description: str = ""
    price: float
    discounted_price: Optional[float] = None
    category: str
    restaurant_id: str
    image_url: Optional[str] = None
    preparation_time: Optional[int] = None
    calories: Optional[int] = None
    is_vegetarian: bool = False
    is_spicy: bool = False
    is_gluten_free: bool = False
    is_available: bool = True
    is_featured: bool = False


@app.get("/menu-items")
def list_menu_items(
    q: Optional[str] = None,
    restaurant_id: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    store=Depends(get_store),
):
    filter_q = {"is_available": True}
    if restaurant_id:
        filter_q["restaurant_id"] = restaurant_id
    if category:
        filter_q["category"] = category
    if q:
        filter_q["$or"] = [
            {"name": {"$regex": q, "$options": "i"}},
            {"description": {"$regex": q, "$options": "i"}},
        ]
    if min_price is not None or max_price is not None:
        price_filter = {}
        if min_price is not None:
            price_filter["$gte"] = min_price
        if max_price is not None:
            price_filter["$lte"] = max_price
        filter_q["price"] = price_filter
    return store.get_documents("menuitem", filter_q, sort=[["name", 1]])


@app.get("/menu-items/{item_id}")
def get_menu_item(item_id: str, store=Depends(get_store)):
    item = store.get_document_by_id("menuitem", item_id)
    if not item:
        raise HTTPException(404, "Menu item not found")
    return item


@app.post("/admin/menu-items", status_code=201)
def create_menu_item(payload: MenuItemCreate, store=Depends(get_store)):
    if not store.get_document_by_id("restaurant", payload.restaurant_id):
        raise HTTPException(400, "Unknown restaurant")
    item = Menuitem(**payload.model_dump())
    item_id = store.create_document("menuitem", item)
    return {"_id": item_id}


@app.put("/admin/menu-items/{item_id}")
def update_menu_item(item_id: str, payload: MenuItemCreate, store=Depends(get_store)):
    ok = store.update_document("menuitem", item_id, payload.model_dump())
    if not ok:
        raise HTTPException(404, "Menu item not found")
    return {"updated": True}


@app.delete("/admin/menu-items/{item_id}")
def delete_menu_item(item_id: str, store=Depends(get_store)):
    ok = store.delete_document("menuitem", item_id)
    if not ok:
        raise HTTPException(404, "Menu item not found")
    return {"deleted": True}


# ===================== Cart =====================
class CartAddRequest(BaseModel):
    item_id: str
    notes: Optional[str] = None
    confirm_replace: bool = False


class CartQuantityRequest(BaseModel):
    quantity: int


@app.get("/cart/{cart_id}")
def get_cart(cart_id: str, storage=Depends(get_cart_storage)):
    return open_cart(storage, cart_id).snapshot()


@app.post("/cart/{cart_id}/items")
def add_to_cart(cart_id: str, payload: CartAddRequest, store=Depends(get_store), storage=Depends(get_cart_storage)):
    menu_item = store.get_document_by_id("menuitem", payload.item_id)
    if not menu_item or not menu_item.get("is_available", True):
        raise HTTPException(404, "Menu item not found")
    restaurant = store.get_document_by_id("restaurant", menu_item["restaurant_id"])
    if not restaurant:
        raise HTTPException(404, "Restaurant not found")

    line = CartLineItem(
        id=menu_item["_id"],
        name=menu_item["name"],
        unit_price=float(menu_item["price"]),
        restaurant=RestaurantRef(
            id=restaurant["_id"],
            name=restaurant["name"],
            delivery_fee=float(restaurant.get("delivery_fee") or 0),
        ),
        notes=payload.notes,
        image=menu_item.get("image_url"),
    )
    cart = open_cart(storage, cart_id)
    if not cart.add_item(line, confirm=lambda current, new: payload.confirm_replace):
        raise CartConflictException(
            f"Your cart has items from {cart.restaurant.name}. "
            f"Confirm to clear it and start a new order from {restaurant['name']}."
        )
    return cart.snapshot()


@app.put("/cart/{cart_id}/items/{item_id}")
def update_cart_item(cart_id: str, item_id: str, payload: CartQuantityRequest, storage=Depends(get_cart_storage)):
    cart = open_cart(storage, cart_id)
    cart.update_quantity(item_id, payload.quantity)
    return cart.snapshot()


@app.delete("/cart/{cart_id}/items/{item_id}")
def remove_cart_item(cart_id: str, item_id: str, storage=Depends(get_cart_storage)):
    cart = open_cart(storage, cart_id)
    cart.remove_item(item_id)
    return cart.snapshot()


@app.delete("/cart/{cart_id}")
def clear_cart(cart_id: str, storage=Depends(get_cart_storage)):
    cart = open_cart(storage, cart_id)
    cart.clear()
    return cart.snapshot()


# ===================== Checkout =====================
class CheckoutRequest(CheckoutDetails):
    cart_id: str


@app.post("/checkout")
def checkout(
    payload: CheckoutRequest,
    store=Depends(get_store),
    storage=Depends(get_cart_storage),
    gateway=Depends(get_gateway),
    user_id: Optional[str] = Depends(current_user_id),
):
    cart = open_cart(storage, payload.cart_id)
    details = CheckoutDetails(**payload.model_dump(exclude={"cart_id"}))
    confirmation = finalize_order(details, cart, store, gateway, user_id=user_id)
    return {
        "success": True,
        "order_id": confirmation.order_id,
        "order_number": confirmation.order_number,
        "total": confirmation.total,
    }


# ===================== Orders =====================
class UpdateOrderRequest(BaseModel):
    status: Optional[str] = None
    payment_status: Optional[str] = None


@app.get("/orders")
def list_orders(status: Optional[str] = None, store=Depends(get_store)):
    return order_service.list_orders(store, status)


@app.get("/orders/my-orders")
def my_orders(store=Depends(get_store), user_id: Optional[str] = Depends(current_user_id)):
    if not user_id:
        raise HTTPException(401, "Not authenticated")
    return order_service.list_orders_for_user(store, user_id)


@app.get("/orders/{order_id}")
def get_order(order_id: str, store=Depends(get_store)):
    return order_service.get_order(store, order_id)


@app.get("/admin/orders/recent")
def recent_orders(limit: int = 5, store=Depends(get_store)):
    return order_service.list_recent_orders(store, limit)


@app.put("/admin/orders/{order_id}")
def update_order(order_id: str, payload: UpdateOrderRequest, store=Depends(get_store)):
    changes = order_service.update_order(store, order_id, payload.status, payload.payment_status)
    return {"updated": True, **changes}


@app.delete("/admin/orders/{order_id}")
def delete_order(order_id: str, store=Depends(get_store)):
    order_service.delete_order(store, order_id)
    return {"deleted": True}


# ===================== Reviews =====================
class ReviewCreate(BaseModel):
    restaurant_id: str
    rating: float
    comment: str
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None


class ReviewUpdate(BaseModel):
    review_id: str
    rating: float
    comment: str


@app.get("/reviews")
def list_reviews(restaurant_id: Optional[str] = None, store=Depends(get_store)):
    if not restaurant_id:
        raise HTTPException(400, "Restaurant ID is required")
    return {"reviews": review_service.list_reviews(store, restaurant_id)}


@app.post("/reviews")
def create_review(payload: ReviewCreate, store=Depends(get_store), user_id: Optional[str] = Depends(current_user_id)):
    review = review_service.create_review(
        store,
        user_id,
        payload.restaurant_id,
        payload.rating,
        payload.comment,
        payload.user_name,
        payload.user_avatar,
    )
    return {"message": "Review submitted successfully", "review": review}


@app.patch("/reviews")
def update_review(payload: ReviewUpdate, store=Depends(get_store), user_id: Optional[str] = Depends(current_user_id)):
    review = review_service.update_review(store, user_id, payload.review_id, payload.rating, payload.comment)
    return {"message": "Review updated successfully", "review": review}


@app.delete("/reviews")
def delete_review(review_id: Optional[str] = None, store=Depends(get_store), user_id: Optional[str] = Depends(current_user_id)):
    review = review_service.delete_review(store, user_id, review_id)
    return {"message": "Review deleted successfully", "review": review}


# ===================== Payments =====================
class PaymentCreate(BaseModel):
    order_id: str
    customer: str
    amount: float
    method: str
    reference: str
    provider: Optional[str] = None
    status: Optional[str] = None
    date: Optional[str] = None


class PaymentStatusRequest(BaseModel):
    status: str


@app.get("/admin/payments")
def list_payments(status: Optional[str] = None, method: Optional[str] = None, store=Depends(get_store)):
    return payment_service.list_payments(store, status, method)


@app.post("/admin/payments", status_code=201)
def create_payment(payload: PaymentCreate, store=Depends(get_store)):
    return payment_service.create_payment(store, payload.model_dump())


@app.put("/admin/payments/{payment_id}")
def update_payment(payment_id: str, payload: PaymentStatusRequest, store=Depends(get_store)):
    payment_service.update_payment_status(store, payment_id, payload.status)
    return {"updated": True}


# ===================== Admin =====================
@app.get("/admin/users")
def list_users(store=Depends(get_store)):
    users = store.get_documents("user", {}, sort=[["created_at", -1]])
    for user in users:
        user.pop("password_hash", None)
    return users


@app.get("/admin/dashboard/stats")
def dashboard_stats(store=Depends(get_store)):
    return analytics.dashboard_stats(store)


# ===================== Schema Export for Docs =====================
@app.get("/schema")
def get_schema():
    return {
        "collections": [
            "user",
            "restaurant",
            "menuitem",
            "order",
            "review",
            "payment"
        ],
        "notes": "Each class in schemas.py maps to a MongoDB collection (lowercase)."
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
