"""
Database Schemas for the Soucey food ordering app

Each Pydantic model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., Restaurant -> "restaurant").
"""
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, EmailStr

OrderStatus = Literal["pending", "processing", "delivered", "cancelled"]
PaymentStatus = Literal["paid", "pending", "refunded", "failed"]
PaymentMethod = Literal["mobile_money", "card", "cash"]
PaymentRecordStatus = Literal["successful", "pending", "refunded", "failed"]

ORDER_STATUSES = ("pending", "processing", "delivered", "cancelled")
PAYMENT_STATUSES = ("paid", "pending", "refunded", "failed")
PAYMENT_METHODS = ("mobile_money", "card", "cash")
PAYMENT_RECORD_STATUSES = ("successful", "pending", "refunded", "failed")


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    is_admin: bool = Field(False, description="Admin privileges")
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True


class Restaurant(BaseModel):
    name: str = Field(..., description="Restaurant name")
    description: Optional[str] = None
    address: str
    phone: str
    email: EmailStr
    logo_url: Optional[str] = None
    cover_url: Optional[str] = None
    cuisine_type: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    delivery_fee: float = Field(0.0, ge=0, description="Flat delivery fee")
    delivery_time: str = "30-45"
    min_order_amount: float = Field(0.0, ge=0)
    rating: float = Field(0.0, ge=0, le=5, description="Mean of review ratings")
    review_count: int = Field(0, ge=0)
    total_orders: int = 0
    is_active: bool = True
    featured: bool = False


class Menuitem(BaseModel):
    name: str = Field(..., description="Dish name")
    description: str = ""
    price: float = Field(..., ge=0)
    discounted_price: Optional[float] = Field(None, ge=0)
    category: str
    restaurant_id: str = Field(..., description="Reference to restaurant _id")
    image_url: Optional[str] = None
    preparation_time: Optional[int] = None
    calories: Optional[int] = None
    is_vegetarian: bool = False
    is_spicy: bool = False
    is_gluten_free: bool = False
    is_available: bool = True
    is_featured: bool = False


class OrderItem(BaseModel):
    item_id: str
    name: str
    quantity: int = Field(..., ge=1)
    price: float
    total: float
    notes: str = ""
    restaurant: str = ""
    image: str = ""


class Customer(BaseModel):
    name: str
    email: str
    phone: str
    address: str


class Order(BaseModel):
    order_number: str = Field(..., description="Human-friendly unique order number")
    user_id: Optional[str] = Field(None, description="Caller placing the order (None for guests)")
    restaurant_id: Optional[str] = None
    customer: Customer
    items: List[OrderItem]
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    subtotal: float
    delivery_fee: float
    total: float
    address: str
    notes: str = ""


class Review(BaseModel):
    user_id: str
    restaurant_id: str
    rating: float = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)
    user_name: str = "Anonymous"
    user_avatar: str = ""


class Payment(BaseModel):
    order_id: str
    customer: str
    amount: float
    method: PaymentMethod
    provider: str
    status: PaymentRecordStatus = "pending"
    reference: str
    date: str
"""
Notes:
- Define new collections by creating new Pydantic classes in this file.
- The system will use these schemas for validation and documentation.
"""
