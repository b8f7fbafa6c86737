"""
Database Schemas for the Storefront

Each Pydantic model corresponds to a MongoDB collection. The collection name is the lowercase of the class name.

Example: class Coupon -> collection "coupon"
"""
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, EmailStr, Field, Json, TypeAdapter
from datetime import datetime

# Core domain models

class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)

class User(BaseModel):
    name: str
    email: EmailStr
    hashed_password: str
    is_admin: bool = False
    cart_items: List[CartItem] = Field(default_factory=list)

class Product(BaseModel):
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    image: Optional[str] = None
    category: str
    is_featured: bool = False

class Coupon(BaseModel):
    code: str
    discount_percentage: int = Field(..., ge=0, le=100)
    expiration_date: datetime
    is_active: bool = True
    user_id: str

class OrderItem(BaseModel):
    product: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)

class Order(BaseModel):
    user: str
    products: List[OrderItem]
    total_amount: float = Field(..., ge=0)
    stripe_session_id: str

# Checkout payloads

class CheckoutProduct(BaseModel):
    """A product line as submitted by the client at checkout."""
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    name: str
    price: float = Field(..., ge=0)
    image: Optional[str] = None
    quantity: int = Field(1, ge=1)

class SessionProduct(BaseModel):
    """Price snapshot of one line, carried in the checkout session metadata."""
    id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)

session_products = TypeAdapter(List[SessionProduct])

class SessionMetadata(BaseModel):
    """
    Metadata attached to a checkout session.

    Payment processors only store flat string maps, so `products` travels as
    a JSON string and is parsed and validated on the way back.
    """
    user_id: str
    coupon_code: str = ""
    products: Json[List[SessionProduct]]

    @classmethod
    def build(cls, user_id: str, coupon_code: Optional[str], products: List[SessionProduct]) -> dict:
        return {
            "user_id": user_id,
            "coupon_code": coupon_code or "",
            "products": session_products.dump_json(products).decode("utf-8"),
        }

class CheckoutSession(BaseModel):
    """Processor-side checkout session state, as seen by the backend."""
    id: str
    payment_status: str
    amount_total: Optional[int] = None
    metadata: dict = Field(default_factory=dict)
