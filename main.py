import logging
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import PyMongoError

import analytics
import cart
import checkout
import coupons as coupon_service
from auth import (admin_required, create_token, get_current_user, get_users, hash_password, public_user,
                  verify_password)
from database import db, get_db
from errors import InvalidInput, NotFound, ServerError, StoreError, UpstreamFailure
from payments import StripeGateway
from repositories import CouponRepository, OrderRepository, ProductRepository, UserRepository
from schemas import CheckoutProduct, Product, User

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# App setup
app = FastAPI(title="Storefront API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies
def get_products() -> ProductRepository:
    return ProductRepository(get_db())


def get_coupons() -> CouponRepository:
    return CouponRepository(get_db())


def get_orders() -> OrderRepository:
    return OrderRepository(get_db())


def get_gateway() -> StripeGateway:
    return StripeGateway()


# Error handling
def _error_response(request: Request, exc: StoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    body = {"message": exc.message}
    if exc.error is not None:
        body["error"] = exc.error
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return _error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, InvalidInput("Invalid request body", exc.errors()))


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    return _error_response(request, UpstreamFailure("Database error", str(exc)))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    return _error_response(request, ServerError("Server error", str(exc)))


# Schemas (request/response)
class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class CartItemIn(BaseModel):
    product_id: str


class CartRemoveIn(BaseModel):
    product_id: Optional[str] = None


class QuantityIn(BaseModel):
    quantity: int = Field(..., ge=0)


class CouponCodeIn(BaseModel):
    code: str


class CheckoutRequest(BaseModel):
    products: List[CheckoutProduct]
    coupon_code: Optional[str] = None


class CheckoutSuccessRequest(BaseModel):
    session_id: str


# Health and helpers
@app.get("/")
def root():
    return {"message": "Storefront API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "stripe": "✅ Set" if os.getenv("STRIPE_SECRET_KEY") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()[:10]
    except PyMongoError as e:
        response["database"] = f"⚠️ Connected but error: {str(e)[:80]}"
    return response


# Auth
@app.post("/api/auth/register")
def register(payload: RegisterRequest, users: UserRepository = Depends(get_users)):
    if users.find_by_email(payload.email):
        raise InvalidInput("Email already registered")
    user_id = users.create(User(
        name=payload.name,
        email=payload.email,
        hashed_password=hash_password(payload.password),
    ).model_dump())
    user = users.get(user_id)
    return {"token": create_token(user), "user": public_user(user)}


@app.post("/api/auth/login")
def login(payload: LoginRequest, users: UserRepository = Depends(get_users)):
    user = users.find_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("hashed_password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"token": create_token(user), "user": public_user(user)}


@app.get("/api/auth/profile")
async def profile(user: dict = Depends(get_current_user)):
    return public_user(user)


# Products
@app.get("/api/products")
async def list_products(_: dict = Depends(admin_required), products: ProductRepository = Depends(get_products)):
    return {"products": products.list_all()}


@app.get("/api/products/featured")
def featured_products(products: ProductRepository = Depends(get_products)):
    featured = products.featured()
    if not featured:
        raise NotFound("No featured products found")
    return featured


@app.get("/api/products/recommendations")
def recommended_products(products: ProductRepository = Depends(get_products)):
    return products.sample(4)


@app.get("/api/products/category/{category}")
def products_by_category(category: str, products: ProductRepository = Depends(get_products)):
    return {"products": products.by_category(category)}


@app.post("/api/products", status_code=201)
async def create_product(payload: Product, _: dict = Depends(admin_required),
                         products: ProductRepository = Depends(get_products)):
    return products.create(payload)


@app.patch("/api/products/{product_id}")
async def toggle_featured_product(product_id: str, _: dict = Depends(admin_required),
                                  products: ProductRepository = Depends(get_products)):
    updated = products.toggle_featured(product_id)
    if not updated:
        raise NotFound("Product not found", product_id)
    return updated


@app.delete("/api/products/{product_id}")
async def delete_product(product_id: str, _: dict = Depends(admin_required),
                         products: ProductRepository = Depends(get_products)):
    if not products.delete(product_id):
        raise NotFound("Product not found", product_id)
    return {"message": "Product deleted successfully"}


# Cart
@app.get("/api/cart")
async def get_cart(user: dict = Depends(get_current_user), products: ProductRepository = Depends(get_products)):
    return cart.get_cart_products(user, products)


@app.post("/api/cart")
async def add_to_cart(item: CartItemIn, user: dict = Depends(get_current_user),
                      users: UserRepository = Depends(get_users)):
    return cart.add_to_cart(users, user, item.product_id)


@app.delete("/api/cart")
async def remove_from_cart(payload: Optional[CartRemoveIn] = None, user: dict = Depends(get_current_user),
                           users: UserRepository = Depends(get_users)):
    product_id = payload.product_id if payload else None
    return cart.remove_all_from_cart(users, user, product_id)


@app.patch("/api/cart/{product_id}")
async def update_quantity(product_id: str, payload: QuantityIn, user: dict = Depends(get_current_user),
                          users: UserRepository = Depends(get_users)):
    return cart.update_quantity(users, user, product_id, payload.quantity)


# Coupons
@app.get("/api/coupons")
async def get_coupon(user: dict = Depends(get_current_user), coupons: CouponRepository = Depends(get_coupons)):
    return coupon_service.get_coupon(coupons, user["id"])


@app.post("/api/coupons/validate")
async def validate_coupon(payload: CouponCodeIn, user: dict = Depends(get_current_user),
                          coupons: CouponRepository = Depends(get_coupons)):
    return coupon_service.validate_coupon(coupons, user["id"], payload.code)


# Payments
@app.post("/api/payments/create-checkout-session")
async def create_checkout_session(payload: CheckoutRequest, user: dict = Depends(get_current_user),
                                  gateway: StripeGateway = Depends(get_gateway),
                                  coupons: CouponRepository = Depends(get_coupons)):
    return checkout.create_checkout_session(gateway, coupons, user, payload.products, payload.coupon_code)


@app.post("/api/payments/checkout-success")
async def checkout_success(payload: CheckoutSuccessRequest, _: dict = Depends(get_current_user),
                           gateway: StripeGateway = Depends(get_gateway),
                           coupons: CouponRepository = Depends(get_coupons),
                           orders: OrderRepository = Depends(get_orders)):
    result = checkout.checkout_success(gateway, coupons, orders, payload.session_id)
    if result is None:
        return {"success": False, "message": "Payment not completed", "order_id": None}
    return result


# Analytics
@app.get("/api/analytics")
async def get_analytics(start_date: Optional[str] = None, end_date: Optional[str] = None,
                        _: dict = Depends(admin_required),
                        users: UserRepository = Depends(get_users),
                        products: ProductRepository = Depends(get_products),
                        orders: OrderRepository = Depends(get_orders)):
    end = analytics.to_datetime(end_date) if end_date else datetime.now(timezone.utc)
    start = analytics.to_datetime(start_date) if start_date else end - timedelta(days=7)
    return {
        "analytics_data": analytics.get_analytics_data(users, products, orders),
        "daily_sales_data": analytics.get_daily_sales_data(orders, start, end),
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
