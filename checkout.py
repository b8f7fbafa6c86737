"""
Checkout: session creation and payment confirmation

Amounts sent to the payment processor are integer cents. Amounts stored on
orders and returned to the client are major units (dollars).
"""
import logging
import math
import os
from typing import List, Optional

from pydantic import ValidationError

from coupons import create_reward_coupon
from errors import InvalidInput
from payments import StripeGateway
from repositories import CouponRepository, OrderRepository
from schemas import CheckoutProduct, Order, OrderItem, SessionMetadata, SessionProduct

logger = logging.getLogger(__name__)

CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
CURRENCY = "usd"
# Orders at or above this amount (in cents) earn a reward coupon
REWARD_THRESHOLD = 20000


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_cents(price: float) -> int:
    return round_half_up(price * 100)


def apply_discount(total: int, discount_percentage: float) -> int:
    """Take a percentage off an aggregate amount in cents, rounding once."""
    return total - round_half_up(total * discount_percentage / 100)


def create_checkout_session(gateway: StripeGateway, coupons: CouponRepository, user: dict,
                            products: List[CheckoutProduct], coupon_code: Optional[str] = None) -> dict:
    if not isinstance(products, list) or len(products) == 0:
        raise InvalidInput("Invalid or empty products array")

    total_amount = 0
    line_items = []
    for product in products:
        amount = to_cents(product.price)
        total_amount += amount * product.quantity
        product_data = {"name": product.name}
        if product.image:
            product_data["images"] = [product.image]
        line_items.append({
            "price_data": {
                "currency": CURRENCY,
                "product_data": product_data,
                "unit_amount": amount,
            },
            "quantity": product.quantity,
        })

    user_id = user["id"]
    coupon = None
    if coupon_code:
        coupon = coupons.find_active(coupon_code, user_id)
        if coupon:
            total_amount = apply_discount(total_amount, coupon["discount_percentage"])

    discounts = []
    if coupon:
        discounts.append({"coupon": gateway.create_coupon(coupon["discount_percentage"])})

    metadata = SessionMetadata.build(
        user_id,
        coupon_code,
        [SessionProduct(id=p.id, quantity=p.quantity, price=p.price) for p in products],
    )
    session_id = gateway.create_session(
        line_items=line_items,
        success_url=f"{CLIENT_URL}/purchase-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{CLIENT_URL}/purchase-cancel",
        discounts=discounts,
        metadata=metadata,
    )

    # Granted on session creation, even if the session is never paid.
    if total_amount >= REWARD_THRESHOLD:
        create_reward_coupon(coupons, user_id)

    return {"id": session_id, "total_amount": total_amount / 100}


def checkout_success(gateway: StripeGateway, coupons: CouponRepository, orders: OrderRepository,
                     session_id: str) -> Optional[dict]:
    """Record the order of a paid session.

    Returns None without touching anything when the session is not paid.
    Calling it twice for the same paid session creates two orders.
    """
    session = gateway.retrieve_session(session_id)
    if session.payment_status != "paid":
        logger.info("Checkout session %s not paid (%s)", session_id, session.payment_status)
        return None

    try:
        metadata = SessionMetadata.model_validate(session.metadata)
    except ValidationError as e:
        raise InvalidInput("Invalid checkout session metadata", str(e)) from e

    if metadata.coupon_code:
        if coupons.deactivate(metadata.coupon_code, metadata.user_id):
            logger.info("Deactivated coupon %s of user %s", metadata.coupon_code, metadata.user_id)

    order = Order(
        user=metadata.user_id,
        products=[OrderItem(product=p.id, quantity=p.quantity, price=p.price) for p in metadata.products],
        total_amount=(session.amount_total or 0) / 100,
        stripe_session_id=session_id,
    )
    order_id = orders.create(order)
    logger.info("Created order %s for session %s", order_id, session_id)

    return {
        "success": True,
        "message": "Payment successful, order created, and coupon deactivated if used.",
        "order_id": order_id,
    }
