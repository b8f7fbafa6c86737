"""
Stripe integration

Thin wrapper over the stripe library so the checkout services can be run
against a fake gateway in tests. Stripe errors surface as UpstreamFailure.
"""
import logging
import os
from typing import List, Optional

import stripe

from errors import UpstreamFailure
from schemas import CheckoutSession

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")


class StripeGateway:
    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        if not self.api_key:
            raise UpstreamFailure("Payment processor not configured", "STRIPE_SECRET_KEY is not set")
        stripe.api_key = self.api_key

    def create_session(self, line_items: List[dict], success_url: str, cancel_url: str,
                       discounts: List[dict], metadata: dict) -> str:
        params = {
            "payment_method_types": ["card"],
            "line_items": line_items,
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if discounts:
            params["discounts"] = discounts
        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            raise UpstreamFailure("Error creating checkout session", str(e)) from e
        return session.id

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            raise UpstreamFailure("Error retrieving checkout session", str(e)) from e
        return CheckoutSession(
            id=session.id,
            payment_status=session.payment_status,
            amount_total=session.amount_total,
            metadata=dict(session.metadata or {}),
        )

    def create_coupon(self, percent_off: int) -> str:
        """Create a one-time percent-off coupon and return its id."""
        try:
            coupon = stripe.Coupon.create(percent_off=percent_off, duration="once")
        except stripe.StripeError as e:
            raise UpstreamFailure("Error creating payment coupon", str(e)) from e
        logger.debug("Created stripe coupon %s (%s%% off)", coupon.id, percent_off)
        return coupon.id
