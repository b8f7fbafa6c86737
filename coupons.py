"""Coupon lookup, validation and reward minting."""
import logging
import random
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from errors import NotFound
from repositories import CouponRepository
from schemas import Coupon

logger = logging.getLogger(__name__)

REWARD_CODE_PREFIX = "GIFT"
REWARD_CODE_LENGTH = 6
REWARD_DISCOUNT_PERCENTAGE = 10
REWARD_VALIDITY = timedelta(days=30)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reward_code() -> str:
    # Codes are not checked against existing ones.
    return REWARD_CODE_PREFIX + "".join(random.choices(_CODE_ALPHABET, k=REWARD_CODE_LENGTH))


def create_reward_coupon(coupons: CouponRepository, user_id: str, now: Optional[datetime] = None) -> Coupon:
    now = now or datetime.now(timezone.utc)
    coupon = Coupon(
        code=generate_reward_code(),
        discount_percentage=REWARD_DISCOUNT_PERCENTAGE,
        expiration_date=now + REWARD_VALIDITY,
        user_id=user_id,
    )
    coupons.create(coupon)
    logger.info("Minted reward coupon %s for user %s", coupon.code, user_id)
    return coupon


def get_coupon(coupons: CouponRepository, user_id: str) -> Optional[dict]:
    return coupons.find_active_for_user(user_id)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_coupon(coupons: CouponRepository, user_id: str, code: str, now: Optional[datetime] = None) -> dict:
    """Check that `code` is an active, unexpired coupon of the user.

    An expired coupon is deactivated on the spot.
    """
    now = now or datetime.now(timezone.utc)
    coupon = coupons.find_active(code, user_id)
    if not coupon:
        raise NotFound("Coupon not found", code)
    if _as_utc(coupon["expiration_date"]) < now:
        coupons.deactivate(code, user_id)
        logger.info("Coupon %s of user %s expired and was deactivated", code, user_id)
        raise NotFound("Coupon expired", code)
    return {
        "message": "Coupon is valid",
        "code": coupon["code"],
        "discount_percentage": coupon["discount_percentage"],
    }
