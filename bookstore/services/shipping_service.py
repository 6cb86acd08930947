import logging
import secrets
import string
from typing import Optional

from sqlmodel import Session, select

from bookstore.config import settings
from bookstore.exceptions import TrackingNumberExhausted
from bookstore.models.shipping import Shipping

logger = logging.getLogger(__name__)

TRACKING_ALPHABET = string.ascii_uppercase + string.digits


def calculate_shipping_cost(distance_km: Optional[float]) -> float:
    distance = max(distance_km or 0, 0)
    return round(settings.shipping_base_fee + settings.shipping_fee_per_km * distance, 2)


def _random_tracking_number(length: int) -> str:
    return "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(length))


def generate_tracking_number(
    session: Session,
    length: Optional[int] = None,
    attempts: Optional[int] = None,
    generator=_random_tracking_number,
) -> str:
    length = length or settings.tracking_number_length
    attempts = attempts or settings.tracking_number_attempts

    for attempt in range(1, attempts + 1):
        candidate = generator(length)
        taken = session.exec(
            select(Shipping.id).where(Shipping.tracking_number == candidate)
        ).first()

        if taken is None:
            return candidate

        logger.warning(f"Tracking number collision on attempt {attempt}")

    raise TrackingNumberExhausted(
        f"Could not generate a unique tracking number after {attempts} attempts"
    )
