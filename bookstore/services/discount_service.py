import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from bookstore.constants.order_status import DiscountType
from bookstore.models.discount import Discount

logger = logging.getLogger(__name__)


@dataclass
class DiscountRedemption:
    discount_id: int
    code: str
    amount: float


def find_available_discount(
    session: Session, code: Optional[str], now: Optional[datetime] = None
) -> Optional[Discount]:
    if not code:
        return None

    discount = session.exec(select(Discount).where(Discount.code == code)).first()

    if not discount or not discount.is_available(now):
        return None

    return discount


def calculate_discount_amount(discount: Discount, subtotal: float) -> float:
    """percentage -> capped at max_discount_value, fixed -> never more than the subtotal"""
    if discount.type == DiscountType.percentage:
        amount = subtotal * discount.value / 100
        if discount.max_discount_value is not None:
            amount = min(amount, discount.max_discount_value)
    else:
        amount = min(discount.value, subtotal)

    return round(max(amount, 0), 2)


def quote(session: Session, code: Optional[str], subtotal: float) -> Optional[DiscountRedemption]:
    """Evaluate a code against a subtotal without using it up."""
    discount = find_available_discount(session, code)

    if not discount:
        return None

    if subtotal < discount.min_required_value:
        # below the minimum the code simply does not apply
        return None

    return DiscountRedemption(
        discount_id=discount.id,
        code=discount.code,
        amount=calculate_discount_amount(discount, subtotal),
    )


def consume(session: Session, discount_id: int, now: Optional[datetime] = None) -> bool:
    """
    Take one redemption. Returns False when another checkout got the last one
    first (or the code was switched off meanwhile).
    """
    now = now or datetime.utcnow()
    result = session.execute(
        update(Discount)
        .where(
            Discount.id == discount_id,
            Discount.quantity > 0,
            Discount.is_active == True,  # noqa: E712
            Discount.start_date <= now,
            Discount.end_date >= now,
        )
        .values(quantity=Discount.quantity - 1)
    )
    return result.rowcount == 1


def resolve(
    session: Session, code: Optional[str], subtotal: float, *, commit: bool = False
) -> Optional[DiscountRedemption]:
    """
    Apply a discount code to an order subtotal, consuming one unit.

    Returns None when the code is unknown, inactive, out of date, used up,
    below its minimum order value, or lost the race for the last unit.
    The consumption joins the caller's transaction unless ``commit`` is set.
    """
    redemption = quote(session, code, subtotal)

    if not redemption:
        return None

    if not consume(session, redemption.discount_id):
        logger.warning(f"Discount {redemption.code} ran out during checkout")
        if commit:
            session.rollback()
        return None

    if commit:
        session.commit()

    logger.info(f"Discount {redemption.code} applied: -{redemption.amount}")
    return redemption
