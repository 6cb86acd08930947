from enum import Enum


class OrderStatus(str, Enum):
    draft = "draft"          # created by checkout, not visible until shipping/payment exist
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


class ShippingStatus(str, Enum):
    pending = "pending"
    shipped = "shipped"
    delivered = "delivered"
    returned = "returned"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class PaymentMethod(str, Enum):
    cod = "cod"
    card = "card"
    bank_transfer = "bank_transfer"
    wallet = "wallet"


ALLOWED_TRANSITIONS = {
    OrderStatus.draft: [OrderStatus.pending],
    OrderStatus.pending: [OrderStatus.paid, OrderStatus.cancelled],
    OrderStatus.paid: [],
    OrderStatus.cancelled: [],
}

SHIPPING_TRANSITIONS = {
    ShippingStatus.pending: [ShippingStatus.shipped],
    ShippingStatus.shipped: [ShippingStatus.delivered, ShippingStatus.returned],
    ShippingStatus.delivered: [],
    ShippingStatus.returned: [],
}


def can_transition(current, target, transitions=ALLOWED_TRANSITIONS) -> bool:
    # rows hand back plain strings, normalise to the enum keys
    status_type = type(next(iter(transitions)))
    return status_type(target) in transitions.get(status_type(current), [])
