from enum import Enum


class OrderEvent(str, Enum):
    ORDER_PLACED = "order_placed"
    PAYMENT_SUCCESS = "payment_success"
    ORDER_CANCELLED = "order_cancelled"
    SHIPPING_UPDATED = "shipping_updated"
