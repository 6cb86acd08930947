from enum import Enum

from bookstore.notifications.events import OrderEvent


class Channel(str, Enum):
    REALTIME_USER = "realtime_user"
    INAPP_ADMIN = "inapp_admin"


NOTIFICATION_RULES = {

    OrderEvent.ORDER_PLACED: {
        Channel.REALTIME_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.PAYMENT_SUCCESS: {
        Channel.REALTIME_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.ORDER_CANCELLED: {
        Channel.REALTIME_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.SHIPPING_UPDATED: {
        Channel.REALTIME_USER: True,
    },

}
