import logging

from bookstore.models.notifications import RecipientRole
from bookstore.notifications import realtime
from bookstore.notifications.events import OrderEvent
from bookstore.notifications.rules import NOTIFICATION_RULES, Channel
from bookstore.services.notification_service import create_notification

logger = logging.getLogger(__name__)


def dispatch_order_event(
    *,
    event: OrderEvent,
    order,
    session,
    extra: dict | None = None,
    notify_user: bool = True,
    notify_admin: bool = True,
):
    """
    Central notification dispatcher, fire-and-forget.

    Handles:
    - admin in-app notifications (a Notification row)
    - real-time push to the order's user (background delivery)

    Never raises: a failed notification must not fail the order flow.
    """
    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    payload = {
        "event": event.value,
        "order_id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total_payment": order.total_payment,
        **extra,
    }

    # -------------------------
    # ADMIN IN-APP NOTIFICATION
    # -------------------------
    if notify_admin and rules.get(Channel.INAPP_ADMIN):
        try:
            create_notification(
                session=session,
                recipient_role=RecipientRole.admin,
                user_id=None,
                trigger_source=event.value,
                related_id=order.id,
                title=extra.get("admin_title", f"Order #{order.id}: {event.value}"),
                content=extra.get("admin_content", f"Total {payload['total_payment']}"),
            )
            session.commit()
        except Exception:
            session.rollback()
            logger.exception(f"Admin notification for order {payload['order_id']} failed")

    # -------------------------
    # USER REAL-TIME PUSH
    # -------------------------
    if notify_user and rules.get(Channel.REALTIME_USER):
        try:
            realtime.publish(event.value, payload)
        except Exception:
            logger.exception(f"Real-time push for order {payload['order_id']} failed")
