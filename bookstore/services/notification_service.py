from typing import Optional

from sqlmodel import Session

from bookstore.models.notifications import Notification, RecipientRole


def create_notification(
    *,
    session: Session,
    recipient_role: RecipientRole,
    user_id: Optional[int],
    trigger_source: str,
    related_id: Optional[int],
    title: str,
    content: str,
) -> Notification:
    notification = Notification(
        recipient_role=recipient_role,
        user_id=user_id,
        trigger_source=trigger_source,
        related_id=related_id,
        title=title,
        content=content,
    )
    session.add(notification)
    session.flush()
    return notification
