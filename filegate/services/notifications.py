"""Notification dispatch and the per-user notification inbox.

``notify`` runs after the triggering transition has been committed and owns
its own unit of work, so a failed insert never undoes the transition. Failures
are logged and swallowed.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, notify as mailer, pubsub
from ..errors import NotFound
from . import settings as user_settings

# purpose: fire-and-forget notifications for sharing and access-request events
# status: pilot

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    "file_shared",
    "file_downloaded",
    "access_requested",
    "access_approved",
    "access_rejected",
)

_EVENT_QUEUE_KEY = "notification_events"


def _persist(
    db: Session,
    user_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    metadata: dict[str, Any],
) -> models.Notification:
    notification = models.Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        read=False,
        meta=metadata,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def _queue_event(db: Session, event_type: str, notification: models.Notification) -> None:
    db.info.setdefault(_EVENT_QUEUE_KEY, []).append(
        (
            notification.user_id,
            {
                "type": event_type,
                "data": {
                    "id": notification.id,
                    "type": notification.type,
                    "title": notification.title,
                    "message": notification.message,
                    "read": notification.read,
                    "metadata": notification.meta or {},
                    "created_at": notification.created_at,
                },
            },
        )
    )


def _mirror_to_email(db: Session, notification: models.Notification) -> None:
    """Send the notification by email; failures are logged and never raised."""

    notification_id = notification.id
    try:
        settings = user_settings.peek_settings(db, notification.user_id)
        if settings is not None and not settings.email_notifications_enabled:
            return
        user = db.get(models.User, notification.user_id)
        if user is None or not user.email:
            return
        mailer.send_notification_email(user.email, notification.title, notification.message)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Recipient lookup failed for notification %s", notification_id)
    except Exception:
        logger.exception("Email delivery failed for notification %s", notification_id)


def notify(
    db: Session,
    user_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> models.Notification | None:
    """Insert an unread notification for ``user_id``.

    Returns the stored notification, or None when the recipient disabled this
    type or the insert failed.
    """

    try:
        if not user_settings.wants_notification(db, user_id, notification_type):
            logger.debug("User %s muted %s notifications", user_id, notification_type)
            return None
        notification = _persist(db, user_id, notification_type, title, message, metadata or {})
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record %s notification for user %s", notification_type, user_id)
        return None

    _queue_event(db, "notification_created", notification)
    _mirror_to_email(db, notification)
    return notification


async def publish_pending(db: Session) -> int:
    """Publish queued realtime events for this session; returns how many were sent."""

    events = db.info.pop(_EVENT_QUEUE_KEY, [])
    sent = 0
    for user_id, event in events:
        settings = user_settings.peek_settings(db, user_id)
        if settings is not None and not settings.push_notifications_enabled:
            continue
        try:
            await pubsub.publish_user_event(user_id, jsonable_encoder(event))
            sent += 1
        except Exception:
            logger.exception("Realtime publish failed for user %s", user_id)
    return sent


def list_notifications(
    db: Session,
    user_id: UUID,
    *,
    is_read: bool | None = None,
    notification_type: str | None = None,
) -> list[models.Notification]:
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if is_read is not None:
        query = query.filter(models.Notification.read == is_read)
    if notification_type:
        query = query.filter(models.Notification.type == notification_type)
    return query.order_by(
        models.Notification.created_at.desc(),
        models.Notification.id.asc(),
    ).all()


def _get_owned(db: Session, notification_id: UUID, user_id: UUID) -> models.Notification:
    notification = (
        db.query(models.Notification)
        .filter_by(id=notification_id, user_id=user_id)
        .first()
    )
    if notification is None:
        raise NotFound(
            f"notification {notification_id} not found for user {user_id}",
            resource="Notification",
        )
    return notification


def mark_read(db: Session, notification_id: UUID, user_id: UUID) -> models.Notification:
    notification = _get_owned(db, notification_id, user_id)
    if not notification.read:
        notification.read = True
        db.commit()
        db.refresh(notification)
        _queue_event(db, "notification_read", notification)
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    unread = (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.read.is_(False),
        )
        .all()
    )
    for notification in unread:
        notification.read = True
    db.commit()
    for notification in unread:
        _queue_event(db, "notification_read", notification)
    return len(unread)


def delete(db: Session, notification_id: UUID, user_id: UUID) -> None:
    notification = _get_owned(db, notification_id, user_id)
    _queue_event(db, "notification_deleted", notification)
    db.delete(notification)
    db.commit()


def stats(db: Session, user_id: UUID) -> dict[str, Any]:
    notifications = list_notifications(db, user_id)
    by_type = {name: 0 for name in NOTIFICATION_TYPES}
    for notification in notifications:
        by_type[notification.type] = by_type.get(notification.type, 0) + 1
    return {
        "total": len(notifications),
        "unread": sum(1 for n in notifications if not n.read),
        "by_type": by_type,
    }
