from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models

# purpose: per-user preference records consumed by the file registry, workflow and dispatcher
# status: pilot


def peek_settings(db: Session, user_id: UUID) -> models.UserSettings | None:
    """Return the stored settings row without creating one."""

    return db.get(models.UserSettings, user_id)


def get_settings(db: Session, user_id: UUID) -> models.UserSettings:
    """Return the user's settings, creating the default row on first access."""

    settings = db.get(models.UserSettings, user_id)
    if settings is None:
        settings = models.UserSettings(
            id=user_id,
            notification_types=dict(models.DEFAULT_NOTIFICATION_TYPES),
        )
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


def update_settings(db: Session, user_id: UUID, changes: dict[str, Any]) -> models.UserSettings:
    settings = get_settings(db, user_id)
    for field in (
        "private_files_by_default",
        "require_approval_for_access",
        "email_notifications_enabled",
        "push_notifications_enabled",
    ):
        if field in changes and changes[field] is not None:
            setattr(settings, field, changes[field])
    if changes.get("notification_types") is not None:
        merged = dict(settings.notification_types or {})
        merged.update(changes["notification_types"])
        settings.notification_types = merged
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


def private_by_default(db: Session, user_id: UUID) -> bool:
    settings = peek_settings(db, user_id)
    return True if settings is None else bool(settings.private_files_by_default)


def requires_approval(db: Session, user_id: UUID) -> bool:
    settings = peek_settings(db, user_id)
    return True if settings is None else bool(settings.require_approval_for_access)


def wants_notification(db: Session, user_id: UUID, notification_type: str) -> bool:
    settings = peek_settings(db, user_id)
    if settings is None:
        return True
    toggles = settings.notification_types or {}
    return bool(toggles.get(notification_type, True))
