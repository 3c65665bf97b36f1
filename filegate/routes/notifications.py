from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..services import notifications as dispatcher
from .. import models, schemas


router = APIRouter(prefix="/api/notifications", tags=["notifications"])

@router.get("/", response_model=list[schemas.NotificationOut])
async def list_notifications(
    is_read: Optional[bool] = Query(None, description="Filter by read status"),
    type: Optional[str] = Query(None, description="Filter by notification type"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return dispatcher.list_notifications(db, user.id, is_read=is_read, notification_type=type)


@router.get("/stats", response_model=schemas.NotificationStats)
async def get_notification_stats(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Get notification statistics"""
    return dispatcher.stats(db, user.id)


@router.post("/mark-all-read")
async def mark_all_read(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Mark all unread notifications as read"""
    updated = dispatcher.mark_all_read(db, user.id)
    await dispatcher.publish_pending(db)
    return {"message": "All notifications marked as read", "updated": updated}


@router.post("/{notification_id}/read", response_model=schemas.NotificationOut)
async def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    notif = dispatcher.mark_read(db, notification_id, user.id)
    await dispatcher.publish_pending(db)
    return notif


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Delete a notification"""
    dispatcher.delete(db, notification_id, user.id)
    await dispatcher.publish_pending(db)
    return {"message": "Notification deleted"}
