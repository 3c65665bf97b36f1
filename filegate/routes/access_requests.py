from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..services import access_requests as workflow
from ..services import notifications
from .. import models, schemas

router = APIRouter(prefix="/api/access-requests", tags=["access_requests"])


@router.post("", response_model=schemas.AccessRequestOut, status_code=status.HTTP_201_CREATED)
async def create_access_request(
    data: schemas.AccessRequestCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    access_request = workflow.create_request(db, data.file_id, user.id, data.message)
    await notifications.publish_pending(db)
    return access_request


@router.get("", response_model=List[schemas.AccessRequestOut])
async def list_access_requests(
    type: Literal["sent", "received"] = Query("received", description="Requests you sent or received"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return workflow.list_requests(db, user.id, type, status=status_filter)


@router.post("/{request_id}/respond", response_model=schemas.AccessRequestOut)
async def respond_to_access_request(
    request_id: UUID,
    data: schemas.AccessRequestRespond,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    access_request = workflow.respond(db, request_id, user.id, data.decision, data.response_message)
    await notifications.publish_pending(db)
    return access_request


@router.post("/{request_id}/cancel", response_model=schemas.AccessRequestOut)
async def cancel_access_request(
    request_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return workflow.cancel(db, request_id, user.id)
