from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..services import settings as user_settings
from .. import models, schemas

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=schemas.UserSettingsOut)
async def get_settings(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return user_settings.get_settings(db, user.id)


@router.put("", response_model=schemas.UserSettingsOut)
async def update_settings(
    payload: schemas.UserSettingsUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return user_settings.update_settings(db, user.id, payload.model_dump(exclude_unset=True))
