import io
import json
import os
import re
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, UploadFile, File, Form, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import ValidationError
from ..services import files as file_registry
from ..services import key_vault, notifications, policy
from .. import models, schemas

router = APIRouter(prefix="/api/files", tags=["files"])


def _parse_metadata(raw: Optional[str]) -> Optional[dict]:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("encryption_metadata must be a JSON object") from exc
    if not isinstance(value, dict):
        raise ValidationError("encryption_metadata must be a JSON object")
    return value


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 ``filename*``."""

    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", filename) or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.post("/upload", response_model=schemas.FileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    upload: UploadFile = File(...),
    shared: Optional[bool] = Form(None),
    is_encrypted: bool = Form(False),
    original_type: Optional[str] = Form(None),
    encryption_metadata: Optional[str] = Form(None),
    file_key: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    spec = file_registry.UploadSpec(
        name=os.path.basename(upload.filename or ""),
        mime_type=upload.content_type or "application/octet-stream",
        shared=shared,
        is_encrypted=is_encrypted,
        original_type=original_type or None,
        encryption_metadata=_parse_metadata(encryption_metadata),
    )
    data = await upload.read()
    return file_registry.create_file(db, user.id, spec, data, key_material=file_key)


@router.get("", response_model=list[schemas.FileOut])
async def list_my_files(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return file_registry.list_owned(db, user.id)


@router.get("/shared", response_model=list[schemas.FileOut])
async def list_shared_files(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return file_registry.list_shared_with(db, user.id)


@router.get("/{file_id}", response_model=schemas.FileOut)
async def get_file(
    file_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return policy.get_readable_file(db, file_id, user.id)


@router.get("/{file_id}/access", response_model=schemas.FileAccessOut)
async def get_file_access(
    file_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    db_file = db.get(models.File, file_id)
    if db_file is None:
        return schemas.FileAccessOut(file_id=file_id, can_read=False, can_retrieve_key=False)
    return schemas.FileAccessOut(
        file_id=file_id,
        can_read=policy.can_read(db, db_file, user.id),
        can_retrieve_key=policy.can_retrieve_key(db, db_file, user.id),
    )


@router.get("/{file_id}/download")
async def download_file(
    file_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    db_file, data = file_registry.read_file_bytes(db, file_id, user.id)
    await notifications.publish_pending(db)
    return StreamingResponse(
        io.BytesIO(data),
        media_type=db_file.mime_type,
        headers={"Content-Disposition": _content_disposition(db_file.name)},
    )


@router.get("/{file_id}/key", response_model=schemas.FileKeyOut)
async def get_file_key(
    file_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    material = key_vault.retrieve_key(db, file_id, user.id)
    return schemas.FileKeyOut(file_id=file_id, file_key=material)


@router.patch("/{file_id}/shared", response_model=schemas.FileOut)
async def set_file_shared(
    file_id: UUID,
    payload: schemas.FileShareUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    db_file = file_registry.toggle_shared(db, file_id, user.id, payload.shared)
    await notifications.publish_pending(db)
    return db_file


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    file_registry.delete_file(db, file_id, user.id)
