from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, storage
from ..errors import Conflict, StorageError, ValidationError
from . import access_requests, key_vault, notifications, policy
from . import settings as user_settings

# purpose: file registry covering upload, sharing flag, deletion and guarded reads
# status: pilot
# depends_on: filegate.storage, filegate.services.key_vault

logger = logging.getLogger(__name__)


@dataclass
class UploadSpec:
    """Metadata accompanying an upload."""

    name: str
    mime_type: str = "application/octet-stream"
    shared: bool | None = None
    is_encrypted: bool = False
    original_type: str | None = None
    encryption_metadata: dict[str, Any] | None = field(default=None)


def _validate_upload(spec: UploadSpec, key_material: str | None) -> None:
    if not spec.name or not spec.name.strip():
        raise ValidationError("file name is required")
    has_key = bool(key_material and key_material.strip())
    if spec.is_encrypted and not has_key:
        raise ValidationError("encrypted uploads must include the file key")
    if not spec.is_encrypted and has_key:
        raise ValidationError("a file key was supplied for an unencrypted upload")
    if not spec.is_encrypted and (spec.original_type or spec.encryption_metadata):
        raise ValidationError("original_type and encryption_metadata apply only to encrypted files")


def create_file(
    db: Session,
    owner_id: UUID,
    spec: UploadSpec,
    data: bytes,
    key_material: str | None = None,
) -> models.File:
    """Store the bytes and register the file (and its key when encrypted)."""

    _validate_upload(spec, key_material)
    shared = spec.shared
    if shared is None:
        shared = not user_settings.private_by_default(db, owner_id)

    file_id = uuid4()
    file_key = key_vault.build_key(file_id, key_material) if spec.is_encrypted else None
    storage_path, size = storage.save_binary_payload(
        data,
        spec.name,
        content_type=spec.mime_type,
        namespace=str(owner_id),
    )

    db_file = models.File(
        id=file_id,
        owner_id=owner_id,
        name=spec.name.strip(),
        storage_path=storage_path,
        size=size,
        mime_type=spec.mime_type or "application/octet-stream",
        shared=shared,
        is_encrypted=spec.is_encrypted,
        original_type=spec.original_type if spec.is_encrypted else None,
        encryption_metadata=spec.encryption_metadata if spec.is_encrypted else None,
    )
    db.add(db_file)
    if file_key is not None:
        db_file.key = file_key
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        _discard_payload(storage_path)
        raise Conflict(f"file {file_id} could not be registered") from exc
    db.refresh(db_file)
    return db_file


def _discard_payload(storage_path: str) -> None:
    try:
        storage.delete_binary_payload(storage_path)
    except StorageError:
        logger.exception("Could not remove stored payload %s", storage_path)


def toggle_shared(db: Session, file_id: UUID, owner_id: UUID, shared: bool) -> models.File:
    """Set the shared flag; pending requesters are told when a file opens up."""

    db_file = policy.get_owned_file(db, file_id, owner_id)
    became_shared = shared and not db_file.shared
    db_file.shared = shared
    db.commit()
    db.refresh(db_file)

    if became_shared:
        for requester_id in access_requests.pending_requesters(db, file_id):
            notifications.notify(
                db,
                requester_id,
                "file_shared",
                "File Shared",
                f"{db_file.name} is now shared and available to you",
                {"file_id": str(db_file.id), "owner_id": str(db_file.owner_id)},
            )
    return db_file


def delete_file(db: Session, file_id: UUID, owner_id: UUID) -> None:
    """Delete the file with its key and access requests, then its bytes."""

    db_file = policy.get_owned_file(db, file_id, owner_id)
    storage_path = db_file.storage_path
    db.delete(db_file)
    db.commit()
    _discard_payload(storage_path)


def list_owned(db: Session, owner_id: UUID) -> list[models.File]:
    return (
        db.query(models.File)
        .filter(models.File.owner_id == owner_id)
        .order_by(models.File.created_at.desc(), models.File.id.asc())
        .all()
    )


def list_shared_with(db: Session, user_id: UUID) -> list[models.File]:
    """Files other users share, plus files the user was approved to read."""

    approved_ids = (
        db.query(models.AccessRequest.file_id)
        .filter(
            models.AccessRequest.requester_id == user_id,
            models.AccessRequest.status == "approved",
        )
    )
    return (
        db.query(models.File)
        .filter(
            models.File.owner_id != user_id,
            (models.File.shared.is_(True)) | (models.File.id.in_(approved_ids)),
        )
        .order_by(models.File.created_at.desc(), models.File.id.asc())
        .all()
    )


def read_file_bytes(db: Session, file_id: UUID, requester_id: UUID) -> tuple[models.File, bytes]:
    """Return the file and its stored bytes to a permitted reader."""

    db_file = policy.get_readable_file(db, file_id, requester_id)
    data = storage.load_binary_payload(db_file.storage_path)
    if db_file.owner_id != requester_id:
        reader = db.get(models.User, requester_id)
        reader_name = reader.display_name if reader else "A user"
        notifications.notify(
            db,
            db_file.owner_id,
            "file_downloaded",
            "File Downloaded",
            f"{reader_name} downloaded your file: {db_file.name}",
            {"file_id": str(db_file.id), "reader_id": str(requester_id)},
        )
    return db_file, data
