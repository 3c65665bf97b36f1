"""Access policy evaluation for stored files.

Every read-sensitive path consults this module; nothing here mutates state.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..errors import NotFound, Unauthorized

# purpose: single source of truth for file read authorization
# status: pilot


def has_approved_request(db: Session, file_id: UUID, requester_id: UUID) -> bool:
    return (
        db.query(models.AccessRequest.id)
        .filter(
            models.AccessRequest.file_id == file_id,
            models.AccessRequest.requester_id == requester_id,
            models.AccessRequest.status == "approved",
        )
        .first()
        is not None
    )


def can_read(db: Session, file: models.File, requester_id: UUID) -> bool:
    """Return True when ``requester_id`` may read ``file``.

    Access is granted to the owner, to anyone when the file is shared, and to
    requesters holding an approved access request. Approvals do not expire.
    """

    if file.owner_id == requester_id:
        return True
    if file.shared:
        return True
    return has_approved_request(db, file.id, requester_id)


def can_retrieve_key(db: Session, file: models.File, requester_id: UUID) -> bool:
    """Return True when the requester may receive the file's key material."""

    if not file.is_encrypted:
        return False
    if not can_read(db, file, requester_id):
        return False
    return (
        db.query(models.FileKey.id)
        .filter(models.FileKey.file_id == file.id)
        .first()
        is not None
    )


def get_readable_file(db: Session, file_id: UUID, requester_id: UUID) -> models.File:
    """Load a file the requester may read; unreadable files look missing."""

    file = db.get(models.File, file_id)
    if file is None or not can_read(db, file, requester_id):
        raise NotFound(f"file {file_id} not readable by {requester_id}", resource="File")
    return file


def get_owned_file(db: Session, file_id: UUID, owner_id: UUID) -> models.File:
    file = db.get(models.File, file_id)
    if file is None:
        raise NotFound(f"file {file_id} not found", resource="File")
    if file.owner_id != owner_id:
        raise Unauthorized(f"user {owner_id} does not own file {file_id}", resource="File")
    return file
