"""Custody of per-file encryption keys.

Each encrypted file owns exactly one FileKey row. The client-supplied key
material is wrapped under the server master key (AES-256-GCM, file id as
associated data) before it is persisted, and unwrapped only for callers that
already passed the read policy. Because one wrapped key is shared by every
authorised reader, the server can always recover it; per-recipient wrapping
would need a different schema.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from uuid import UUID

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..errors import Conflict, NotFound, StorageError, ValidationError
from . import policy

# purpose: store, look up and unwrap file keys; one key per encrypted file
# status: pilot

logger = logging.getLogger(__name__)

_NONCE_BYTES = 12


def _master_key() -> bytes:
    raw = os.getenv("FILE_KEY_MASTER_KEY")
    if not raw:
        raise StorageError("FILE_KEY_MASTER_KEY is not configured")
    try:
        key = base64.urlsafe_b64decode(raw)
    except (binascii.Error, ValueError) as exc:
        raise StorageError("FILE_KEY_MASTER_KEY is not valid base64") from exc
    if len(key) != 32:
        raise StorageError("FILE_KEY_MASTER_KEY must decode to 32 bytes")
    return key


def wrap(file_id: UUID, key_material: str) -> str:
    """Encrypt ``key_material`` for storage, bound to ``file_id``."""

    nonce = os.urandom(_NONCE_BYTES)
    ciphertext = AESGCM(_master_key()).encrypt(nonce, key_material.encode("utf-8"), str(file_id).encode())
    return base64.b64encode(nonce + ciphertext).decode("ascii")


def unwrap(file_key: models.FileKey) -> str:
    """Recover the key material held by ``file_key``."""

    try:
        blob = base64.b64decode(file_key.encrypted_key)
        nonce, ciphertext = blob[:_NONCE_BYTES], blob[_NONCE_BYTES:]
        plain = AESGCM(_master_key()).decrypt(nonce, ciphertext, str(file_key.file_id).encode())
    except (InvalidTag, binascii.Error, ValueError) as exc:
        logger.error("Failed to unwrap key for file %s: %r", file_key.file_id, exc)
        raise StorageError(f"stored key for file {file_key.file_id} cannot be unwrapped") from exc
    return plain.decode("utf-8")


def build_key(file_id: UUID, key_material: str) -> models.FileKey:
    """Return an unsaved FileKey for ``file_id``; used when the file is created."""

    if not key_material or not key_material.strip():
        raise ValidationError("key material is required for encrypted files")
    return models.FileKey(file_id=file_id, encrypted_key=wrap(file_id, key_material))


def store_key(db: Session, file_id: UUID, key_material: str) -> models.FileKey:
    """Persist the key for ``file_id``; a second key for the same file conflicts."""

    file = db.get(models.File, file_id)
    if file is None:
        raise NotFound(f"file {file_id} not found", resource="File")
    if not file.is_encrypted:
        raise ValidationError("keys can only be stored for encrypted files")
    file_key = build_key(file_id, key_material)
    db.add(file_key)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(f"a key already exists for file {file_id}") from exc
    db.refresh(file_key)
    return file_key


def get_key(db: Session, file_id: UUID) -> models.FileKey:
    file_key = (
        db.query(models.FileKey)
        .filter(models.FileKey.file_id == file_id)
        .one_or_none()
    )
    if file_key is None:
        raise NotFound(f"no key stored for file {file_id}", resource="File key")
    return file_key


def retrieve_key(db: Session, file_id: UUID, requester_id: UUID) -> str:
    """Return unwrapped key material to a requester allowed to read the file."""

    file = policy.get_readable_file(db, file_id, requester_id)
    if not policy.can_retrieve_key(db, file, requester_id):
        raise NotFound(f"file {file_id} has no retrievable key", resource="File key")
    return unwrap(get_key(db, file_id))
