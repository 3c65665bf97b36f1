"""Helpers for interacting with the object storage backend holding file bytes."""

from __future__ import annotations

import io
import logging
import os
import re
from typing import Optional
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from .errors import StorageError

# purpose: put/get/delete of uploaded file bytes behind an opaque locator
# status: pilot

logger = logging.getLogger(__name__)

_MINIO_CLIENT: Optional[Minio] = None


def _get_upload_dir() -> str:
    """Return the configured upload directory, creating it when needed."""

    upload_dir = os.getenv("UPLOAD_DIR", "uploaded_files")
    os.makedirs(upload_dir, exist_ok=True)
    return upload_dir


def _bucket() -> str:
    return os.getenv("MINIO_BUCKET", "files")


def _ensure_minio_client() -> Optional[Minio]:
    """Initialize and return a MinIO client when configuration is present."""

    global _MINIO_CLIENT
    endpoint = os.getenv("MINIO_ENDPOINT", "").strip()
    access_key = os.getenv("MINIO_ACCESS_KEY")
    secret_key = os.getenv("MINIO_SECRET_KEY")
    if not endpoint or not access_key or not secret_key:
        return None
    if _MINIO_CLIENT is None:
        client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=endpoint.startswith("https"),
        )
        try:
            if not client.bucket_exists(_bucket()):
                client.make_bucket(_bucket())
        except S3Error as exc:
            raise StorageError(f"object storage bucket setup failed: {exc}") from exc
        _MINIO_CLIENT = client
    return _MINIO_CLIENT


def _build_object_name(namespace: str | None, filename: str) -> str:
    """Construct a normalized storage object key within an optional namespace."""

    safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", filename) or "upload.bin"
    if not namespace:
        return f"{uuid4()}-{safe_name}"
    clean_namespace = re.sub(r"[^A-Za-z0-9/_.-]", "_", namespace).strip("/")
    return f"{clean_namespace}/{uuid4()}-{safe_name}"


def _split_s3_path(storage_path: str) -> tuple[str, str]:
    _, _, rest = storage_path.partition("s3://")
    bucket, _, object_name = rest.partition("/")
    if not bucket or not object_name:
        raise StorageError(f"invalid s3 storage path {storage_path!r}")
    return bucket, object_name


def save_binary_payload(
    data: bytes,
    filename: str,
    *,
    content_type: str = "application/octet-stream",
    namespace: str | None = None,
) -> tuple[str, int]:
    """Persist ``data`` and return ``(locator, size)``."""

    object_name = _build_object_name(namespace, filename)
    client = _ensure_minio_client()
    if client:
        try:
            client.put_object(
                _bucket(),
                object_name,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as exc:
            raise StorageError(f"object upload failed: {exc}") from exc
        return f"s3://{_bucket()}/{object_name}", len(data)

    upload_dir = _get_upload_dir()
    if namespace:
        target_dir = os.path.join(upload_dir, *namespace.strip("/").split("/"))
        os.makedirs(target_dir, exist_ok=True)
    else:
        target_dir = upload_dir
    storage_path = os.path.join(target_dir, os.path.basename(object_name))
    try:
        with open(storage_path, "wb") as handle:
            handle.write(data)
    except OSError as exc:
        raise StorageError(f"local write failed for {storage_path}: {exc}") from exc
    return storage_path, len(data)


def load_binary_payload(storage_path: str) -> bytes:
    """Retrieve the bytes stored at ``storage_path``."""

    if storage_path.startswith("s3://"):
        client = _ensure_minio_client()
        if not client:
            raise StorageError("object storage client unavailable for s3 path")
        bucket, object_name = _split_s3_path(storage_path)
        try:
            response = client.get_object(bucket, object_name)
        except S3Error as exc:
            raise StorageError(f"object download failed: {exc}") from exc
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    try:
        with open(storage_path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise StorageError(f"local read failed for {storage_path}: {exc}") from exc


def delete_binary_payload(storage_path: str) -> None:
    """Remove the object at ``storage_path``; a missing object is not an error."""

    if storage_path.startswith("s3://"):
        client = _ensure_minio_client()
        if not client:
            raise StorageError("object storage client unavailable for s3 path")
        bucket, object_name = _split_s3_path(storage_path)
        try:
            client.remove_object(bucket, object_name)
        except S3Error as exc:
            raise StorageError(f"object delete failed: {exc}") from exc
        return

    try:
        os.remove(storage_path)
    except FileNotFoundError:
        logger.info("Stored payload %s already absent", storage_path)
    except OSError as exc:
        raise StorageError(f"local delete failed for {storage_path}: {exc}") from exc
