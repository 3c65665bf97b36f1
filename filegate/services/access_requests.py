"""Access-request workflow for non-shared files.

States: ``pending -> approved | rejected`` (owner) and ``pending -> cancelled``
(requester). Approved, rejected and cancelled are terminal.

The single-pending-request rule is enforced by the partial unique index
``uq_access_requests_pending_pair``; the pre-insert lookup only produces a
friendlier error. Responses and cancellations are compare-and-set updates
guarded by ``status = 'pending'`` so the loser of a concurrent race gets a
Conflict instead of overwriting the winner.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..errors import Conflict, NotFound, Unauthorized, ValidationError
from . import notifications, policy
from . import settings as user_settings

# purpose: govern creation, owner response and requester cancellation of access requests
# status: pilot

Decision = Literal["approved", "rejected"]

AUTO_APPROVAL_MESSAGE = "Approved automatically"


def _get_request(db: Session, request_id: UUID) -> models.AccessRequest:
    access_request = db.get(models.AccessRequest, request_id)
    if access_request is None:
        raise NotFound(f"access request {request_id} not found", resource="Access request")
    return access_request


def _display_name(db: Session, user_id: UUID, fallback: str) -> str:
    user = db.get(models.User, user_id)
    return user.display_name if user else fallback


def _transition(
    db: Session,
    request_id: UUID,
    status: str,
    *,
    response_message: str | None = None,
    responded: bool = False,
) -> bool:
    values: dict = {"status": status}
    if responded:
        values["response_message"] = response_message
        values["responded_at"] = datetime.now(timezone.utc)
    updated = (
        db.query(models.AccessRequest)
        .filter(
            models.AccessRequest.id == request_id,
            models.AccessRequest.status == "pending",
        )
        .update(values, synchronize_session=False)
    )
    return updated == 1


def _notify_requested(db: Session, access_request: models.AccessRequest, file_name: str) -> None:
    requester_name = _display_name(db, access_request.requester_id, "A user")
    notifications.notify(
        db,
        access_request.owner_id,
        "access_requested",
        "New Access Request",
        f"{requester_name} has requested access to your file: {file_name}",
        {
            "file_id": str(access_request.file_id),
            "request_id": str(access_request.id),
            "requester_id": str(access_request.requester_id),
        },
    )


def _notify_response(
    db: Session,
    access_request: models.AccessRequest,
    file_name: str,
) -> None:
    owner_name = _display_name(db, access_request.owner_id, "The file owner")
    status = access_request.status
    message = f"{owner_name} has {status} your request to access: {file_name}"
    if access_request.response_message:
        message += f' - "{access_request.response_message}"'
    notifications.notify(
        db,
        access_request.requester_id,
        f"access_{status}",
        f"Access Request {status.capitalize()}",
        message,
        {
            "file_id": str(access_request.file_id),
            "request_id": str(access_request.id),
            "owner_id": str(access_request.owner_id),
            "status": status,
        },
    )


def create_request(
    db: Session,
    file_id: UUID,
    requester_id: UUID,
    message: str,
) -> models.AccessRequest:
    """Open a pending access request and notify the file owner."""

    file = db.get(models.File, file_id)
    if file is None:
        raise NotFound(f"file {file_id} not found", resource="File")
    if not message or not message.strip():
        raise ValidationError("a message is required to request access")
    if file.owner_id == requester_id:
        raise ValidationError("you cannot request access to your own file")
    if policy.can_read(db, file, requester_id):
        raise Conflict("already has access")

    existing = (
        db.query(models.AccessRequest.id)
        .filter(
            models.AccessRequest.file_id == file_id,
            models.AccessRequest.requester_id == requester_id,
            models.AccessRequest.status == "pending",
        )
        .first()
    )
    if existing is not None:
        raise Conflict("you already have a pending request for this file")

    owner_id = file.owner_id
    file_name = file.name
    access_request = models.AccessRequest(
        file_id=file_id,
        requester_id=requester_id,
        owner_id=owner_id,
        status="pending",
        message=message.strip(),
    )
    db.add(access_request)
    try:
        db.flush()
        auto_approved = not user_settings.requires_approval(db, owner_id)
        if auto_approved:
            _transition(
                db,
                access_request.id,
                "approved",
                response_message=AUTO_APPROVAL_MESSAGE,
                responded=True,
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("you already have a pending request for this file") from exc
    db.refresh(access_request)

    _notify_requested(db, access_request, file_name)
    if auto_approved:
        _notify_response(db, access_request, file_name)
    return access_request


def respond(
    db: Session,
    request_id: UUID,
    owner_id: UUID,
    decision: str,
    response_message: str | None = None,
) -> models.AccessRequest:
    """Approve or reject a pending request on behalf of the file owner."""

    access_request = _get_request(db, request_id)
    if access_request.owner_id != owner_id:
        raise Unauthorized(
            f"user {owner_id} does not own access request {request_id}",
            resource="Access request",
        )
    if decision not in ("approved", "rejected"):
        raise ValidationError("decision must be 'approved' or 'rejected'")
    if access_request.status != "pending":
        raise Conflict(f"request has already been {access_request.status}")

    message = response_message.strip() if response_message and response_message.strip() else None
    if not _transition(db, request_id, decision, response_message=message, responded=True):
        db.rollback()
        db.refresh(access_request)
        raise Conflict(f"request has already been {access_request.status}")
    db.commit()
    db.refresh(access_request)

    file = db.get(models.File, access_request.file_id)
    _notify_response(db, access_request, file.name if file else "the requested file")
    return access_request


def cancel(db: Session, request_id: UUID, requester_id: UUID) -> models.AccessRequest:
    """Withdraw a pending request; only the requester may do so."""

    access_request = _get_request(db, request_id)
    if access_request.requester_id != requester_id:
        raise Unauthorized(
            f"user {requester_id} did not create access request {request_id}",
            resource="Access request",
        )
    if access_request.status != "pending":
        raise Conflict(f"request has already been {access_request.status}")

    if not _transition(db, request_id, "cancelled"):
        db.rollback()
        db.refresh(access_request)
        raise Conflict(f"request has already been {access_request.status}")
    db.commit()
    db.refresh(access_request)
    return access_request


def list_requests(
    db: Session,
    user_id: UUID,
    direction: str = "received",
    *,
    status: str | None = None,
) -> list[models.AccessRequest]:
    """Requests the user sent, or requests received for files the user owns."""

    query = db.query(models.AccessRequest)
    if direction == "sent":
        query = query.filter(models.AccessRequest.requester_id == user_id)
    elif direction == "received":
        query = query.filter(models.AccessRequest.owner_id == user_id)
    else:
        raise ValidationError("type must be 'sent' or 'received'")
    if status:
        if status not in models.ACCESS_REQUEST_STATUSES:
            raise ValidationError(f"unknown status {status!r}")
        query = query.filter(models.AccessRequest.status == status)
    return query.order_by(
        models.AccessRequest.created_at.desc(),
        models.AccessRequest.id.asc(),
    ).all()


def pending_requesters(db: Session, file_id: UUID) -> list[UUID]:
    rows = (
        db.query(models.AccessRequest.requester_id)
        .filter(
            models.AccessRequest.file_id == file_id,
            models.AccessRequest.status == "pending",
        )
        .all()
    )
    return [row[0] for row in rows]
