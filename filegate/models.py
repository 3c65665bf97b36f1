import uuid
import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _fold_name(context) -> str:
    return (context.get_current_parameters().get("name") or "").casefold()


ACCESS_REQUEST_STATUSES = ("pending", "approved", "rejected", "cancelled")
TERMINAL_ACCESS_REQUEST_STATUSES = frozenset({"approved", "rejected", "cancelled"})

DEFAULT_NOTIFICATION_TYPES = {
    "file_shared": True,
    "file_downloaded": True,
    "access_requested": True,
}


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    files = relationship(
        "File", back_populates="owner", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    settings = relationship(
        "UserSettings",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class UserSettings(Base):
    __tablename__ = "user_settings"
    id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    private_files_by_default = Column(Boolean, nullable=False, default=True)
    require_approval_for_access = Column(Boolean, nullable=False, default=True)
    email_notifications_enabled = Column(Boolean, nullable=False, default=True)
    push_notifications_enabled = Column(Boolean, nullable=False, default=True)
    notification_types = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_NOTIFICATION_TYPES))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="settings")


class File(Base):
    __tablename__ = "files"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # casefolded copy of name; sqlite lower() only folds ASCII
    search_name = Column(String, nullable=False, default=_fold_name)
    storage_path = Column(String, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=False, default="application/octet-stream")
    shared = Column(Boolean, nullable=False, default=False)
    is_encrypted = Column(Boolean, nullable=False, default=False)
    original_type = Column(String, nullable=True)
    encryption_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    owner = relationship("User", back_populates="files")
    key = relationship(
        "FileKey",
        back_populates="file",
        uselist=False,
        cascade="all, delete-orphan",
    )
    access_requests = relationship(
        "AccessRequest",
        back_populates="file",
        cascade="all, delete-orphan",
    )


class FileKey(Base):
    __tablename__ = "file_keys"
    __table_args__ = (
        sa.UniqueConstraint("file_id", name="uq_file_keys_file_id"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_id = Column(UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    encrypted_key = Column(Text, nullable=False)  # base64(nonce || AES-GCM ciphertext)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    file = relationship("File", back_populates="key")


class AccessRequest(Base):
    __tablename__ = "file_access_requests"
    __table_args__ = (
        sa.CheckConstraint("requester_id <> owner_id", name="ck_access_requests_not_self"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="ck_access_requests_status",
        ),
        # at most one pending request per (file, requester)
        sa.Index(
            "uq_access_requests_pending_pair",
            "file_id",
            "requester_id",
            unique=True,
            sqlite_where=sa.text("status = 'pending'"),
            postgresql_where=sa.text("status = 'pending'"),
        ),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_id = Column(UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")
    message = Column(Text, nullable=False)
    response_message = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    file = relationship("File", back_populates="access_requests")
    requester = relationship("User", foreign_keys=[requester_id])
    owner = relationship("User", foreign_keys=[owner_id])


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # file_shared, file_downloaded, access_requested, access_approved, access_rejected
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")
