from datetime import datetime
from typing import Optional, Any, Dict, Literal, List
from pydantic import AliasChoices, BaseModel, EmailStr, ConfigDict, Field
from uuid import UUID


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    full_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class FileOut(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    size: int
    mime_type: str
    shared: bool
    is_encrypted: bool
    original_type: Optional[str] = None
    encryption_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FileShareUpdate(BaseModel):
    shared: bool


class FileAccessOut(BaseModel):
    file_id: UUID
    can_read: bool
    can_retrieve_key: bool


class FileKeyOut(BaseModel):
    file_id: UUID
    file_key: str


class SearchResultOut(FileOut):
    section: Literal["own", "shared"]


class SearchResponse(BaseModel):
    query: str
    own_results: List[SearchResultOut] = Field(default_factory=list)
    shared_results: List[SearchResultOut] = Field(default_factory=list)
    total_results: int = 0


class AccessRequestCreate(BaseModel):
    file_id: UUID
    message: str


class AccessRequestRespond(BaseModel):
    decision: Literal["approved", "rejected"]
    response_message: Optional[str] = None


class AccessRequestOut(BaseModel):
    id: UUID
    file_id: UUID
    requester_id: UUID
    owner_id: UUID
    status: Literal["pending", "approved", "rejected", "cancelled"]
    message: str
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    read: bool = False
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta", "metadata"),
    )
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationStats(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]


class UserSettingsOut(BaseModel):
    private_files_by_default: bool
    require_approval_for_access: bool
    email_notifications_enabled: bool
    push_notifications_enabled: bool
    notification_types: Dict[str, bool]
    model_config = ConfigDict(from_attributes=True)


class UserSettingsUpdate(BaseModel):
    private_files_by_default: Optional[bool] = None
    require_approval_for_access: Optional[bool] = None
    email_notifications_enabled: Optional[bool] = None
    push_notifications_enabled: Optional[bool] = None
    notification_types: Optional[Dict[str, bool]] = None
