import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, Optional, get_args, get_origin

from pydantic import AfterValidator, BaseModel, Field, field_validator

from ..errors import ValidationError
from ..storage.provider import is_valid_key


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Incoming timestamps are normalized to UTC before they reach the database
UTCDateTime = Annotated[datetime, AfterValidator(_to_utc)]


class UserBrief(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    username: str
    role: str

    class Config:
        from_attributes = True


class AssetBrief(BaseModel):
    id: uuid.UUID
    asset_number: str
    name: str
    category: Optional[str] = None
    status: Optional[str] = None

    class Config:
        from_attributes = True


class Attachment(BaseModel):
    """Descriptor returned by the upload endpoint and stored on owning records."""
    filename: str
    original_name: Optional[str] = None
    path: str
    size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class UploadedAttachment(Attachment):
    """An attachment sent by a client; it must name a file issued by the upload endpoint."""

    @field_validator("filename")
    @classmethod
    def _issued_key(cls, value: str) -> str:
        if not is_valid_key(value):
            raise ValueError("filename must be a key returned by the upload endpoint")
        return value


class NoteCreate(BaseModel):
    text: str = Field(min_length=1)


class Note(BaseModel):
    text: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    created_at: datetime


class MessageResponse(BaseModel):
    message: str


def to_model_data(payload: BaseModel, **kwargs) -> Dict[str, Any]:
    """
    Dump a request schema into column values.

    Scalars keep their Python types (datetimes, UUIDs); enums become their
    values; nested lists and dicts are dumped in JSON mode so they can be
    stored in JSON columns. A null list field is dropped so the column keeps
    its current (or default) list.
    """
    data = payload.model_dump(**kwargs)
    json_data = payload.model_dump(mode="json", **kwargs)
    for key in [k for k, v in data.items() if v is None and _is_list_field(payload, k)]:
        del data[key]
    for key, value in data.items():
        if isinstance(value, (list, dict)):
            data[key] = json_data[key]
        elif isinstance(value, Enum):
            data[key] = value.value
    return data


def _is_list_field(payload: BaseModel, key: str) -> bool:
    field = type(payload).model_fields.get(key)
    if field is None:
        return False
    annotation = field.annotation
    candidates = (annotation,) + get_args(annotation)
    return any(get_origin(c) is list for c in candidates)


def to_update_data(payload: BaseModel, model, ignore_null: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Column values for a partial update: only fields the client sent.

    An explicit null on a NOT NULL column is rejected up front instead of
    failing at flush time; names in `ignore_null` are dropped instead.
    """
    data = to_model_data(payload, exclude_unset=True)
    columns = model.__table__.columns
    for key in [k for k, v in data.items() if v is None]:
        if key in ignore_null:
            del data[key]
        elif key in columns and not columns[key].nullable:
            raise ValidationError(f"{key} cannot be null")
    return data
