import uuid
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Role(str, Enum):
    admin = "admin"
    officer = "officer"
    member = "member"


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    username: str = Field(min_length=3, max_length=20)
    password: str = Field(min_length=6)
    role: Role = Role.member

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, v: str) -> str:
        v = v.strip().lower()
        if not 3 <= len(v) <= 20:
            raise ValueError("must be between 3 and 20 characters")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class UserPublic(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    username: str
    role: Role
    is_active: bool = True

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserPublic


class UserAdminUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=3, max_length=20)
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v
