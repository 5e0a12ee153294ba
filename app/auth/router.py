from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import Conflict, Unauthenticated, Unauthorized, ValidationError, get_or_404
from ..models.models import User
from ..schemas.auth import (
    LoginRequest,
    RegisterRequest,
    Role,
    TokenResponse,
    UserAdminUpdate,
    UserPublic,
)
from ..schemas.common import MessageResponse
from .security import (
    authenticate,
    create_access_token,
    get_current_user,
    get_password_hash,
    http_bearer,
    require_admin,
    verify_password,
)


router = APIRouter(prefix="/api/auth", tags=["auth"])
log = structlog.get_logger(__name__)


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(token=create_access_token(str(user.id)), user=UserPublic.model_validate(user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
):
    # Elevated roles need an admin caller, except for the very first account
    if req.role != Role.member and db.query(User).count() > 0:
        caller = authenticate(db, creds.credentials) if creds else None
        if caller is None or caller.role != Role.admin.value:
            raise Unauthorized("Only an admin can register elevated accounts")

    if db.query(User).filter(User.username == req.username).first():
        raise Conflict("User already exists")

    user = User(
        first_name=req.first_name,
        last_name=req.last_name,
        username=req.username,
        password_hash=get_password_hash(req.password),
        role=req.role.value,
        is_active=True,
        push_tokens=[],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user_registered", user_id=str(user.id), role=user.role)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    username = req.username.strip().lower()
    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(req.password, user.password_hash):
        log.info("login_failed", username=username)
        raise Unauthenticated("Invalid credentials")
    if not user.is_active:
        raise Unauthenticated("Account is inactive")
    return _token_response(user)


@router.get("/me", response_model=UserPublic)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/users", response_model=List[UserPublic])
def list_users(db: Session = Depends(get_db), _=Depends(require_admin)):
    return db.query(User).order_by(User.created_at.desc()).all()


@router.put("/users/{user_id}", response_model=UserPublic)
def update_user(
    user_id: str,
    payload: UserAdminUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = get_or_404(db, User, user_id, "User not found")
    data = payload.model_dump(exclude_unset=True)

    if "username" in data and data["username"] != user.username:
        if db.query(User).filter(User.username == data["username"], User.id != user.id).first():
            raise Conflict("Username already exists")
    password = data.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    if data.get("role") is not None:
        data["role"] = data["role"].value
    for key, value in data.items():
        if value is not None:
            setattr(user, key, value)
    user.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(user)
    log.info("user_updated", user_id=str(user.id), by=str(admin.id), fields=sorted(payload.model_fields_set))
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user = get_or_404(db, User, user_id, "User not found")
    if user.id == admin.id:
        raise ValidationError("Cannot delete your own account")
    db.delete(user)
    db.commit()
    log.info("user_deleted", user_id=user_id, by=str(admin.id))
    return {"message": "User deleted successfully"}
