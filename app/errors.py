import uuid
from typing import Optional, Type, TypeVar

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings


log = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT")


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Not authorized for this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "Already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


def parse_id(value: str, detail: str = "Not found") -> uuid.UUID:
    """Malformed identifiers are reported the same way as missing ones."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise NotFound(detail)


def get_or_404(db: Session, model: Type[ModelT], value: str, detail: Optional[str] = None) -> ModelT:
    detail = detail or f"{model.__name__} not found"
    obj = db.get(model, parse_id(value, detail))
    if obj is None:
        raise NotFound(detail)
    return obj


def is_unique_violation(exc: IntegrityError) -> bool:
    # 23505 is unique_violation on PostgreSQL; SQLite only reports it in the message
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation failed"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": _validation_message(exc), "errors": errors},
        )

    @app.exception_handler(IntegrityError)
    async def _integrity(request: Request, exc: IntegrityError):
        log.warning("integrity_error", path=request.url.path, error=str(exc.orig))
        if is_unique_violation(exc):
            return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": "Duplicate value"})
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid or missing value"})

    @app.exception_handler(SQLAlchemyError)
    async def _datastore(request: Request, exc: SQLAlchemyError):
        log.error("datastore_error", path=request.url.path, error=str(exc), exc_info=exc)
        detail = "Server error" if settings.is_production else f"Server error: {exc.__class__.__name__}"
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})
