from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import Conflict, NotFound, get_or_404
from ..models.models import Asset, User
from ..schemas.assets import (
    AssetCategory,
    AssetCreate,
    AssetResponse,
    AssetStatus,
    AssetUpdate,
)
from ..schemas.common import MessageResponse, NoteCreate, to_model_data, to_update_data
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/assets", tags=["assets"])
log = structlog.get_logger(__name__)


def _ensure_unique_identifiers(db: Session, data: dict, exclude_id=None) -> None:
    """Asset number, barcode and RFID must each be unique across assets."""
    for field, label in (("asset_number", "Asset number"), ("barcode", "Barcode"), ("rfid", "RFID")):
        value = data.get(field)
        if not value:
            continue
        query = db.query(Asset).filter(getattr(Asset, field) == value)
        if exclude_id is not None:
            query = query.filter(Asset.id != exclude_id)
        if query.first():
            raise Conflict(f"{label} already exists")


def make_note(text: str, author: User) -> dict:
    return {
        "text": text,
        "author_id": str(author.id),
        "author_name": author.full_name,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


@router.get("", response_model=List[AssetResponse])
def list_assets(
    status: Optional[AssetStatus] = Query(None),
    category: Optional[AssetCategory] = Query(None),
    location: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """List assets with filters"""
    query = db.query(Asset)

    if status:
        query = query.filter(Asset.status == status.value)
    if category:
        query = query.filter(Asset.category == category.value)
    if location:
        query = query.filter(Asset.current_location.ilike(f"%{location}%"))
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Asset.name.ilike(search_term),
                Asset.asset_number.ilike(search_term),
                Asset.serial_number.ilike(search_term),
                Asset.barcode.ilike(search_term),
                Asset.rfid.ilike(search_term),
            )
        )

    return query.order_by(Asset.created_at.desc()).all()


@router.get("/search/barcode/{code}", response_model=AssetResponse)
def find_by_barcode(code: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    """Look up an asset by barcode, RFID tag or asset number"""
    asset = db.query(Asset).filter(
        or_(Asset.barcode == code, Asset.rfid == code, Asset.asset_number == code)
    ).first()
    if not asset:
        raise NotFound("Asset not found")
    return asset


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, Asset, asset_id, "Asset not found")


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
def create_asset(
    payload: AssetCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    data = to_model_data(payload)
    _ensure_unique_identifiers(db, data)
    asset = Asset(**data, created_by_id=user.id)
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


@router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: str,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    asset = get_or_404(db, Asset, asset_id, "Asset not found")
    data = to_update_data(payload, Asset)
    _ensure_unique_identifiers(db, data, exclude_id=asset.id)
    for key, value in data.items():
        setattr(asset, key, value)
    asset.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(asset)
    return asset


@router.delete("/{asset_id}", response_model=MessageResponse)
def delete_asset(
    asset_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(require_admin),
):
    asset = get_or_404(db, Asset, asset_id, "Asset not found")
    files = list(asset.images or []) + list(asset.documents or [])
    db.delete(asset)
    db.commit()
    remove_files(storage, files, owner=f"asset:{asset_id}")
    log.info("asset_deleted", asset_id=asset_id, by=str(user.id))
    return {"message": "Asset deleted successfully"}


@router.post("/{asset_id}/notes", response_model=AssetResponse)
def add_note(
    asset_id: str,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    asset = get_or_404(db, Asset, asset_id, "Asset not found")
    asset.notes = [*(asset.notes or []), make_note(payload.text, user)]
    asset.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(asset)
    return asset
