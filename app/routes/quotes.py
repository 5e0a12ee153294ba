from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import Asset, MaintenanceQuote, User
from ..schemas.assets import QuoteCreate, QuoteDecision, QuoteResponse, QuoteStatus, QuoteUpdate
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/quotes", tags=["quotes"])
log = structlog.get_logger(__name__)


@router.get("", response_model=List[QuoteResponse])
def list_quotes(
    status: Optional[QuoteStatus] = Query(None),
    asset_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    query = db.query(MaintenanceQuote)
    if status:
        query = query.filter(MaintenanceQuote.status == status.value)
    if asset_id:
        query = query.filter(MaintenanceQuote.asset_id == parse_id(asset_id, "Asset not found"))
    return query.order_by(MaintenanceQuote.created_at.desc()).all()


@router.get("/{quote_id}", response_model=QuoteResponse)
def get_quote(quote_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, MaintenanceQuote, quote_id, "Quote not found")


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: QuoteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    if db.get(Asset, payload.asset_id) is None:
        raise NotFound("Asset not found")
    quote = MaintenanceQuote(**to_model_data(payload), requested_by_id=user.id)
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote


@router.put("/{quote_id}", response_model=QuoteResponse)
def update_quote(
    quote_id: str,
    payload: QuoteUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    quote = get_or_404(db, MaintenanceQuote, quote_id, "Quote not found")
    for key, value in to_update_data(payload, MaintenanceQuote).items():
        setattr(quote, key, value)
    quote.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(quote)
    return quote


@router.patch("/{quote_id}/approve", response_model=QuoteResponse)
def decide_quote(
    quote_id: str,
    payload: QuoteDecision,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    """Approve or reject a quote"""
    quote = get_or_404(db, MaintenanceQuote, quote_id, "Quote not found")
    now = datetime.now(timezone.utc)
    quote.status = QuoteStatus.approved.value if payload.approved else QuoteStatus.rejected.value
    quote.approved_by_id = user.id
    quote.approved_date = now
    if payload.notes:
        quote.notes = payload.notes
    quote.updated_at = now
    db.commit()
    db.refresh(quote)
    log.info("quote_decided", quote_id=quote_id, status=quote.status, by=str(user.id))
    return quote


@router.delete("/{quote_id}", response_model=MessageResponse)
def delete_quote(
    quote_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require_admin),
):
    quote = get_or_404(db, MaintenanceQuote, quote_id, "Quote not found")
    attachments = list(quote.attachments or [])
    db.delete(quote)
    db.commit()
    remove_files(storage, attachments, owner=f"quote:{quote_id}")
    return {"message": "Quote deleted successfully"}
