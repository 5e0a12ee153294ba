from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user, is_elevated
from ..db import get_db
from ..errors import NotFound, get_or_404, parse_id
from ..models.models import Certificate, User
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..schemas.training import (
    CertificateCreate,
    CertificateResponse,
    CertificateStatus,
    CertificateUpdate,
    ExpiringStats,
)
from ..services.derived import EXPIRING_SOON_WINDOW, expiry_status
from ..storage.local_provider import get_storage, remove_files
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/certificates", tags=["certificates"])


def _refresh_status(cert: Certificate) -> None:
    cert.status = expiry_status(cert.issued_date, cert.expiry_date)


def _visible(db: Session, user: User):
    query = db.query(Certificate)
    if not is_elevated(user.role):
        query = query.filter(Certificate.user_id == user.id)
    return query


@router.get("", response_model=List[CertificateResponse])
def list_certificates(
    user_id: Optional[str] = Query(None),
    status: Optional[CertificateStatus] = Query(None),
    expiring_soon: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Certificates ordered by expiry, soonest first"""
    query = _visible(db, user)
    if user_id and is_elevated(user.role):
        query = query.filter(Certificate.user_id == parse_id(user_id, "User not found"))
    if status:
        query = query.filter(Certificate.status == status.value)
    if expiring_soon:
        now = datetime.now(timezone.utc)
        query = query.filter(
            Certificate.expiry_date.is_not(None),
            Certificate.expiry_date > now,
            Certificate.expiry_date <= now + EXPIRING_SOON_WINDOW,
        )
    return query.order_by(Certificate.expiry_date.asc()).all()


@router.get("/stats/expiring", response_model=ExpiringStats)
def expiring_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    query = _visible(db, user).filter(Certificate.expiry_date.is_not(None))
    expired = query.filter(Certificate.expiry_date < now).count()
    expiring = query.filter(
        Certificate.expiry_date > now,
        Certificate.expiry_date <= now + EXPIRING_SOON_WINDOW,
    ).order_by(Certificate.expiry_date.asc()).all()
    return {"expired": expired, "expiring_soon": len(expiring), "certificates": expiring}


@router.get("/{certificate_id}", response_model=CertificateResponse)
def get_certificate(certificate_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cert = get_or_404(db, Certificate, certificate_id, "Certificate not found")
    ensure_owner_or_elevated(user, cert.user_id)
    return cert


@router.post("", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
def create_certificate(
    payload: CertificateCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = to_model_data(payload)
    owner_id = data.pop("user_id", None)
    if owner_id is None or not is_elevated(user.role):
        owner_id = user.id
    elif db.get(User, owner_id) is None:
        raise NotFound("User not found")

    cert = Certificate(**data, user_id=owner_id, created_by_id=user.id)
    _refresh_status(cert)
    db.add(cert)
    db.commit()
    db.refresh(cert)
    return cert


@router.put("/{certificate_id}", response_model=CertificateResponse)
def update_certificate(
    certificate_id: str,
    payload: CertificateUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    cert = get_or_404(db, Certificate, certificate_id, "Certificate not found")
    ensure_owner_or_elevated(user, cert.user_id)
    for key, value in to_update_data(payload, Certificate).items():
        setattr(cert, key, value)
    _refresh_status(cert)
    cert.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(cert)
    return cert


@router.delete("/{certificate_id}", response_model=MessageResponse)
def delete_certificate(
    certificate_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    cert = get_or_404(db, Certificate, certificate_id, "Certificate not found")
    ensure_owner_or_elevated(user, cert.user_id)
    stored_file = cert.file
    db.delete(cert)
    db.commit()
    remove_files(storage, [stored_file], owner=f"certificate:{certificate_id}")
    return {"message": "Certificate deleted successfully"}
