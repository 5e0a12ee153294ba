from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from ..auth.security import ensure_owner_or_elevated, get_current_user
from ..db import get_db
from ..errors import Unauthorized, ValidationError, get_or_404, parse_id
from ..models.models import Appointment, User
from ..schemas.calendar import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    RsvpRequest,
)
from ..schemas.common import MessageResponse, UTCDateTime, to_model_data, to_update_data
from ..services.derived import resolve_appointment_end


router = APIRouter(prefix="/api/appointments", tags=["appointments"])
log = structlog.get_logger(__name__)

DEFAULT_REMINDERS = [{"type": "system", "minutes_before": 15}]


def _involves(appointment: Appointment, user_id: str) -> bool:
    if str(appointment.created_by_id) == user_id:
        return True
    return any(a.get("user_id") == user_id for a in appointment.attendees or [])


def _resolve_end(start, end, all_day) -> datetime:
    try:
        return resolve_appointment_end(start, end, all_day)
    except ValueError as e:
        raise ValidationError(str(e))


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    start_date: Optional[UTCDateTime] = Query(None),
    end_date: Optional[UTCDateTime] = Query(None),
    type: Optional[AppointmentType] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """List appointments ordered by start time"""
    query = db.query(Appointment)
    if start_date:
        query = query.filter(Appointment.start_date >= start_date)
    if end_date:
        query = query.filter(Appointment.start_date <= end_date)
    if type:
        query = query.filter(Appointment.type == type.value)
    if status:
        query = query.filter(Appointment.status == status.value)
    query = query.order_by(Appointment.start_date.asc())

    if not user_id:
        return query.offset(offset).limit(limit).all()

    # attendees live in a JSON list, so the participant filter runs here
    target = str(parse_id(user_id, "User not found"))
    matches = [a for a in query.all() if _involves(a, target)]
    return matches[offset:offset + limit]


@router.get("/calendar/{year}/{month}", response_model=List[AppointmentResponse])
def calendar_month(
    year: int = Path(ge=1970, le=9999),
    month: int = Path(ge=1, le=12),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    """Appointments overlapping the given month (UTC)"""
    month_start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        month_end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        month_end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return db.query(Appointment).filter(
        Appointment.start_date < month_end,
        Appointment.end_date >= month_start,
    ).order_by(Appointment.start_date.asc()).all()


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, Appointment, appointment_id, "Appointment not found")


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = to_model_data(payload)
    data["end_date"] = _resolve_end(payload.start_date, payload.end_date, payload.all_day)
    data.setdefault("reminders", [dict(r) for r in DEFAULT_REMINDERS])
    appointment = Appointment(**data, created_by_id=user.id)
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    log.info("appointment_created", appointment_id=str(appointment.id), start=appointment.start_date.isoformat())
    return appointment


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    appointment = get_or_404(db, Appointment, appointment_id, "Appointment not found")
    ensure_owner_or_elevated(user, appointment.created_by_id, "Not authorized to update this appointment")

    # an explicit null end is re-derived from the start
    clear_end = "end_date" in payload.model_fields_set and payload.end_date is None
    data = to_update_data(payload, Appointment, ignore_null=("start_date", "end_date"))
    if clear_end or {"start_date", "end_date", "all_day"} & data.keys():
        start = data.get("start_date", appointment.start_date)
        all_day = data.get("all_day", appointment.all_day)
        # fields not sent are checked as stored
        end = None if clear_end else data.get("end_date", appointment.end_date)
        data["end_date"] = _resolve_end(start, end, all_day)
    for key, value in data.items():
        setattr(appointment, key, value)
    appointment.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(appointment)
    return appointment


@router.patch("/{appointment_id}/rsvp", response_model=AppointmentResponse)
def rsvp(
    appointment_id: str,
    payload: RsvpRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Set the caller's own attendance status"""
    appointment = get_or_404(db, Appointment, appointment_id, "Appointment not found")
    me = str(user.id)
    attendees = [dict(a) for a in appointment.attendees or []]
    entry = next((a for a in attendees if a.get("user_id") == me), None)
    if entry is None:
        raise Unauthorized("You are not invited to this appointment")
    entry["status"] = payload.status.value
    appointment.attendees = attendees
    appointment.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(appointment)
    return appointment


@router.delete("/{appointment_id}", response_model=MessageResponse)
def delete_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    appointment = get_or_404(db, Appointment, appointment_id, "Appointment not found")
    ensure_owner_or_elevated(user, appointment.created_by_id, "Not authorized to delete this appointment")
    db.delete(appointment)
    db.commit()
    return {"message": "Appointment deleted successfully"}
