from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import get_or_404
from ..models.models import MaintenanceTemplate, User
from ..schemas.assets import (
    MaintenanceTemplateCreate,
    MaintenanceTemplateResponse,
    MaintenanceTemplateUpdate,
    MaintenanceType,
)
from ..schemas.common import MessageResponse, to_model_data, to_update_data
from ..services.templates import record_template_use


router = APIRouter(prefix="/api/maintenance-templates", tags=["maintenance-templates"])


@router.get("", response_model=List[MaintenanceTemplateResponse])
def list_templates(
    category: Optional[str] = Query(None),
    type: Optional[MaintenanceType] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    query = db.query(MaintenanceTemplate).filter(MaintenanceTemplate.is_active.is_(True))
    if category:
        query = query.filter(MaintenanceTemplate.category == category)
    if type:
        query = query.filter(MaintenanceTemplate.type == type.value)
    return query.order_by(MaintenanceTemplate.name.asc()).all()


@router.get("/{template_id}", response_model=MaintenanceTemplateResponse)
def get_template(template_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, MaintenanceTemplate, template_id, "Template not found")


@router.post("", response_model=MaintenanceTemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: MaintenanceTemplateCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    template = MaintenanceTemplate(**to_model_data(payload), created_by_id=user.id)
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


@router.put("/{template_id}", response_model=MaintenanceTemplateResponse)
def update_template(
    template_id: str,
    payload: MaintenanceTemplateUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    template = get_or_404(db, MaintenanceTemplate, template_id, "Template not found")
    for key, value in to_update_data(payload, MaintenanceTemplate).items():
        setattr(template, key, value)
    template.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(template)
    return template


@router.post("/{template_id}/use", response_model=MaintenanceTemplateResponse)
def use_template(template_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return record_template_use(db, MaintenanceTemplate, template_id)


@router.delete("/{template_id}", response_model=MessageResponse)
def delete_template(template_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    """Deactivate a template; past usage stays linked to it."""
    template = get_or_404(db, MaintenanceTemplate, template_id, "Template not found")
    template.is_active = False
    template.updated_at = datetime.now(timezone.utc)
    db.commit()
    return {"message": "Template deleted successfully"}
