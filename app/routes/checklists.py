from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import get_or_404
from ..models.models import ChecklistTemplate, User
from ..schemas.checklists import (
    ChecklistTemplateCreate,
    ChecklistTemplateResponse,
    ChecklistTemplateUpdate,
    ChecklistType,
    ChecklistTypes,
    ItemCategory,
)
from ..schemas.common import MessageResponse, to_model_data, to_update_data


router = APIRouter(prefix="/api/checklists", tags=["checklists"])


def _ordered_items(items: Optional[list]) -> list:
    return sorted(items or [], key=lambda i: i.get("order", 0))


@router.get("", response_model=List[ChecklistTemplateResponse])
def list_checklist_templates(
    type: Optional[ChecklistType] = Query(None),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    query = db.query(ChecklistTemplate).filter(ChecklistTemplate.is_active.is_(True))
    if type:
        query = query.filter(ChecklistTemplate.type == type.value)
    if category:
        query = query.filter(ChecklistTemplate.category == category)
    return query.order_by(ChecklistTemplate.name.asc()).all()


@router.get("/types", response_model=ChecklistTypes)
def checklist_types(_=Depends(get_current_user)):
    return {
        "types": [t.value for t in ChecklistType],
        "item_categories": [c.value for c in ItemCategory],
    }


@router.get("/{template_id}", response_model=ChecklistTemplateResponse)
def get_checklist_template(template_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return get_or_404(db, ChecklistTemplate, template_id, "Checklist template not found")


@router.post("", response_model=ChecklistTemplateResponse, status_code=status.HTTP_201_CREATED)
def create_checklist_template(
    payload: ChecklistTemplateCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_elevated),
):
    data = to_model_data(payload)
    data["items"] = _ordered_items(data.get("items"))
    template = ChecklistTemplate(**data, created_by_id=user.id)
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


@router.put("/{template_id}", response_model=ChecklistTemplateResponse)
def update_checklist_template(
    template_id: str,
    payload: ChecklistTemplateUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_elevated),
):
    template = get_or_404(db, ChecklistTemplate, template_id, "Checklist template not found")
    data = to_update_data(payload, ChecklistTemplate)
    if "items" in data:
        data["items"] = _ordered_items(data["items"])
    for key, value in data.items():
        setattr(template, key, value)
    template.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/{template_id}", response_model=MessageResponse)
def delete_checklist_template(template_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    template = get_or_404(db, ChecklistTemplate, template_id, "Checklist template not found")
    template.is_active = False
    template.updated_at = datetime.now(timezone.utc)
    db.commit()
    return {"message": "Checklist template deleted successfully"}
