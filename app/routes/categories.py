from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_admin, require_elevated
from ..db import get_db
from ..errors import Conflict, get_or_404
from ..models.models import Category
from ..schemas.assets import CategoryCreate, CategoryResponse, CategoryType
from ..schemas.common import MessageResponse, to_model_data


router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[CategoryResponse])
def list_categories(
    type: Optional[CategoryType] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    query = db.query(Category)
    if type:
        query = query.filter(Category.type == type.value)
    return query.order_by(Category.name.asc()).all()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), _=Depends(require_elevated)):
    if db.query(Category).filter(Category.name == payload.name).first():
        raise Conflict("Category already exists")
    category = Category(**to_model_data(payload))
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(category_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    category = get_or_404(db, Category, category_id, "Category not found")
    db.delete(category)
    db.commit()
    return {"message": "Category deleted successfully"}
