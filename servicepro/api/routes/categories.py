# servicepro/api/routes/categories.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.core.security import require_admin
from servicepro.db.base import get_db
from servicepro.db.models.category import ServiceCategory
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.user import User
from servicepro.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate, LocalizedCategory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])


def localize(category: ServiceCategory, lang: str) -> dict:
    return {
        "id": category.id,
        "key": category.key,
        "name": category.localized_name(lang),
        "description": category.localized_description(lang),
        "icon": category.icon,
        "color": category.color,
        "image": category.image,
        "subcategories": category.localized_subcategories(lang),
        "provider_count": category.provider_count or 0,
    }


def get_category_or_404(db: Session, key: str) -> ServiceCategory:
    category = db.query(ServiceCategory).filter(ServiceCategory.key == key).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


def count_listed_providers(db: Session, key: str) -> int:
    return db.query(ServiceProvider).filter(
        ServiceProvider.category == key,
        ServiceProvider.is_active.is_(True),
        ServiceProvider.approval_status == "approved",
    ).count()


def refresh_provider_count(db: Session, key: str):
    category = db.query(ServiceCategory).filter(ServiceCategory.key == key).first()
    if category:
        category.provider_count = count_listed_providers(db, key)
    return category


# ---- Public ----

@router.get("/", response_model=List[LocalizedCategory])
def list_categories(lang: Optional[str] = Query("ar"), db: Session = Depends(get_db)):
    categories = db.query(ServiceCategory).filter(
        ServiceCategory.is_active.is_(True)
    ).order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc()).all()
    return [localize(c, lang) for c in categories]


@router.get("/{key}", response_model=LocalizedCategory)
def get_category(key: str, lang: Optional[str] = Query("ar"), db: Session = Depends(get_db)):
    category = db.query(ServiceCategory).filter(
        ServiceCategory.key == key, ServiceCategory.is_active.is_(True)
    ).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return localize(category, lang)


# ---- Admin ----

@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if db.query(ServiceCategory).filter(ServiceCategory.key == payload.key).first():
        raise HTTPException(status_code=400, detail="Category ID already exists")

    data = payload.model_dump()
    category = ServiceCategory(**data)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Category %s created by admin %s", category.key, admin.id)
    return category


@router.put("/{key}", response_model=CategoryResponse)
def update_category(
    key: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = get_category_or_404(db, key)
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{key}")
def delete_category(key: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    category = get_category_or_404(db, key)

    in_use = db.query(ServiceProvider).filter(ServiceProvider.category == key).count()
    if in_use:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete category. It has {in_use} service providers.",
        )

    db.delete(category)
    db.commit()
    logger.info("Category %s deleted by admin %s", key, admin.id)
    return {"message": "Category deleted successfully"}


@router.put("/{key}/toggle", response_model=CategoryResponse)
def toggle_category(key: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    category = get_category_or_404(db, key)
    category.is_active = not category.is_active
    db.commit()
    db.refresh(category)
    return category


@router.put("/{key}/provider-count", response_model=CategoryResponse)
def update_provider_count(key: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    category = get_category_or_404(db, key)
    category.provider_count = count_listed_providers(db, key)
    db.commit()
    db.refresh(category)
    return category
