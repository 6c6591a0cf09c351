# servicepro/schemas/category.py
from typing import List, Optional

from pydantic import BaseModel, Field


class Subcategory(BaseModel):
    name: str
    name_ar: str
    name_de: str


class CategoryCreate(BaseModel):
    key: str = Field(..., pattern=r"^[a-z0-9_-]+$")
    name: str
    name_ar: str
    name_de: str
    icon: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    description_de: Optional[str] = None
    subcategories: List[Subcategory] = []
    sort_order: int = 0
    image: str = ""
    color: str = "#3B82F6"


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    name_ar: Optional[str] = None
    name_de: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    description_de: Optional[str] = None
    subcategories: Optional[List[Subcategory]] = None
    sort_order: Optional[int] = None
    image: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    key: str
    name: str
    name_ar: str
    name_de: str
    icon: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    description_de: Optional[str] = None
    subcategories: list
    is_active: bool
    sort_order: int
    image: Optional[str] = None
    color: Optional[str] = None
    provider_count: int

    class Config:
        from_attributes = True


class LocalizedSubcategory(BaseModel):
    name: str
    original_name: str


class LocalizedCategory(BaseModel):
    id: int
    key: str
    name: str
    description: Optional[str] = None
    icon: str
    color: Optional[str] = None
    image: Optional[str] = None
    subcategories: List[LocalizedSubcategory]
    provider_count: int
