# servicepro/db/models/category.py
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from servicepro.db.base import Base
from servicepro.core.i18n import normalize_language, pick_localized


class ServiceCategory(Base):
    """
    Top-level marketplace category (healthcare, restaurants, ...).
    `key` is the stable slug providers reference; subcategories are stored
    as a JSON list of {"name", "name_ar", "name_de"}.
    """
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True, nullable=False)

    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=False)
    name_de = Column(String, nullable=False)
    icon = Column(String, nullable=False)

    description = Column(String, nullable=True)
    description_ar = Column(String, nullable=True)
    description_de = Column(String, nullable=True)

    subcategories = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    image = Column(String, default="")
    color = Column(String, default="#3B82F6")
    provider_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def localized_name(self, language: str = "ar") -> str:
        return pick_localized(self, "name", language)

    def localized_description(self, language: str = "ar"):
        return pick_localized(self, "description", language)

    def localized_subcategories(self, language: str = "ar"):
        language = normalize_language(language)
        result = []
        for sub in self.subcategories or []:
            suffix = "" if language == "en" else f"_{language}"
            result.append({
                "name": sub.get(f"name{suffix}") or sub.get("name"),
                "original_name": sub.get("name"),
            })
        return result
