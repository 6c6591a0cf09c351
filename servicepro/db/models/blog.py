# servicepro/db/models/blog.py
import re
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from servicepro.core.i18n import pick_localized
from servicepro.db.base import Base

BLOG_CATEGORIES = ("healthcare", "lifestyle", "tips", "news", "education", "general")
BLOG_STATUSES = ("draft", "published", "archived")


def slugify(title: str) -> str:
    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    title_ar = Column(String(200), nullable=False)
    title_de = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    content_ar = Column(Text, nullable=False)
    content_de = Column(Text, nullable=False)
    excerpt = Column(String(500), nullable=True)
    excerpt_ar = Column(String(500), nullable=True)
    excerpt_de = Column(String(500), nullable=True)

    author = Column(String, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    image = Column(String, nullable=False)
    category = Column(String, nullable=False, default="general", index=True)
    tags = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default="draft", index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)

    slug = Column(String, unique=True, index=True, nullable=False)
    seo_title = Column(String(60), nullable=True)
    seo_description = Column(String(160), nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def localized_title(self, language="ar"):
        return pick_localized(self, "title", language)

    def localized_content(self, language="ar"):
        return pick_localized(self, "content", language)

    def localized_excerpt(self, language="ar"):
        return pick_localized(self, "excerpt", language)

    def publish(self):
        self.status = "published"
        if not self.published_at:
            self.published_at = datetime.utcnow()
