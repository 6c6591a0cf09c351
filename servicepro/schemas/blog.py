# servicepro/schemas/blog.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

BlogCategory = Literal["healthcare", "lifestyle", "tips", "news", "education", "general"]
BlogStatus = Literal["draft", "published", "archived"]


class BlogPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    title_ar: str = Field(..., min_length=1, max_length=200)
    title_de: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    content_ar: str = Field(..., min_length=1, max_length=10000)
    content_de: str = Field(..., min_length=1, max_length=10000)
    excerpt: Optional[str] = Field(None, max_length=500)
    excerpt_ar: Optional[str] = Field(None, max_length=500)
    excerpt_de: Optional[str] = Field(None, max_length=500)
    author: str
    image: str
    category: BlogCategory = "general"
    tags: List[str] = []
    status: BlogStatus = "draft"
    is_featured: bool = False
    slug: Optional[str] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    title_ar: Optional[str] = Field(None, max_length=200)
    title_de: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, max_length=10000)
    content_ar: Optional[str] = Field(None, max_length=10000)
    content_de: Optional[str] = Field(None, max_length=10000)
    excerpt: Optional[str] = Field(None, max_length=500)
    excerpt_ar: Optional[str] = Field(None, max_length=500)
    excerpt_de: Optional[str] = Field(None, max_length=500)
    author: Optional[str] = None
    image: Optional[str] = None
    category: Optional[BlogCategory] = None
    tags: Optional[List[str]] = None
    status: Optional[BlogStatus] = None
    is_featured: Optional[bool] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)


class BlogPostResponse(BaseModel):
    id: int
    slug: str
    title: str
    content: str
    excerpt: Optional[str] = None
    author: str
    image: str
    category: str
    tags: List[str]
    status: str
    is_featured: bool
    view_count: int
    like_count: int
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
