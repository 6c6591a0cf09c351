# servicepro/api/routes/blog_posts.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from servicepro.core.security import get_current_user, get_optional_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.blog import BlogPost, slugify
from servicepro.db.models.user import User
from servicepro.schemas.blog import BlogPostCreate, BlogPostResponse, BlogPostUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog-posts", tags=["blog"])


def localize(post: BlogPost, lang: str) -> dict:
    return {
        "id": post.id,
        "slug": post.slug,
        "title": post.localized_title(lang),
        "content": post.localized_content(lang),
        "excerpt": post.localized_excerpt(lang),
        "author": post.author,
        "image": post.image,
        "category": post.category,
        "tags": post.tags or [],
        "status": post.status,
        "is_featured": post.is_featured,
        "view_count": post.view_count or 0,
        "like_count": post.like_count or 0,
        "seo_title": post.seo_title,
        "seo_description": post.seo_description,
        "published_at": post.published_at,
        "created_at": post.created_at,
    }


def unique_slug(db: Session, base: str, exclude_id=None) -> str:
    base = base or "post"
    slug, n = base, 2
    while True:
        q = db.query(BlogPost).filter(BlogPost.slug == slug)
        if exclude_id is not None:
            q = q.filter(BlogPost.id != exclude_id)
        if not q.first():
            return slug
        slug = f"{base}-{n}"
        n += 1


def get_post_or_404(db: Session, post_id: int) -> BlogPost:
    post = db.query(BlogPost).filter(BlogPost.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return post


def visible_to(post: BlogPost, user: Optional[User]) -> bool:
    return post.status == "published" or (user is not None and user.role == "admin")


# ---- Public ----

@router.get("/", response_model=List[BlogPostResponse])
def list_posts(
    category: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status", description="admins only"),
    lang: str = Query("ar"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    q = db.query(BlogPost)
    if current_user is not None and current_user.role == "admin":
        if status_filter:
            q = q.filter(BlogPost.status == status_filter)
    else:
        q = q.filter(BlogPost.status == "published")
    if category:
        q = q.filter(BlogPost.category == category)

    posts = q.order_by(BlogPost.published_at.desc(), BlogPost.id.desc()).all()
    if tag:
        # tags are a JSON list
        posts = [p for p in posts if tag in (p.tags or [])]
    posts = posts[(page - 1) * per_page: page * per_page]
    return [localize(p, lang) for p in posts]


@router.get("/featured", response_model=List[BlogPostResponse])
def featured_posts(lang: str = Query("ar"), limit: int = Query(3, ge=1, le=20), db: Session = Depends(get_db)):
    posts = db.query(BlogPost).filter(
        BlogPost.status == "published", BlogPost.is_featured.is_(True)
    ).order_by(BlogPost.published_at.desc()).limit(limit).all()
    return [localize(p, lang) for p in posts]


@router.get("/slug/{slug}", response_model=BlogPostResponse)
def get_post_by_slug(
    slug: str,
    lang: str = Query("ar"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    post = db.query(BlogPost).filter(BlogPost.slug == slug).first()
    if not post or not visible_to(post, current_user):
        raise HTTPException(status_code=404, detail="Blog post not found")
    return localize(post, lang)


@router.get("/{post_id}", response_model=BlogPostResponse)
def get_post(
    post_id: int,
    lang: str = Query("ar"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    post = get_post_or_404(db, post_id)
    if not visible_to(post, current_user):
        raise HTTPException(status_code=404, detail="Blog post not found")
    post.view_count = (post.view_count or 0) + 1
    db.commit()
    db.refresh(post)
    return localize(post, lang)


@router.post("/{post_id}/like", response_model=BlogPostResponse)
def like_post(
    post_id: int,
    lang: str = Query("ar"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = get_post_or_404(db, post_id)
    if post.status != "published":
        raise HTTPException(status_code=404, detail="Blog post not found")
    post.like_count = (post.like_count or 0) + 1
    db.commit()
    db.refresh(post)
    return localize(post, lang)


# ---- Admin ----

@router.post("/", response_model=BlogPostResponse, status_code=status.HTTP_201_CREATED)
def create_post(payload: BlogPostCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    data = payload.model_dump(exclude={"slug"})
    post = BlogPost(author_id=admin.id, **data)
    post.slug = unique_slug(db, slugify(payload.slug or payload.title))
    if post.status == "published":
        post.publish()
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("Blog post %s (%s) created by admin %s", post.id, post.slug, admin.id)
    return localize(post, "en")


@router.put("/{post_id}", response_model=BlogPostResponse)
def update_post(
    post_id: int,
    payload: BlogPostUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    post = get_post_or_404(db, post_id)
    updates = payload.model_dump(exclude_none=True)
    for field, value in updates.items():
        setattr(post, field, value)
    if "title" in updates:
        post.slug = unique_slug(db, slugify(post.title), exclude_id=post.id)
    if updates.get("status") == "published":
        post.publish()
    db.commit()
    db.refresh(post)
    return localize(post, "en")


@router.delete("/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    post = get_post_or_404(db, post_id)
    db.delete(post)
    db.commit()
    logger.info("Blog post %s deleted by admin %s", post_id, admin.id)
    return {"message": "Blog post deleted successfully"}
