# servicepro/api/routes/quality.py
import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from servicepro.api.deps import get_provider_or_404
from servicepro.core.rbac import require_any_role, require_permission
from servicepro.core.security import get_current_user, require_admin
from servicepro.db.base import get_db
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.quality import QualityScore
from servicepro.db.models.user import User
from servicepro.schemas.quality import (
    CalculateRequest,
    Period,
    QualityScoreListResponse,
    QualityScoreResponse,
    RecommendationsResponse,
)
from servicepro.services.notifications import create_notification
from servicepro.services.quality import (
    build_recommendations,
    calculate_and_save_sqi,
    get_current_score,
    quality_analytics,
    quality_benchmarks,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quality", tags=["quality"])


def ensure_can_view_provider(db: Session, provider_id: int, user: User):
    if user.role in ("admin", "evaluator"):
        return
    own = db.query(ServiceProvider).filter(ServiceProvider.user_id == user.id).first()
    if not own or own.id != provider_id:
        raise HTTPException(status_code=403, detail="Not authorized to view this provider's quality scores")


@router.get("/scores", response_model=QualityScoreListResponse)
def list_scores(
    provider_id: Optional[int] = Query(None),
    period: Period = Query("monthly"),
    min_sqi: Optional[float] = Query(None, ge=0, le=100),
    max_sqi: Optional[float] = Query(None, ge=0, le=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = db.query(QualityScore).filter(QualityScore.period == period, QualityScore.is_active.is_(True))

    # providers only ever see their own listing's scores
    if current_user.role == "provider":
        own = db.query(ServiceProvider).filter(ServiceProvider.user_id == current_user.id).first()
        if not own:
            raise HTTPException(status_code=404, detail="Provider profile not found")
        provider_id = own.id
    elif current_user.role not in ("admin", "evaluator"):
        raise HTTPException(status_code=403, detail="Not authorized to view quality scores")

    if provider_id:
        q = q.filter(QualityScore.provider_id == provider_id)
    if min_sqi is not None:
        q = q.filter(QualityScore.sqi >= min_sqi)
    if max_sqi is not None:
        q = q.filter(QualityScore.sqi <= max_sqi)

    total = q.count()
    items = q.order_by(QualityScore.sqi.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
        "items": items,
    }


@router.get("/scores/current/{provider_id}", response_model=QualityScoreResponse)
def current_score(
    provider_id: int,
    period: Period = Query("monthly"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_can_view_provider(db, provider_id, current_user)
    score = get_current_score(db, provider_id, period)
    if not score:
        raise HTTPException(status_code=404, detail="No quality score found for this period")
    return score


@router.post(
    "/scores/calculate/{provider_id}",
    response_model=QualityScoreResponse,
    dependencies=[Depends(require_any_role("admin", "evaluator"))],
)
def calculate_score(
    provider_id: int,
    payload: Optional[CalculateRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("quality_scores", "create")),
):
    provider = get_provider_or_404(db, provider_id)
    period = payload.period if payload else "monthly"

    score = calculate_and_save_sqi(db, provider, period)
    create_notification(
        db,
        recipient_id=provider.user_id,
        sender_id=current_user.id,
        notification_type="quality_score_update",
        title="Quality score updated",
        message=f"Your {period} Service Quality Index is {score.sqi}",
        related_entity_type="provider",
        related_entity_id=provider.id,
        priority="low",
    )
    logger.info("Quality score for provider %s calculated by user %s", provider.id, current_user.id)
    return score


@router.get("/recommendations/{provider_id}", response_model=RecommendationsResponse)
def recommendations(
    provider_id: int,
    period: Period = Query("monthly"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = get_provider_or_404(db, provider_id)
    if current_user.role != "admin" and provider.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to view these recommendations")

    score = get_current_score(db, provider_id, period)
    if not score:
        raise HTTPException(status_code=404, detail="No quality score found for this period")

    items, summary = build_recommendations(score)
    return {"provider_id": provider_id, "sqi": score.sqi, "recommendations": items, "summary": summary}


@router.get("/analytics")
def analytics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return quality_analytics(db, start_date, end_date)


@router.get("/benchmarks")
def benchmarks(
    period: Period = Query("monthly"),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return quality_benchmarks(db, period, category)
