# servicepro/services/quality.py
import logging
import statistics
from datetime import datetime

from sqlalchemy.orm import Session

from servicepro.core.periods import period_bounds
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.complaint import Complaint
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.quality import QualityScore
from servicepro.db.models.review import Review

logger = logging.getLogger(__name__)

# no response tracking yet, so every provider is credited with two hours
DEFAULT_RESPONSE_HOURS = 2

SQI_BUCKETS = (
    ("excellent", 90, 101),
    ("good", 70, 90),
    ("average", 50, 70),
    ("poor", 0, 50),
)


def get_current_score(db: Session, provider_id: int, period: str = "monthly", now=None):
    start, end = period_bounds(period, now)
    return db.query(QualityScore).filter(
        QualityScore.provider_id == provider_id,
        QualityScore.period == period,
        QualityScore.period_start >= start,
        QualityScore.period_end <= end,
        QualityScore.is_active.is_(True),
    ).order_by(QualityScore.updated_at.desc()).first()


def calculate_and_save_sqi(db: Session, provider: ServiceProvider, period: str = "monthly", now=None) -> QualityScore:
    """Aggregate the period's activity into the provider's score row and recompute SQI."""
    start, end = period_bounds(period, now)

    appointments = db.query(Appointment).filter(
        Appointment.provider_id == provider.id,
        Appointment.created_at >= start,
        Appointment.created_at < end,
    ).all()
    total = len(appointments)
    completed = len([a for a in appointments if a.status == "completed"])
    completion_rate = completed / total * 100 if total else 0

    reviews = db.query(Review).filter(
        Review.provider_id == provider.id,
        Review.created_at >= start,
        Review.created_at < end,
        Review.is_visible.is_(True),
    ).all()
    average_rating = sum(r.rating for r in reviews) / len(reviews) if reviews else 0

    complaints = db.query(Complaint).filter(
        Complaint.provider_id == provider.id,
        Complaint.created_at >= start,
        Complaint.created_at < end,
    ).count()
    complaint_rate = complaints / total * 100 if total else 0

    score = get_current_score(db, provider.id, period, now)
    if not score:
        score = QualityScore(provider_id=provider.id, user_id=provider.user_id, period=period)
        db.add(score)

    score.review_rating = average_rating
    score.appointment_completion_rate = completion_rate
    score.response_speed = DEFAULT_RESPONSE_HOURS
    score.average_response_time = DEFAULT_RESPONSE_HOURS
    score.complaint_rate = min(complaint_rate, 100)
    score.total_appointments = total
    score.completed_appointments = completed
    score.total_complaints = complaints
    score.period_start = start
    score.period_end = end
    score.is_active = True

    score.calculate_sqi()
    db.commit()
    db.refresh(score)
    logger.info("SQI for provider %s (%s) recalculated: %s", provider.id, period, score.sqi)
    return score


def build_recommendations(score: QualityScore):
    recommendations = []

    if score.review_rating < 4.0:
        recommendations.append({
            "category": "review_rating",
            "priority": "high",
            "title": "Improve Customer Satisfaction",
            "description": "Your average rating is below 4.0. Focus on service quality and customer experience.",
            "current_value": score.review_rating,
            "target_value": 4.5,
            "actions": [
                "Follow up with customers after appointments",
                "Ask for feedback and act on it",
                "Improve communication before and during service",
            ],
        })
    if score.appointment_completion_rate < 85:
        recommendations.append({
            "category": "completion_rate",
            "priority": "high",
            "title": "Increase Appointment Completion Rate",
            "description": "Your completion rate is below 85%. Reduce cancellations and no-shows.",
            "current_value": score.appointment_completion_rate,
            "target_value": 90,
            "actions": [
                "Send appointment reminders",
                "Keep your availability up to date",
                "Confirm pending appointments promptly",
            ],
        })
    if score.response_speed > 4:
        recommendations.append({
            "category": "response_speed",
            "priority": "medium",
            "title": "Improve Response Time",
            "description": "You take more than 4 hours to respond on average.",
            "current_value": score.response_speed,
            "target_value": 2,
            "actions": [
                "Set up automated responses",
                "Check messages at fixed times during the day",
            ],
        })
    if score.complaint_rate > 5:
        recommendations.append({
            "category": "complaint_rate",
            "priority": "high",
            "title": "Reduce Complaint Rate",
            "description": "Your complaint rate is above 5%. Address service issues proactively.",
            "current_value": score.complaint_rate,
            "target_value": 2,
            "actions": [
                "Implement quality control measures",
                "Address complaints immediately",
                "Conduct regular service audits",
            ],
        })
    if score.sqi < 70:
        recommendations.append({
            "category": "overall_quality",
            "priority": "high",
            "title": "Overall Quality Improvement Needed",
            "description": "Your Service Quality Index is below 70.",
            "current_value": score.sqi,
            "target_value": 80,
            "actions": [
                "Conduct a comprehensive service review",
                "Integrate customer feedback into your process",
            ],
        })

    summary = {"total_recommendations": len(recommendations)}
    for level in ("high", "medium", "low"):
        summary[f"{level}_priority"] = len([r for r in recommendations if r["priority"] == level])
    return recommendations, summary


def _mean(values):
    return round(statistics.fmean(values), 2) if values else 0


def _percentile(values, p):
    if not values:
        return 0
    if len(values) == 1:
        return values[0]
    # inclusive method keeps the result inside the observed range
    cuts = statistics.quantiles(values, n=100, method="inclusive")
    return round(cuts[int(p * 100) - 1], 2)


def sqi_distribution(scores):
    buckets = {name: 0 for name, _, _ in SQI_BUCKETS}
    for s in scores:
        for name, low, high in SQI_BUCKETS:
            if low <= s.sqi < high:
                buckets[name] += 1
                break
    return buckets


def quality_analytics(db: Session, start=None, end=None):
    q = db.query(QualityScore).filter(QualityScore.is_active.is_(True))
    if start:
        q = q.filter(QualityScore.created_at >= start)
    if end:
        q = q.filter(QualityScore.created_at <= end)
    scores = q.all()

    by_provider = {}
    for s in sorted(scores, key=lambda s: s.updated_at or s.created_at or datetime.min):
        by_provider.setdefault(s.provider_id, []).append(s)

    providers = []
    for provider_id, rows in by_provider.items():
        provider = rows[-1].provider
        providers.append({
            "provider_id": provider_id,
            "provider_name": provider.name if provider else None,
            "provider_category": provider.category if provider else None,
            "average_sqi": _mean([r.sqi for r in rows]),
            "latest_sqi": rows[-1].sqi,
            "total_scores": len(rows),
        })
    providers.sort(key=lambda p: p["latest_sqi"], reverse=True)

    by_category = {}
    for s in scores:
        if s.provider:
            by_category.setdefault(s.provider.category, []).append(s.sqi)

    return {
        "distribution": sqi_distribution(scores),
        "top_providers": providers[:10],
        "bottom_providers": list(reversed(providers[-10:])) if providers else [],
        "by_category": [
            {"category": c, "average_sqi": _mean(v), "provider_count": len(v)}
            for c, v in sorted(by_category.items())
        ],
        "metrics": {
            "average_sqi": _mean([s.sqi for s in scores]),
            "average_review_rating": _mean([s.review_rating for s in scores]),
            "average_completion_rate": _mean([s.appointment_completion_rate for s in scores]),
            "average_response_speed": _mean([s.response_speed for s in scores]),
            "average_complaint_rate": _mean([s.complaint_rate for s in scores]),
            "total_appointments": sum(s.total_appointments for s in scores),
            "total_completed_appointments": sum(s.completed_appointments for s in scores),
            "total_complaints": sum(s.total_complaints for s in scores),
        },
    }


def _benchmark(values):
    ordered = sorted(values)
    return {
        "average_sqi": _mean(ordered),
        "median_sqi": statistics.median(ordered) if ordered else 0,
        "p25_sqi": _percentile(ordered, 0.25),
        "p75_sqi": _percentile(ordered, 0.75),
        "p90_sqi": _percentile(ordered, 0.90),
    }


def quality_benchmarks(db: Session, period: str = "monthly", category=None):
    scores = db.query(QualityScore).filter(
        QualityScore.period == period,
        QualityScore.is_active.is_(True),
    ).all()

    overall = _benchmark([s.sqi for s in scores])
    overall.update({
        "average_review_rating": _mean([s.review_rating for s in scores]),
        "average_completion_rate": _mean([s.appointment_completion_rate for s in scores]),
        "average_response_speed": _mean([s.response_speed for s in scores]),
        "average_complaint_rate": _mean([s.complaint_rate for s in scores]),
    })

    grouped = {}
    for s in scores:
        if s.provider:
            grouped.setdefault(s.provider.category, []).append(s.sqi)

    all_categories = [
        {"category": c, "average_sqi": _mean(v), "median_sqi": statistics.median(v), "provider_count": len(v)}
        for c, v in grouped.items()
    ]
    all_categories.sort(key=lambda c: c["average_sqi"], reverse=True)

    selected = None
    if category and category in grouped:
        selected = _benchmark(grouped[category])
        selected.update({"category": category, "provider_count": len(grouped[category])})

    return {"overall": overall, "category": selected, "all_categories": all_categories}
