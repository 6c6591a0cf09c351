# servicepro/core/periods.py
from datetime import datetime, timedelta

PERIODS = ("daily", "weekly", "monthly", "quarterly", "yearly")


def _month_start(year: int, month: int) -> datetime:
    # month may run one past December
    if month > 12:
        year, month = year + 1, month - 12
    return datetime(year, month, 1)


def period_bounds(period: str = "monthly", now: datetime = None):
    """
    Return (start, end) for the reporting period containing `now`.
    The end is exclusive. Weeks start on Sunday.
    """
    now = now or datetime.utcnow()
    today = datetime(now.year, now.month, now.day)

    if period == "daily":
        return today, today + timedelta(days=1)
    if period == "weekly":
        # Monday is 0 in weekday(), Sunday 6
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=7)
    if period == "monthly":
        return _month_start(now.year, now.month), _month_start(now.year, now.month + 1)
    if period == "quarterly":
        first_month = (now.month - 1) // 3 * 3 + 1
        return _month_start(now.year, first_month), _month_start(now.year, first_month + 3)
    if period == "yearly":
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1)
    raise ValueError(f"Unknown period: {period}")
