from datetime import datetime, timedelta

import pytest

from servicepro.core.i18n import normalize_language, pick_localized
from servicepro.core.periods import period_bounds
from servicepro.db.models.appointment import Appointment, AppointmentNote
from servicepro.db.models.blog import BlogPost, slugify
from servicepro.db.models.category import ServiceCategory
from servicepro.db.models.complaint import Complaint
from servicepro.db.models.meeting import Meeting, build_meeting_url
from servicepro.db.models.messaging import Conversation, Message
from servicepro.db.models.notification import Notification
from servicepro.db.models.provider import ProviderProfile, ServiceProvider
from servicepro.db.models.quality import QualityScore
from servicepro.db.models.rbac import UserRole

NOW = datetime(2026, 3, 10, 12, 0)  # a Tuesday


def appointment_at(start: datetime, status="confirmed"):
    return Appointment(date=start.date(), time=start.strftime("%H:%M"), status=status)


# ---- appointments ----

def test_confirmed_appointment_more_than_a_day_away_can_be_cancelled():
    assert appointment_at(NOW + timedelta(hours=25)).can_be_cancelled(NOW)


def test_cancellation_closes_24_hours_before_start():
    assert not appointment_at(NOW + timedelta(hours=24)).can_be_cancelled(NOW)
    assert not appointment_at(NOW + timedelta(hours=3)).can_be_cancelled(NOW)


@pytest.mark.parametrize("status", ["pending", "completed", "cancelled", "no-show"])
def test_only_confirmed_appointments_can_be_cancelled(status):
    assert not appointment_at(NOW + timedelta(days=3), status=status).can_be_cancelled(NOW)


def test_reschedule_window():
    assert appointment_at(NOW + timedelta(hours=3), status="pending").can_be_rescheduled(NOW)
    assert not appointment_at(NOW + timedelta(hours=1), status="confirmed").can_be_rescheduled(NOW)
    assert not appointment_at(NOW + timedelta(days=2), status="completed").can_be_rescheduled(NOW)


def test_appointment_times_and_cancel():
    a = appointment_at(datetime(2026, 3, 12, 9, 30))
    assert a.duration == 60
    assert a.ends_at == datetime(2026, 3, 12, 10, 30)

    a.cancel("sick", "user")
    assert a.status == "cancelled"
    assert a.cancelled_by == "user"
    assert a.cancelled_at is not None


def test_note_visibility():
    note = AppointmentNote(user_id=7, is_private=False, is_visible_to_patient=True)
    assert note.is_visible_to(7)
    assert not note.is_visible_to(8)
    note.is_private = True
    assert not note.is_visible_to(7)


# ---- quality ----

def make_score(rating, completion, speed, complaints):
    return QualityScore(
        review_rating=rating,
        appointment_completion_rate=completion,
        response_speed=speed,
        complaint_rate=complaints,
    )


def test_sqi_weighted_sum():
    # 4.5/5*100*0.4 + 90*0.3 + (100 - 2/24*100)*0.2 + (100 - 5)*0.1 = 36 + 27 + 18.33 + 9.5
    assert make_score(4.5, 90, 2, 5).calculate_sqi() == 91


def test_sqi_bounds():
    assert make_score(5, 100, 0, 0).calculate_sqi() == 100
    assert make_score(0, 0, 48, 100).calculate_sqi() == 0


def test_sqi_rounds_ties_up():
    # 15 * 0.3 = 4.5 with every other component at zero
    assert make_score(0, 15, 24, 100).calculate_sqi() == 5


def test_sqi_is_idempotent():
    score = make_score(3.2, 70, 6, 12)
    first = score.calculate_sqi()
    assert score.calculate_sqi() == first
    assert score.sqi == first


# ---- complaints ----

def test_escalation_raises_priority_and_caps_level():
    c = Complaint(escalation_level=0, priority="medium", status="pending")
    c.escalate("no response")
    assert (c.escalation_level, c.priority, c.status) == (1, "high", "escalated")
    c.escalate("still no response")
    assert (c.escalation_level, c.priority) == (2, "urgent")
    c.escalate("again")
    c.escalate("and again")
    assert c.escalation_level == 3


def test_complaint_resolution_hours_and_age():
    c = Complaint(created_at=NOW - timedelta(hours=30), status="pending")
    assert c.resolution_hours is None
    assert c.age_in_days(NOW) == 2

    c.resolve("refunded", admin_id=1, compensation_type="refund", compensation_amount=20)
    c.resolved_at = NOW
    assert c.status == "resolved"
    assert c.resolution_hours == pytest.approx(30)


# ---- rbac ----

def test_user_role_status_and_expiry():
    role = UserRole(is_active=True, expires_at=datetime.utcnow() + timedelta(days=2, hours=1))
    assert role.status == "active"
    assert role.days_until_expiration == 3

    role.expires_at = datetime.utcnow() - timedelta(minutes=1)
    assert role.is_expired()
    assert role.status == "expired"

    role.is_active = False
    assert role.status == "inactive"


def test_user_role_audit_trail():
    role = UserRole(is_active=True, role_data={"organization": "Clinic A"})
    role.deactivate(1, "paused")
    role.activate(1, "resumed")
    role.update_role_data({"region": "north"}, 1)
    assert [a.action for a in role.audit_log] == ["deactivated", "activated", "updated"]
    assert role.role_data == {"organization": "Clinic A", "region": "north"}


# ---- meetings, blog, periods, i18n ----

def test_meeting_urls():
    assert build_meeting_url("zoom", "abc") == "https://zoom.us/j/abc"
    assert build_meeting_url("teams", "abc") == "https://teams.microsoft.com/l/meetup-join/abc"
    assert build_meeting_url("google_meet", "abc") == "https://meet.google.com/abc"
    assert build_meeting_url("custom", "abc") == "/meetings/abc"


def test_meeting_generate_link_and_upcoming():
    m = Meeting(platform="zoom", meeting_id="m1", status="scheduled", scheduled_at=NOW + timedelta(hours=1), duration=90)
    assert m.generate_link() == "https://zoom.us/j/m1"
    assert m.is_upcoming(NOW)
    assert m.duration_in_hours == 1.5
    m.start()
    assert not m.is_upcoming(NOW)


def test_slugify():
    assert slugify("  Top 10 Tips: Healthy   Teeth! ") == "top-10-tips-healthy-teeth"
    assert slugify("a -- b") == "a-b"


def test_blog_publish_keeps_first_date():
    post = BlogPost(status="draft")
    post.publish()
    first = post.published_at
    post.publish()
    assert post.status == "published"
    assert post.published_at == first


def test_period_bounds():
    assert period_bounds("daily", NOW) == (datetime(2026, 3, 10), datetime(2026, 3, 11))
    # weeks start on Sunday
    assert period_bounds("weekly", NOW) == (datetime(2026, 3, 8), datetime(2026, 3, 15))
    assert period_bounds("monthly", datetime(2026, 12, 5)) == (datetime(2026, 12, 1), datetime(2027, 1, 1))
    assert period_bounds("quarterly", NOW) == (datetime(2026, 1, 1), datetime(2026, 4, 1))
    assert period_bounds("yearly", NOW) == (datetime(2026, 1, 1), datetime(2027, 1, 1))
    with pytest.raises(ValueError):
        period_bounds("hourly", NOW)


def test_localized_lookup_falls_back_to_english():
    category = ServiceCategory(name="Health", name_ar="صحة", name_de=None)
    assert pick_localized(category, "name", "ar") == "صحة"
    assert pick_localized(category, "name", "de") == "Health"
    assert pick_localized(category, "name", "en") == "Health"
    assert normalize_language("fr") == "ar"


# ---- misc model helpers ----

def test_provider_average_rating_and_profile_address():
    p = ServiceProvider(rating=4.3, review_count=0, is_active=True, approval_status="pending")
    assert p.average_rating == 0
    assert not p.is_bookable
    p.review_count = 3
    p.approval_status = "approved"
    assert p.average_rating == 4.3
    assert p.is_bookable

    profile = ProviderProfile(street="Main St 1", city="Beirut", state=" ", country="Lebanon")
    assert profile.full_address == "Main St 1, Beirut, Lebanon"


def test_message_edit_and_reactions():
    m = Message(text="hello", sender_id=1, recipient_id=2)
    m.reactions = []
    m.edit("hello there")
    m.edit("hello again")
    assert m.original_content == "hello"
    assert m.is_edited

    m.add_reaction(2, "👍")
    m.add_reaction(2, "❤️")
    assert [(r.user_id, r.emoji) for r in m.reactions] == [(2, "❤️")]
    m.remove_reaction(2)
    assert m.reactions == []


def test_conversation_preview_is_truncated():
    c = Conversation(message_count=0)
    c.update_last_message(Message(id=1, text="x" * 150, sender_id=1))
    assert len(c.last_message_content) == 100
    assert c.message_count == 1


def test_notification_retry_limit():
    n = Notification(retry_count=0, max_retries=2, status="failed")
    assert n.retry()
    assert n.retry()
    assert not n.retry()
    assert n.retry_count == 2
