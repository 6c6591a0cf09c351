import os
from datetime import date, timedelta

# must be set before servicepro.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./servicepro_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SEED_RBAC_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from servicepro.core.security import create_access_token, hash_password
from servicepro.db.base import Base, get_db
from servicepro.db.models.appointment import Appointment
from servicepro.db.models.provider import ServiceProvider
from servicepro.db.models.user import User
from servicepro.main import app
from servicepro.services.rbac import assign_system_role, seed_default_rbac

PROVIDER_PAYLOAD = {
    "name": "Dr. Sara Haddad",
    "email": "clinic@example.com",
    "phone": "+961111111",
    "category": "healthcare",
    "subcategory": "Dentist",
    "location": "Beirut",
    "country": "Lebanon",
    "experience": 8,
    "price": 50.0,
    "price_unit": "per visit",
    "wait_time": "15 min",
    "bio": "General and cosmetic dentistry.",
    "languages": ["ar", "en"],
    "service_hours": "Mon-Fri 9-17",
}


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    seed_default_rbac(db)
    db.close()

    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def make_account(db, email, role="user", name=None, assign_role=True):
    """Insert an account directly and return (user, headers)."""
    user = User(email=email, name=name or email.split("@")[0].title(), password_hash=hash_password("secret123"), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    if assign_role:
        assign_system_role(db, user)
    return user, auth(create_access_token(user))


@pytest.fixture()
def customer(db):
    return make_account(db, "customer@example.com", "user", "Customer One")


@pytest.fixture()
def other_customer(db):
    return make_account(db, "customer2@example.com", "user", "Customer Two")


@pytest.fixture()
def admin(db):
    return make_account(db, "admin@example.com", "admin", "Admin")


@pytest.fixture()
def evaluator(db):
    return make_account(db, "evaluator@example.com", "evaluator", "Eva Luator")


@pytest.fixture()
def provider_account(db):
    return make_account(db, "provider@example.com", "provider", "Sara Haddad")


@pytest.fixture()
def listing(db, provider_account):
    """An approved, active provider listing owned by provider_account."""
    user, _ = provider_account
    provider = ServiceProvider(user_id=user.id, approval_status="approved", **PROVIDER_PAYLOAD)
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider


def make_appointment(db, user_id, provider_id, days_ahead=5, time="10:00", status="confirmed", **extra):
    appointment = Appointment(
        user_id=user_id,
        provider_id=provider_id,
        date=date.today() + timedelta(days=days_ahead),
        time=time,
        status=status,
        total_amount=50.0,
        **extra,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment
