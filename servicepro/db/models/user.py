# servicepro/db/models/user.py
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from servicepro.db.base import Base

USER_ROLES = ("user", "provider", "admin", "evaluator")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    # role tag used by route guards; fine-grained access lives in user_roles
    role = Column(String, nullable=False, default="user", server_default="user")

    phone = Column(String, nullable=True)
    language = Column(String, nullable=False, default="ar", server_default="ar")
    photo = Column(String, nullable=True)

    reward_points = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # a provider account owns at most one listing
    provider_listing = relationship("ServiceProvider", back_populates="owner", uselist=False)
    user_roles = relationship(
        "UserRole",
        foreign_keys="UserRole.user_id",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def add_reward_points(self, points: int) -> int:
        self.reward_points = (self.reward_points or 0) + points
        return self.reward_points
