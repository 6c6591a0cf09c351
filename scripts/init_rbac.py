#!/usr/bin/env python3
"""Create tables, seed the permission catalog and system roles, optionally bootstrap an admin."""
import argparse
import logging

from servicepro.core.security import hash_password
from servicepro.db.base import Base, SessionLocal, engine
from servicepro.db.models import appointment, availability, blog, category, complaint  # noqa: F401
from servicepro.db.models import meeting, messaging, notification, provider, quality, rbac, review  # noqa: F401
from servicepro.db.models.user import User
from servicepro.services.rbac import assign_system_role, role_statistics, seed_default_rbac

logger = logging.getLogger("init_rbac")


def parse_args():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email", help="create (or promote) this account as admin")
    parser.add_argument("--admin-password", help="password for a newly created admin")
    parser.add_argument("--admin-name", default="Administrator")
    return parser.parse_args()


def ensure_admin(db, email: str, password, name: str) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user:
        user.role = "admin"
    else:
        if not password:
            raise SystemExit("--admin-password is required to create a new admin")
        user = User(email=email.lower(), name=name, password_hash=hash_password(password), role="admin")
        db.add(user)
    db.commit()
    db.refresh(user)
    assign_system_role(db, user)
    return user


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args = parse_args()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        roles = seed_default_rbac(db)
        logger.info("System roles: %s", ", ".join(r.name for r in roles))
        if args.admin_email:
            admin = ensure_admin(db, args.admin_email, args.admin_password, args.admin_name)
            logger.info("Admin account ready: %s (id %s)", admin.email, admin.id)
        for row in role_statistics(db):
            logger.info("%-10s active=%d expired=%d", row["role"], row["active_assignments"], row["expired_assignments"])
    finally:
        db.close()


if __name__ == "__main__":
    main()
