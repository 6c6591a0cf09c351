# servicepro/api/routes/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from servicepro.core.security import create_access_token, get_current_user, hash_password, verify_password
from servicepro.db.base import get_db
from servicepro.db.models.user import User
from servicepro.schemas.user import TokenResponse, UserCreate, UserLogin, UserResponse, UserUpdate
from servicepro.services.rbac import assign_system_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# only these can be chosen at sign-up; admins and evaluators are appointed
SELF_SERVICE_ROLES = ("user", "provider")


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    email = user.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    new_user = User(
        email=email,
        name=user.name.strip(),
        password_hash=hash_password(user.password),
        phone=user.phone,
        role=user.role if user.role in SELF_SERVICE_ROLES else "user",
        language=user.language,
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    assign_system_role(db, new_user)
    logger.info("Registered %s account %s", new_user.role, new_user.id)

    return {"access_token": create_access_token(new_user), "user": new_user}


@router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning("Failed login for %s", credentials.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return {"access_token": create_access_token(user), "user": user}


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return current_user
