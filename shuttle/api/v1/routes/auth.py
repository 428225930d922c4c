import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from shuttle.db.session import get_db
from shuttle.schemas.auth import LoginRequest, RefreshRequest, TokenPair
from shuttle.models.user import User
from shuttle.core.security import REFRESH, verify_password, create_access_token, create_refresh_token
from shuttle.api.deps import get_current_user, user_from_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _token_pair(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/auth/login", response_model=TokenPair)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(body.password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return _token_pair(user)


@router.post("/auth/refresh", response_model=TokenPair)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    return _token_pair(user_from_token(body.refresh_token, db, token_type=REFRESH))


@router.get("/auth/me")
def me(me: User = Depends(get_current_user)):
    """Current account, including role (admin screens key off it)."""
    return {
        "id": me.id,
        "email": me.email,
        "fullName": me.full_name or "",
        "phone": me.phone or "",
        "role": me.role,
        "lastLoginAt": me.last_login_at.isoformat() if me.last_login_at else None,
    }
