from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session
from shuttle.db.session import get_db
from shuttle.core.security import ACCESS, decode_token
from shuttle.models.user import ADMIN, SUPERADMIN, User

bearer = HTTPBearer(auto_error=False)

ADMIN_ROLES = (ADMIN, SUPERADMIN)

def user_from_token(token: str, db: Session, token_type: str = ACCESS) -> User:
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != token_type:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_from_token(creds.credentials, db)

def get_optional_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User | None:
    """Bookings work for guests; a bearer token links the booking to the account."""
    if not creds:
        return None
    return user_from_token(creds.credentials, db)

def require_roles(*roles: str):
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard

admin_only = require_roles(*ADMIN_ROLES)
