from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from template_market.config import bearer_scheme
from template_market.database import get_db
from template_market.models.user import User
from template_market.services.auth_service import InvalidTokenError, token_issuer


def _resolve_user(token: str, db: Session) -> User:
    try:
        user_id = token_issuer.verify_token(token)
    except InvalidTokenError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    # Logout and password reset clear the stored token.
    if user.token != token:
        raise HTTPException(status_code=401, detail="Session expired or logged out")

    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authorization token is missing")
    return _resolve_user(credentials.credentials, db)


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User | None:
    """Resolve the caller when a bearer token is sent, otherwise ``None``."""
    if credentials is None or not credentials.credentials:
        return None
    return _resolve_user(credentials.credentials, db)
