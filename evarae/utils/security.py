import logging
import secrets

from fastapi import HTTPException, Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from evarae.config import get_settings

logger = logging.getLogger(__name__)

http_basic = HTTPBasic()


def get_current_user(credentials: HTTPBasicCredentials = Depends(http_basic)) -> str:
    from evarae.models.user import SessionLocal, User
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == credentials.username).first()
        if not user or not secrets.compare_digest(user.password.encode(), credentials.password.encode()):
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return user.email
    finally:
        db.close()


def is_admin_email(email: str) -> bool:
    if not email:
        return False
    return email.lower() in get_settings().admin_emails or email.endswith("@admin")


def require_admin(current_user_email: str = Depends(get_current_user)) -> str:
    if not is_admin_email(current_user_email):
        logger.info("Rejected admin request from %s", current_user_email)
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user_email
