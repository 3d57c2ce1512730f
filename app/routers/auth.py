import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.security import create_access_token, token_lifetime, verify_password
from app.models.user import User
from app.schemas.auth import LoginRequest, TokenResponse

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.phone == payload.phone).first()
    if not user or not verify_password(payload.password, user.password_hash):
        log.info("login_failed", phone=payload.phone)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is inactive")
    return TokenResponse(
        access_token=create_access_token(subject=user.id, role=user.role.value),
        expires_in=int(token_lifetime().total_seconds()),
        user_id=user.id,
        role=user.role,
    )
