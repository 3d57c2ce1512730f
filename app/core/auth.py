import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.security import decode_token
from app.models.user import User, UserRole

log = structlog.get_logger(__name__)

bearer = HTTPBearer(auto_error=False)

# dispatch desk: may open requests for anyone, assign wreckers and complete tows
STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST)


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        user_id = decode_token(creds.credentials)["sub"]
    except JWTError as e:
        log.info("token_rejected", error=str(e))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")

    return user


def require_roles(*roles: UserRole):
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            log.info("role_denied", actor_id=user.id, role=user.role.value, required=[r.value for r in roles])
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return _guard


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES
