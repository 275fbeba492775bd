from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from dentalcare.core.security import decode_access_token
from dentalcare.core.settings import settings
from dentalcare.db.row_store import RowStore
from dentalcare.db.session import get_db
from dentalcare.models.user import Role, User


@dataclass(frozen=True)
class SessionContext:
    """Authenticated user plus the bearer token that proved it.

    Built per request from the Authorization header; a token stops producing
    a context once the user signs out (``token_version`` moves on).
    """

    user: User
    token: str

    @property
    def user_id(self) -> int:
        return self.user.id


def get_session_context(
    db: Session = Depends(get_db), authorization: str | None = Header(default=None)
) -> SessionContext:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = decode_access_token(token, secret=settings.secret_key, alg=settings.jwt_alg)
        sub = payload.get("sub")
        if not sub:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        user_id = int(sub)
        token_version = int(payload.get("ver", 0))
    except (JWTError, ValueError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.scalar(select(User).where(User.id == user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    if token_version != user.token_version:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")
    return SessionContext(user=user, token=token)


def get_current_user(ctx: SessionContext = Depends(get_session_context)) -> User:
    return ctx.user


def require_roles(*roles: Role):
    def _inner(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return _inner


def get_row_store(db: Session = Depends(get_db)) -> RowStore:
    return RowStore(db)


require_admin = require_roles(Role.admin)
