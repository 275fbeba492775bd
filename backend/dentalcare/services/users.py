from __future__ import annotations

from datetime import datetime, timezone
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dentalcare.core.security import hash_password
from dentalcare.models.user import Role, User


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower().strip()))


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str = "",
    last_name: str = "",
    role: Role = Role.staff,
    is_active: bool = True,
    must_change_password: bool = False,
) -> User:
    now = datetime.now(timezone.utc)
    user = User(
        email=email.lower().strip(),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=is_active,
        must_change_password=must_change_password,
        hashed_password=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def user_count(db: Session) -> int:
    return int(db.scalar(select(func.count(User.id))) or 0)


def seed_initial_admin(db: Session, *, email: str, password: str) -> bool:
    if user_count(db) > 0:
        return False
    create_user(
        db,
        email=email,
        password=password,
        first_name="Admin",
        role=Role.admin,
        is_active=True,
        must_change_password=True,
    )
    return True


def update_profile(
    db: Session,
    *,
    user: User,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    if first_name is not None:
        user.first_name = first_name.strip()
    if last_name is not None:
        user.last_name = last_name.strip()
    user.updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_password(db: Session, *, user: User, new_password: str) -> User:
    user.hashed_password = hash_password(new_password)
    user.must_change_password = False
    user.updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def revoke_tokens(db: Session, *, user: User) -> User:
    """Invalidate every token issued so far for ``user`` (sign-out)."""
    user.token_version = (user.token_version or 0) + 1
    user.updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _save_calendar(db: Session, user: User, *, token: str | None, enabled: bool) -> User:
    user.google_calendar_token = token
    user.google_calendar_enabled = enabled
    user.updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def connect_calendar(db: Session, *, user: User, access_token: str) -> User:
    return _save_calendar(db, user, token=access_token, enabled=True)


def disconnect_calendar(db: Session, *, user: User) -> User:
    return _save_calendar(db, user, token=None, enabled=False)


def set_calendar_enabled(db: Session, *, user: User, enabled: bool) -> User:
    """Switch event creation on or off; enabling needs a stored token."""
    if enabled and not user.google_calendar_token:
        raise ValueError("Google Calendar is not connected")
    return _save_calendar(db, user, token=user.google_calendar_token, enabled=enabled)


def calendar_token_for(user: User) -> str | None:
    if user.google_calendar_enabled and user.google_calendar_token:
        return user.google_calendar_token
    return None
