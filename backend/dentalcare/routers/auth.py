from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from dentalcare.core.security import create_access_token, verify_password
from dentalcare.core.settings import settings
from dentalcare.db.session import get_db
from dentalcare.deps import SessionContext, get_current_user, get_session_context
from dentalcare.models.user import User
from dentalcare.schemas.auth import (
    ChangePasswordRequest,
    ChangePasswordResponse,
    LoginRequest,
    LogoutResponse,
    Token,
)
from dentalcare.schemas.user import (
    CalendarConnect,
    CalendarConnectionOut,
    CalendarToggle,
    ProfileUpdate,
    UserOut,
)
from dentalcare.services.audit import log_event
from dentalcare.services.rate_limit import SimpleRateLimiter
from dentalcare.services.users import (
    connect_calendar,
    disconnect_calendar,
    get_user_by_email,
    revoke_tokens,
    set_calendar_enabled,
    set_password,
    update_profile,
)

router = APIRouter(prefix="/auth", tags=["auth"])

LOGIN_LIMITER = SimpleRateLimiter(max_events=settings.login_attempts_per_minute, window_seconds=60)


@router.post("/login", response_model=Token)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    ip_address = request.client.host if request.client else "unknown"
    rate_key = f"{ip_address}:{payload.email.lower().strip()}"
    if not LOGIN_LIMITER.allow(rate_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many login attempts")

    user = get_user_by_email(db, payload.email)
    if user and not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token(
        subject=str(user.id),
        secret=settings.secret_key,
        alg=settings.jwt_alg,
        expires_minutes=settings.access_token_expire_minutes,
        token_version=user.token_version,
        extra={"role": user.role.value, "email": user.email},
    )
    LOGIN_LIMITER.reset(rate_key)
    return Token(access_token=token, must_change_password=user.must_change_password)


@router.post("/logout", response_model=LogoutResponse)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    revoke_tokens(db, user=ctx.user)
    log_event(
        db,
        actor=ctx.user,
        action="user.signed_out",
        entity_type="user",
        entity_id=str(ctx.user_id),
        after_data={"token_version": ctx.user.token_version},
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    return LogoutResponse(message="Signed out.")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return update_profile(db, user=user, first_name=payload.first_name, last_name=payload.last_name)


@router.post("/change-password", response_model=ChangePasswordResponse)
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not user.must_change_password:
        if not payload.old_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Old password required")
        if not verify_password(payload.old_password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid old password")
    elif payload.old_password and not verify_password(payload.old_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid old password")

    set_password(db, user=user, new_password=payload.new_password)
    log_event(
        db,
        actor=user,
        action="user.password_changed",
        entity_type="user",
        entity_id=str(user.id),
        after_data={"status": "success"},
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    return ChangePasswordResponse(message="Password updated.")


def _calendar_connection(user: User) -> CalendarConnectionOut:
    return CalendarConnectionOut(
        connected=bool(user.google_calendar_token),
        enabled=user.google_calendar_enabled,
    )


def _log_calendar_event(db: Session, *, user: User, action: str, request: Request) -> None:
    log_event(
        db,
        actor=user,
        action=action,
        entity_type="user",
        entity_id=str(user.id),
        after_data={"google_calendar_enabled": user.google_calendar_enabled},
        ip_address=request.client.host if request.client else None,
    )
    db.commit()


@router.get("/me/calendar", response_model=CalendarConnectionOut)
def calendar_connection(user: User = Depends(get_current_user)):
    return _calendar_connection(user)


@router.put("/me/calendar", response_model=CalendarConnectionOut)
def connect_my_calendar(
    payload: CalendarConnect,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    connect_calendar(db, user=user, access_token=payload.access_token)
    _log_calendar_event(db, user=user, action="user.calendar_connected", request=request)
    return _calendar_connection(user)


@router.patch("/me/calendar", response_model=CalendarConnectionOut)
def toggle_my_calendar(
    payload: CalendarToggle,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        set_calendar_enabled(db, user=user, enabled=payload.enabled)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    _log_calendar_event(db, user=user, action="user.calendar_toggled", request=request)
    return _calendar_connection(user)


@router.delete("/me/calendar", response_model=CalendarConnectionOut)
def disconnect_my_calendar(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    disconnect_calendar(db, user=user)
    _log_calendar_event(db, user=user, action="user.calendar_disconnected", request=request)
    return _calendar_connection(user)
