from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from dentalcare.db.session import get_db
from dentalcare.deps import require_admin
from dentalcare.models.user import Role, User
from dentalcare.schemas.user import UserCreate, UserOut
from dentalcare.services.audit import log_event
from dentalcare.services.users import create_user, get_user_by_email

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return list(db.scalars(select(User).order_by(User.id)))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    existing = get_user_by_email(db, payload.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")
    user = create_user(
        db,
        email=payload.email,
        password=payload.temp_password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=Role(payload.role),
        is_active=True,
        must_change_password=True,
    )
    log_event(
        db,
        actor=admin,
        action="user.created",
        entity_type="user",
        entity_id=str(user.id),
        after_data={"email": user.email, "role": user.role.value},
    )
    db.commit()
    return user


@router.get("/roles", response_model=list[str])
def list_roles(_=Depends(require_admin)):
    return [role.value for role in Role]
