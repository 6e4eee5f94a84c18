"""
Worker account management (admin only).

An admin cannot delete or deactivate their own account, and the last active
admin is never removed or demoted.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, get_ledger_store, require_admin
from app.core.config import settings
from app.core.security import get_password_hash
from app.db.ledger_store import LedgerStore
from app.models.user import User
from app.schemas.common import DeleteResponse
from app.schemas.user import UserActiveUpdate, UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/admin/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _is_last_active_admin(db: AsyncSession, user: User) -> bool:
    if user.role != "admin" or not user.is_active:
        return False
    result = await db.execute(
        select(func.count(User.id)).where(User.role == "admin", User.is_active.is_(True))
    )
    return int(result.scalar() or 0) <= 1


@router.get("", response_model=list[UserRead])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    result = await db.execute(select(User).order_by(User.full_name.asc(), User.email.asc()))
    return list(result.scalars().all())


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Create a worker or admin account."""
    if await _email_taken(db, body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=body.email,
        hashed_password=get_password_hash(body.password),
        full_name=body.full_name or "",
        role=body.role,
        vacation_days_per_year=(
            body.vacation_days_per_year
            if body.vacation_days_per_year is not None
            else settings.DEFAULT_VACATION_DAYS_PER_YEAR
        ),
        worker_first_name=body.worker_first_name,
        worker_last_name=body.worker_last_name,
        worker_nif=body.worker_nif,
        worker_ss_number=body.worker_ss_number,
        work_center=body.work_center,
        company_cif=body.company_cif,
        company_ccc=body.company_ccc,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await db.refresh(user)
    logger.info("User created: %s (%s)", user.email, user.role)
    return user


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Partial update; only the fields present in the body change."""
    user = await _get_user(db, user_id)
    changes = body.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] is not None:
        if await _email_taken(db, changes["email"], exclude_id=user.id):
            raise HTTPException(status_code=409, detail="Email already registered")
    if changes.get("role") == "worker" and await _is_last_active_admin(db, user):
        raise HTTPException(status_code=400, detail="Cannot demote the last active admin")

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        if value is None and field in ("email", "full_name", "role", "vacation_days_per_year"):
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("User %d updated (%s)", user.id, ", ".join(sorted(changes)) or "password")
    return user


@router.patch("/{user_id}/active", response_model=UserRead)
async def set_user_active(
    user_id: int,
    body: UserActiveUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    user = await _get_user(db, user_id)
    if not body.is_active:
        if user.id == admin.id:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        if await _is_last_active_admin(db, user):
            raise HTTPException(status_code=400, detail="Cannot deactivate the last active admin")

    user.is_active = body.is_active
    await db.commit()
    await db.refresh(user)
    logger.info("User %d %s", user.id, "activated" if user.is_active else "deactivated")
    return user


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    store: LedgerStore = Depends(get_ledger_store),
    admin: User = Depends(require_admin),
) -> DeleteResponse:
    """Delete an account together with its hours and calendar events."""
    user = await _get_user(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    if await _is_last_active_admin(db, user):
        raise HTTPException(status_code=400, detail="Cannot delete the last active admin")

    email = user.email
    await store.delete_worker(user.id)
    return DeleteResponse(success=True, message=f"User '{email}' deleted")
