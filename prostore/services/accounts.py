from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from prostore import models
from prostore.errors import ValidationError
from prostore.services.roles import ensure_roles, get_role

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str, exclude_id: str | None = None) -> models.User | None:
    stmt = select(models.User).where(func.lower(models.User.email) == normalize_email(email))
    if exclude_id:
        stmt = stmt.where(models.User.id != exclude_id)
    return db.scalar(stmt)


def create_user(db: Session, name: str, email: str, password: str, role: models.RoleName) -> models.User:
    if find_user_by_email(db, email):
        raise ValidationError("A user with this email already exists")

    role_row = get_role(db, role)
    if role_row is None:
        # banco criado fora do startup (scripts, testes)
        ensure_roles(db)
        role_row = get_role(db, role)

    try:
        user = models.User(id=str(uuid.uuid4()), name=name, email=email, role_id=role_row.id)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    user.set_password(password)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created id=%s role=%s", user.id, role.value)
    return user


def list_users_by_role(db: Session, role: models.RoleName) -> list[models.User]:
    stmt = (
        select(models.User)
        .join(models.Role, models.User.role_id == models.Role.id)
        .where(models.Role.name == role)
        .order_by(models.User.created_at.asc())
    )
    return list(db.scalars(stmt).unique().all())


def replace_addresses(user: models.User, addresses: list[dict]) -> None:
    """Replaces the address list; only the first address flagged primary keeps the flag."""
    primary_seen = False
    rows = []
    for position, data in enumerate(addresses):
        is_primary = bool(data.get("is_primary")) and not primary_seen
        primary_seen = primary_seen or is_primary
        rows.append(
            models.UserAddress(
                position=position,
                label=(data.get("label") or "Home").strip() or "Home",
                street=data["street"].strip(),
                city=data["city"].strip(),
                district=data["district"].strip(),
                postal_code=(data.get("postal_code") or "").strip() or None,
                is_primary=is_primary,
            )
        )
    user.addresses = rows
