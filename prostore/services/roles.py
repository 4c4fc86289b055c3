from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from prostore import models

logger = logging.getLogger(__name__)


def ensure_roles(db: Session) -> list[models.RoleName]:
    """Creates the missing roles and returns the ones added. Safe to run on every boot."""
    total = db.scalar(select(func.count()).select_from(models.Role)) or 0
    if total >= len(models.RoleName):
        return []
    existing = set(db.scalars(select(models.Role.name)).all())
    created = [role for role in models.RoleName if role not in existing]
    for role in created:
        db.add(models.Role(id=str(uuid.uuid4()), name=role))
    db.commit()
    logger.info("Roles created: %s", ", ".join(role.value for role in created))
    return created


def get_role(db: Session, name: models.RoleName) -> models.Role | None:
    return db.scalar(select(models.Role).where(models.Role.name == name))
