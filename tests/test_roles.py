from sqlalchemy import func, select

from prostore import models
from prostore.db import SessionLocal
from prostore.services.roles import ensure_roles


def test_ensure_roles_is_idempotent():
    with SessionLocal() as db:
        assert set(ensure_roles(db)) == {models.RoleName.admin, models.RoleName.client}
        assert ensure_roles(db) == []
        assert db.scalar(select(func.count()).select_from(models.Role)) == 2


def test_ensure_roles_fills_in_a_missing_role():
    with SessionLocal() as db:
        db.add(models.Role(id="r-admin", name=models.RoleName.admin))
        db.commit()
        assert ensure_roles(db) == [models.RoleName.client]


def test_startup_seeds_roles(client, db):
    names = set(db.scalars(select(models.Role.name)).all())
    assert names == {models.RoleName.admin, models.RoleName.client}
