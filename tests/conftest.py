import os
import shutil
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="prostore-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["AUTH_SECRET"] = "test-secret-for-prostore-0123456789abcdef"
os.environ["MEDIA_ROOT"] = os.path.join(_TMP_DIR, "media")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
for _name in ("SMTP_HOST", "MAIL_FROM", "CORS_ALLOWED_ORIGINS"):
    os.environ.pop(_name, None)

from fastapi.testclient import TestClient  # noqa: E402

from prostore import models  # noqa: E402
from prostore.db import Base, SessionLocal, engine  # noqa: E402
from prostore.main import app  # noqa: E402
from prostore.security import create_access_token  # noqa: E402
from prostore.services.accounts import create_user  # noqa: E402
from prostore.services.roles import ensure_roles  # noqa: E402
from prostore.storage import get_storage_backend  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def _database():
    get_storage_backend.cache_clear()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    ensure_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: models.User) -> dict:
    token = create_access_token({"sub": user.id, "role": user.role_name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db):
    return create_user(db, "Admin", "admin@prostore.io", "secret123", models.RoleName.admin)


@pytest.fixture
def client_user(db):
    return create_user(db, "Client", "client@prostore.io", "secret123", models.RoleName.client)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def client_headers(client_user):
    return auth_headers(client_user)


@pytest.fixture
def make_reference(db):
    def factory(model, name: str, **extra):
        record = model(id=str(uuid.uuid4()), name=name, **extra)
        db.add(record)
        db.commit()
        return record

    return factory


@pytest.fixture
def brand(make_reference):
    return make_reference(models.Brand, "Acme")


@pytest.fixture
def make_product(db, brand):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def factory(name: str = "Runner shoe", price: str = "20.00", stock: int = 5, **extra):
        counter["n"] += 1
        fields = {
            "brand_id": brand.id,
            "created_at": base + timedelta(minutes=counter["n"]),
        }
        fields.update(extra)
        product = models.Product(
            id=str(uuid.uuid4()),
            name=name,
            price=Decimal(price),
            stock=stock,
            **fields,
        )
        db.add(product)
        db.commit()
        return product

    return factory
