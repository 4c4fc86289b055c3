import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from prostore.db import SessionLocal, settings
from prostore.errors import register_exception_handlers
from prostore.media import media_root, media_url, ensure_dir
from prostore.storage import is_local_storage
from prostore.observability import RequestLoggingMiddleware, configure_request_logging
from prostore.services.roles import ensure_roles
from prostore.routers import auth, catalog, products, users_admin

logger = logging.getLogger(__name__)

configure_request_logging()

app = FastAPI(title="ProStore API")

if is_local_storage():
    media_root_path = media_root()
    ensure_dir(media_root_path)
    app.mount(media_url(), StaticFiles(directory=str(media_root_path)), name="media")

ALLOWED_ORIGINS = [
    # Dev - Vite
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
]

cors_origins = settings.CORS_ALLOWED_ORIGINS_LIST or ALLOWED_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["*"], allow_headers=["*"], allow_credentials=True,
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)


@app.on_event("startup")
def seed_roles():
    try:
        with SessionLocal() as db:
            ensure_roles(db)
    except SQLAlchemyError:
        # banco sem migração ainda: sobe mesmo assim, o erro fica no log
        logger.exception("Failed to ensure initial roles")


@app.get("/health")
def health(): return {"ok": True}

app.include_router(auth.router, prefix="/api")
app.include_router(users_admin.router, prefix="/api")
app.include_router(catalog.router, prefix="/api")
app.include_router(products.router, prefix="/api")
