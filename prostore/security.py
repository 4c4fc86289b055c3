from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt
from passlib.context import CryptContext

from prostore.db import settings

# Log da biblioteca bcrypt carregada (debug) e correção para __about__ ausente
import logging
try:
    import bcrypt  # noqa: E401
    if not hasattr(bcrypt, "__about__"):
        class _About:
            __version__ = getattr(bcrypt, "__version__", "unknown")
        bcrypt.__about__ = _About()
    logging.debug(
        "[bcrypt] module=%s version=%s",
        getattr(bcrypt, "__file__", "?"),
        getattr(bcrypt.__about__, "__version__", None),
    )
except Exception as exc:
    logging.exception("[bcrypt] failed to inspect bcrypt module: %s", exc)

# bcrypt_sha256 evita o limite de 72 bytes; "bcrypt" continua aceito para hashes importados.
pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: Dict[str, Any], expires_minutes: int | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.auth_secret, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Raises ``jose.JWTError`` on bad signature, malformed token or expiry."""
    return jwt.decode(token, settings.auth_secret, algorithms=[settings.auth_algorithm])
