from typing import Callable

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError
from pydantic import BaseModel
from sqlalchemy.orm import Session

from prostore import models
from prostore.db import get_db
from prostore.security import decode_access_token


class TokenData(BaseModel):
    sub: str
    role: str


def _extract_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def _decode_token(token: str) -> TokenData:
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return TokenData(sub=sub, role=role)


def get_current_identity(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TokenData:
    token = _extract_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    identity = _decode_token(token)
    request.state.identity = identity
    return identity


def get_current_user(
    identity: TokenData = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> models.User:
    user = db.get(models.User, identity.sub)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_roles(*roles: models.RoleName) -> Callable[[TokenData], TokenData]:
    allowed = {role.value for role in roles}

    def dependency(identity: TokenData = Depends(get_current_identity)) -> TokenData:
        if identity.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
        return identity

    return dependency


require_admin = require_roles(models.RoleName.admin)
