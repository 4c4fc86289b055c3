from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from prostore import models, schemas
from prostore.auth.dependencies import get_current_user, require_admin
from prostore.db import get_db, settings
from prostore.security import create_access_token
from prostore.services.accounts import create_user, find_user_by_email

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: models.User) -> schemas.TokenOut:
    expires_minutes = settings.access_token_expire_minutes
    token = create_access_token(
        {"sub": user.id, "role": user.role_name},
        expires_minutes=expires_minutes,
    )
    return schemas.TokenOut(
        access_token=token,
        expires_in_seconds=expires_minutes * 60,
        user=schemas.UserOut.model_validate(user),
    )


@router.post("/login", response_model=schemas.TokenOut)
def login(payload: schemas.LoginIn, db: Session = Depends(get_db)):
    user = find_user_by_email(db, payload.email)
    if not user or not user.check_password(payload.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _token_response(user)


@router.post("/register-client", response_model=schemas.TokenOut, status_code=status.HTTP_201_CREATED)
def register_client(payload: schemas.RegisterIn, db: Session = Depends(get_db)):
    user = create_user(db, payload.name, payload.email, payload.password, models.RoleName.client)
    return _token_response(user)


@router.post("/register-admin", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register_admin(
    payload: schemas.RegisterIn,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return create_user(db, payload.name, payload.email, payload.password, models.RoleName.admin)


@router.get("/me", response_model=schemas.UserDetailOut)
def me(user: models.User = Depends(get_current_user)):
    return user
