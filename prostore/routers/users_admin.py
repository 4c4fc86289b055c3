import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from prostore import models, schemas
from prostore.auth.dependencies import get_current_user, require_admin
from prostore.db import get_db
from prostore.services.accounts import find_user_by_email, list_users_by_role, normalize_email, replace_addresses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/admins", response_model=list[schemas.UserOut])
def list_admins(
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    return list_users_by_role(db, models.RoleName.admin)


@router.get("/me/addresses", response_model=list[schemas.AddressOut])
def my_addresses(user: models.User = Depends(get_current_user)):
    return user.addresses


@router.put("/me/addresses", response_model=list[schemas.AddressOut])
def replace_my_addresses(
    payload: list[schemas.AddressIn],
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    replace_addresses(user, [item.model_dump() for item in payload])
    db.commit()
    db.refresh(user)
    return user.addresses


@router.put("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if payload.name is not None:
        if not payload.name.strip():
            raise HTTPException(status_code=400, detail="name is required")
        user.name = payload.name
    if payload.email is not None:
        email = normalize_email(payload.email)
        if find_user_by_email(db, email, exclude_id=user.id):
            raise HTTPException(status_code=400, detail="Email already in use")
        user.email = email
    # só re-hash quando veio senha nova
    if payload.password:
        user.set_password(payload.password)
    db.commit()
    db.refresh(user)
    logger.info("User updated id=%s", user.id)
    return user


@router.delete("/{user_id}", response_model=schemas.DeletedOut)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    db.delete(user)
    db.commit()
    logger.info("User deleted id=%s", user_id)
    return schemas.DeletedOut(message="User deleted", id=user_id)
