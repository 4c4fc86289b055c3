import argparse
import os

from sqlalchemy.orm import Session

from prostore import models
from prostore.db import SessionLocal
from prostore.services.accounts import create_user, find_user_by_email
from prostore.services.roles import ensure_roles, get_role


def ensure_admin(db: Session, name: str, email: str, password: str) -> models.User:
    user = find_user_by_email(db, email)
    if user is None:
        return create_user(db, name, email, password, models.RoleName.admin)
    admin_role = get_role(db, models.RoleName.admin)
    user.name = name
    user.role_id = admin_role.id
    user.set_password(password)
    db.commit()
    db.refresh(user)
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description="Cria os papéis e o administrador inicial.")
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Administrator"))
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    args = parser.parse_args()

    db: Session = SessionLocal()
    try:
        created = ensure_roles(db)
        print(f"Roles created: {[role.value for role in created] or 'none'}")
        if not args.email or not args.password:
            print("No admin credentials given (--email/--password); skipping admin user")
            return
        user = ensure_admin(db, args.name, args.email, args.password)
        print(f"Admin ready: {user.email} ({user.id})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
