"""CRUD-style helpers for managing user accounts."""
from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from guildhall.core import security
from guildhall.core.errors import ConflictError, UnauthenticatedError
from guildhall.models.user import User
from guildhall.schemas.user import ProfileUpdateRequest, RegisterRequest

__all__ = [
    "get_user",
    "get_users",
    "register_user",
    "authenticate_user",
    "update_profile",
]

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def get_users(db: Session, skip: int = 0, limit: int = 100) -> Sequence[User]:
    """Return users with simple offset-based pagination."""
    return db.query(User).order_by(User.username).offset(skip).limit(limit).all()


def _ensure_available(db: Session, username: str | None, email: str | None, exclude: int | None = None) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return
    stmt = select(User).where(or_(*clauses))
    if exclude is not None:
        stmt = stmt.where(User.id != exclude)
    taken = db.execute(stmt).scalars().first()
    if taken is None:
        return
    if username is not None and taken.username == username:
        raise ConflictError("Username is already taken")
    raise ConflictError("Email is already registered")


def register_user(db: Session, data: RegisterRequest) -> User:
    """Persist a new account with a hashed password."""
    email = data.email.lower()
    _ensure_available(db, data.username, email)

    db_user = User(
        username=data.username,
        email=email,
        password_hash=security.hash_password(data.password),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("Username or email is already registered") from err
    db.refresh(db_user)
    logger.info("Registered user %s (%s)", db_user.id, db_user.username)
    return db_user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Return the user matching the credentials.

    Raises:
        UnauthenticatedError: If the email is unknown or the password is wrong.
    """
    db_user = db.execute(select(User).where(User.email == email.lower())).scalars().first()
    if db_user is None or not security.verify_password(password, db_user.password_hash):
        raise UnauthenticatedError("Invalid email or password")
    return db_user


def update_profile(db: Session, db_user: User, update_data: ProfileUpdateRequest) -> User:
    """Apply partial updates to an existing user.

    A new email is stored lowercased and a new password is re-hashed.
    """
    update_dict = update_data.model_dump(exclude_unset=True)
    password = update_dict.pop("password", None)
    if update_dict.get("email") is not None:
        update_dict["email"] = update_dict["email"].lower()
    _ensure_available(
        db, update_dict.get("username"), update_dict.get("email"), exclude=db_user.id
    )
    for key, value in update_dict.items():
        if key in ("username", "email", "status") and value is None:
            continue
        if key == "status":
            value = value.value if hasattr(value, "value") else value
        setattr(db_user, key, value)
    if password is not None:
        db_user.password_hash = security.hash_password(password)

    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise ConflictError("Username or email is already registered") from err
    db.refresh(db_user)
    return db_user
