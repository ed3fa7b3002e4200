# Overview: Auth collaborator port used by the ledger, plus its SQL-backed implementation.

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import UserProfile, USER_ROLES
from ..validation import StorageIOError, ValidationError, coerce_choice, coerce_email


class UserDirectory(Protocol):
    """What the ledger needs from the auth side: purge users tied to a deleted shop."""

    def remove_users_by_shop(self, shop_id: str) -> int:
        ...


class NullUserDirectory:
    """Directory with no users; used when the ledger runs without an auth backend."""

    def remove_users_by_shop(self, shop_id: str) -> int:
        return 0


class SqlUserDirectory:
    """User/profile records in the user_profiles table."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def add_user(
        self,
        *,
        user_id: str,
        name: str,
        role: str = "staff",
        email: Optional[str] = None,
        shop_id: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> UserProfile:
        if not user_id:
            raise ValidationError("User id is required")
        if not name or not name.strip():
            raise ValidationError("User name is required")
        role = coerce_choice(role, "role", USER_ROLES)

        user = UserProfile(
            id=user_id,
            name=name.strip(),
            role=role,
            email=coerce_email(email),
            shop_id=shop_id,
            phone=phone,
            address=address,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ValidationError("Email or user id already exists")
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageIOError("Could not save user") from exc
        return user

    def get_user(self, user_id: str) -> UserProfile | None:
        return self.session.get(UserProfile, user_id)

    def list_users(self, shop_id: Optional[str] = None) -> list[UserProfile]:
        q = self.session.query(UserProfile)
        if shop_id is not None:
            q = q.filter(UserProfile.shop_id == shop_id)
        return q.order_by(UserProfile.created_at.asc(), UserProfile.id.asc()).all()

    def remove_users_by_shop(self, shop_id: str) -> int:
        try:
            removed = (
                self.session.query(UserProfile)
                .filter(UserProfile.shop_id == shop_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageIOError("Store deleted but its user accounts could not be removed") from exc
        return removed
