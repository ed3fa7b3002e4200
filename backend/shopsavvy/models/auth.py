from __future__ import annotations

from ..extensions import db
from shopsavvy.time_utils import to_utc_z


class UserProfile(db.Model):
    """
    User/profile record owned by the auth collaborator.

    The ledger never reads these rows; it only asks the directory to purge
    the ones attached to a shop that is being deleted.
    """
    __tablename__ = "user_profiles"
    __table_args__ = (
        db.Index("ix_user_profiles_shop_id", "shop_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    role = db.Column(db.String(16), nullable=False, default="staff")
    shop_id = db.Column(db.String(64), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<UserProfile id={self.id} role={self.role} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "shopId": self.shop_id,
            "phone": self.phone,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
        }
