from __future__ import annotations

from ..extensions import db
from shopsavvy.time_utils import to_utc_z


class LedgerCollection(db.Model):
    """
    Durable key-value row for one ledger collection.

    DESIGN:
    - One row per key: shops, products, inventory, sales, activeShop
    - payload is JSON text (array of entity dicts, or a string for activeShop)
    - schema_version lets load-time upgrades rewrite older payload shapes
    - A missing row means "never stored"; an empty array means "stored, empty"
    """
    __tablename__ = "ledger_collections"

    key = db.Column(db.String(32), primary_key=True)
    schema_version = db.Column(db.Integer, nullable=False, default=1)
    payload = db.Column(db.Text, nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<LedgerCollection key={self.key!r} v={self.schema_version}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "schema_version": self.schema_version,
            "payload_bytes": len(self.payload or ""),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
