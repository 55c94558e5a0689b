from __future__ import annotations

from ..extensions import db
from relief.time_utils import to_utc_z


MEMBER_STATUS_ACTIVE = "active"
MEMBER_STATUS_INACTIVE = "inactive"

MEMBER_TYPE_TRACKER = "tracker"


class Organization(db.Model):
    """
    Responding organization.

    account_actor_id is the identity the organization acts under; it answers
    "is actor X an organization?".
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    account_actor_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "account_actor_id": self.account_actor_id,
            "created_at": to_utc_z(self.created_at),
        }


class Membership(db.Model):
    """
    Organization membership of an actor (field staff).

    member_type is NULL when the upstream roster does not say what the member
    does; "tracker" marks explicitly designated field trackers.
    """
    __tablename__ = "memberships"
    __table_args__ = (
        db.Index("ix_memberships_actor_status", "actor_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.String(64), nullable=False)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)

    member_type = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=MEMBER_STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("memberships", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.status == MEMBER_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Membership id={self.id} actor_id={self.actor_id!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "organization_id": self.organization_id,
            "member_type": self.member_type,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
