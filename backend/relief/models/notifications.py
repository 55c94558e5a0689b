from __future__ import annotations

from ..extensions import db
from relief.time_utils import to_utc_z


class Notification(db.Model):
    """
    Per-recipient notification record.

    Written once by the fan-out; recipients may only flip is_read or delete.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient_read", "recipient_actor_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_actor_id = db.Column(db.String(64), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=True)
    body = db.Column(db.Text, nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_actor_id": self.recipient_actor_id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "payload": self.payload,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
