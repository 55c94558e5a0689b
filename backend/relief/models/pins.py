from __future__ import annotations

from ..extensions import db
from relief.time_utils import to_utc_z


KIND_DAMAGE = "damage"
KIND_SHELTER = "shelter"
VALID_KINDS = {KIND_DAMAGE, KIND_SHELTER}

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
VALID_STATUSES = {STATUS_PENDING, STATUS_CONFIRMED}


class Pin(db.Model):
    """
    A reported help request on the map.

    LIFECYCLE:
    - status only moves forward: pending -> confirmed.
    - There is no stored "completed" status. A pin whose line items are all
      fully accepted is deleted; absence is the terminal state.

    DELETION:
    - pin_items are deleted explicitly before the pin (see fulfillment_service).
      The relationship below deliberately has no delete cascade.
    """
    __tablename__ = "pins"
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'confirmed')", name="ck_pins_status"),
        db.CheckConstraint("kind IN ('damage', 'shelter')", name="ck_pins_kind"),
        db.Index("ix_pins_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    kind = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)

    phone = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=True)

    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    # NULL for anonymous reports
    reporter_actor_id = db.Column(db.String(64), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    confirmed_by_membership_id = db.Column(db.Integer, db.ForeignKey("memberships.id"), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship("PinItem", back_populates="pin", lazy=True, passive_deletes="all")

    def __repr__(self) -> str:
        return f"<Pin id={self.id} kind={self.kind!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "status": self.status,
            "phone": self.phone,
            "description": self.description,
            "lat": self.latitude,
            "lng": self.longitude,
            "reporter_actor_id": self.reporter_actor_id,
            "image_url": self.image_url,
            "confirmed_by_membership_id": self.confirmed_by_membership_id,
            "confirmed_at": to_utc_z(self.confirmed_at),
            "created_at": to_utc_z(self.created_at),
        }


class PinItem(db.Model):
    """
    One requested item/quantity pair attached to a pin.

    INVARIANTS:
    - requested_qty > 0, fixed at creation
    - 0 <= remaining_qty <= requested_qty
    - remaining_qty only ever decreases (atomic floor-decrement in pin_item_service)
    """
    __tablename__ = "pin_items"
    __table_args__ = (
        db.CheckConstraint("requested_qty > 0", name="ck_pin_items_requested_positive"),
        db.CheckConstraint("remaining_qty >= 0", name="ck_pin_items_remaining_nonnegative"),
        db.CheckConstraint("remaining_qty <= requested_qty", name="ck_pin_items_remaining_le_requested"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    pin_id = db.Column(db.Integer, db.ForeignKey("pins.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    requested_qty = db.Column(db.Integer, nullable=False)
    remaining_qty = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pin = db.relationship("Pin", back_populates="items")
    item = db.relationship("Item")

    @property
    def accepted_qty(self) -> int:
        return self.requested_qty - self.remaining_qty

    def __repr__(self) -> str:
        return (
            f"<PinItem id={self.id} pin_id={self.pin_id} item_id={self.item_id} "
            f"remaining={self.remaining_qty}/{self.requested_qty}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pin_id": self.pin_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "unit": self.item.unit if self.item else None,
            "requested_qty": self.requested_qty,
            "remaining_qty": self.remaining_qty,
            "accepted_qty": self.accepted_qty,
            "created_at": to_utc_z(self.created_at),
        }
