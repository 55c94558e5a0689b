# Overview: Request store; owns Pin rows, initial status and the confirmation transition.

"""
Pin Lifecycle (authoritative)

STATE MACHINE:
    pending -> confirmed -> (deleted)

    pending:   reported by an anonymous or ordinary actor, waits for a tracker
    confirmed: reported by a tracker/organization, or confirmed by a tracker
    deleted:   every line item fully accepted; the row is gone

RULES:
1. status never moves backwards.
2. Re-confirming a confirmed pin is a no-op success (duplicate client retries).
3. A pin is removed only together with its line items, items first, in one
   transaction (remove_pin_with_items). Completion uses remove_fulfilled_pin,
   which never deletes a pin that still has an outstanding line.
4. Notification fan-out runs after the pin is committed and can never fail
   or roll back pin creation.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import aliased

from ..extensions import db
from ..errors import NotFoundError, Unauthorized
from ..models import Pin, PinItem
from ..models.pins import STATUS_CONFIRMED, STATUS_PENDING, VALID_STATUSES
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_pin_create, validate_payload
from relief.time_utils import utcnow
from . import authorization_service, notification_service, pin_item_service
from .concurrency import run_store_write


DERIVED_PENDING = "pending"
DERIVED_PARTIALLY_ACCEPTED = "partially_accepted"

PIN_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"kind", "phone", "description", "latitude", "longitude", "image_url"},
    required_on_create={"kind", "phone", "latitude", "longitude"},
)

# Field names used by the map client
PIN_FIELD_ALIASES = {
    "type": "kind",
    "lat": "latitude",
    "lng": "longitude",
    "image": "image_url",
}


def create_pin(data: dict, reporter_actor_id: str | None = None, reporter_role: str | None = None) -> Pin:
    """
    Persist a new pin with its initial status.

    Raises ValidationError for bad input and StoreError if the insert fails.
    Tracker fan-out happens afterwards and is best-effort.
    """
    patch = validate_payload(
        model=Pin,
        payload=data,
        policy=PIN_CREATE_POLICY,
        partial=False,
        aliases=PIN_FIELD_ALIASES,
    )
    enforce_rules_pin_create(patch)

    def _op():
        status = authorization_service.classify_initial_status(reporter_actor_id, reporter_role)
        pin = Pin(
            status=status,
            reporter_actor_id=reporter_actor_id or None,
            created_at=utcnow(),
            **patch,
        )
        db.session.add(pin)
        db.session.commit()
        return pin

    pin = run_store_write(_op, description="create pin")
    current_app.logger.info("Created pin %s with status %s", pin.id, pin.status)

    _notify_trackers(pin)
    return pin


def _notify_trackers(pin: Pin) -> None:
    pin_id = pin.id
    try:
        notification_service.fan_out_pin_reported(pin)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[pin_notifications] Fan-out failed for pin %s", pin_id)


def get_pin(pin_id: int) -> Pin:
    pin = db.session.query(Pin).filter_by(id=pin_id).populate_existing().first()
    if pin is None:
        raise NotFoundError(f"Pin {pin_id} not found")
    return pin


def list_pins(status: str | None = None) -> list[Pin]:
    q = db.session.query(Pin)
    if status is not None:
        if status not in VALID_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(VALID_STATUSES))}")
        q = q.filter(Pin.status == status)
    return q.order_by(Pin.created_at.desc(), Pin.id.desc()).all()


def derive_status(pin_items) -> str | None:
    """
    Dashboard status from line quantities.

    - partially_accepted: some line is partly, but not fully, accepted
    - None: every line fully accepted; such a pin should already be deleted
    - pending: anything else (no lines, untouched lines, or a mix of
      untouched and fully accepted lines)
    """
    if any(0 < pi.remaining_qty < pi.requested_qty for pi in pin_items):
        return DERIVED_PARTIALLY_ACCEPTED
    if pin_items and all(pi.remaining_qty == 0 for pi in pin_items):
        return None
    return DERIVED_PENDING


def get_pin_detail(pin_id: int) -> dict:
    pin = get_pin(pin_id)
    pin_items = pin_item_service.list_pin_items(pin_id)
    data = pin.to_dict()
    data["items"] = [pi.to_dict() for pi in pin_items]
    data["derived_status"] = derive_status(pin_items)
    return data


def confirm_pin(pin_id: int, actor_id: str | None, membership_id: int | None) -> Pin:
    """
    Move a pin from pending to confirmed.

    Requires an active membership owned by actor_id (Unauthorized otherwise,
    with no mutation). Idempotent for already confirmed pins: the original
    confirmer and timestamp are kept.
    """
    membership = authorization_service.require_tracker_membership(actor_id, membership_id)
    confirming_membership_id = membership.id

    def _op():
        updated = (
            db.session.query(Pin)
            .filter(Pin.id == pin_id, Pin.status == STATUS_PENDING)
            .update(
                {
                    Pin.status: STATUS_CONFIRMED,
                    Pin.confirmed_by_membership_id: confirming_membership_id,
                    Pin.confirmed_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated == 0 and db.session.query(Pin.id).filter_by(id=pin_id).first() is None:
            raise NotFoundError(f"Pin {pin_id} not found")
        db.session.commit()
        return updated

    updated = run_store_write(_op, description="confirm pin")
    if updated:
        current_app.logger.info("Pin %s confirmed by membership %s", pin_id, confirming_membership_id)
    else:
        current_app.logger.info("Pin %s already confirmed; confirmation is a no-op", pin_id)
    return get_pin(pin_id)


def remove_pin_with_items(pin_id: int) -> bool:
    """
    Two-step delete: every PinItem of the pin, then the pin.

    Does not commit; the caller commits both steps together so readers never
    see a pin with only some of its lines. Returns True if the pin row was
    deleted.
    """
    pin_item_service.delete_pin_items(pin_id)
    db.session.flush()
    deleted = (
        db.session.query(Pin)
        .filter(Pin.id == pin_id)
        .delete(synchronize_session=False)
    )
    return deleted == 1


def remove_fulfilled_pin(pin_id: int) -> bool:
    """
    Completion delete: lines, then the pin, only while nothing is outstanding.

    Both statements re-check the table themselves, so a line attached after
    the caller's snapshot keeps the pin (and its accepted lines) in place.
    Does not commit. Returns True if the pin row was deleted.
    """
    other = aliased(PinItem)
    outstanding = (
        db.session.query(other.id)
        .filter(other.pin_id == pin_id, other.remaining_qty > 0)
        .exists()
    )
    (
        db.session.query(PinItem)
        .filter(PinItem.pin_id == pin_id, ~outstanding)
        .delete(synchronize_session=False)
    )
    db.session.flush()

    any_line = db.session.query(PinItem.id).filter(PinItem.pin_id == pin_id).exists()
    deleted = (
        db.session.query(Pin)
        .filter(Pin.id == pin_id, ~any_line)
        .delete(synchronize_session=False)
    )
    return deleted == 1


def delete_pin(pin_id: int, actor_id: str | None, actor_role: str | None) -> None:
    """
    Organization-only manual removal of a pin and its line items.

    Prefer fulfillment_service.accept_items / reconcile, which remove pins
    automatically once fulfilled.
    """
    if actor_role != authorization_service.ROLE_ORGANIZATION and not authorization_service.is_organization(actor_id):
        raise Unauthorized("Only organizations can delete pins")

    def _op():
        if not remove_pin_with_items(pin_id):
            raise NotFoundError(f"Pin {pin_id} not found")
        db.session.commit()

    run_store_write(_op, description="delete pin")
    current_app.logger.info("Pin %s deleted by organization %s", pin_id, actor_id)
