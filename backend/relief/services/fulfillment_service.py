# Overview: Fulfillment engine; applies accept batches, detects completion and removes fulfilled pins.

"""
Fulfillment Invariants (authoritative)

Accept batch (accept_items):
1. Validate the whole batch before writing: pin exists and is confirmed,
   every line belongs to the pin, accepted_qty is an integer >= 0.
2. Apply every line with the atomic floor-decrement
   (pin_item_service.decrement_remaining). Over-acceptance clamps to 0.
3. Commit the accept writes as one transaction.
4. Re-read all lines of the pin AFTER the commit. If at least one exists and
   all are at 0, delete the lines, then the pin, and commit both steps
   together. Both deletes re-check the table, so a line attached after the
   snapshot leaves the pin open.
5. If step 4 fails, the accept writes stand. The result carries
   completed=False and a PartialFailure; reconcile() heals it.

Completion is never stored as a status. A fulfilled pin simply stops
existing, so dashboards and aggregation only ever see open requests.

reconcile() re-derives completion from what is in the tables right now and
is safe to run any number of times, from any caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import NotFoundError, PartialFailure, StoreError, ValidationError
from ..models import Pin, PinItem
from ..models.pins import STATUS_CONFIRMED
from ..validation import parse_acceptances
from . import pin_item_service
from .concurrency import lock_for_update, run_store_write, run_with_retry
from .pin_service import remove_fulfilled_pin


@dataclass
class AcceptResult:
    """
    Outcome of an accept batch.

    accepted: the quantity writes were committed
    completed: the pin was fully satisfied and no longer exists
    error: PartialFailure when completion could not be finished
    """
    pin_id: int
    accepted: bool
    completed: bool
    lines: list[dict] = field(default_factory=list)
    error: PartialFailure | None = None

    def to_dict(self) -> dict:
        return {
            "pin_id": self.pin_id,
            "accepted": self.accepted,
            "completed": self.completed,
            "lines": self.lines,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class ReconcileResult:
    pin_id: int
    deleted: bool

    def to_dict(self) -> dict:
        return {"pin_id": self.pin_id, "deleted": self.deleted}


def accept_items(pin_id: int, acceptances, *, require_confirmed: bool = True) -> AcceptResult:
    """
    Commit to supplying quantities of a pin's line items.

    Raises ValidationError / NotFoundError before any write, StoreError if the
    accept writes fail. Completion problems are reported in the result.
    """
    parsed = parse_acceptances(acceptances)
    if not parsed:
        raise ValidationError("items must contain at least one acceptance")

    def _apply():
        pin = lock_for_update(db.session.query(Pin).filter(Pin.id == pin_id)).first()
        if pin is None:
            raise NotFoundError(f"Pin {pin_id} not found")
        if require_confirmed and pin.status != STATUS_CONFIRMED:
            raise ValidationError(f"Pin {pin_id} is not confirmed; items cannot be accepted yet")

        owned = {
            row[0]
            for row in db.session.query(PinItem.id).filter(PinItem.pin_id == pin_id).all()
        }
        for line in parsed:
            if line["pin_item_id"] not in owned:
                raise NotFoundError(f"Pin item {line['pin_item_id']} not found on pin {pin_id}")

        for line in parsed:
            updated = pin_item_service.decrement_remaining(
                line["pin_item_id"], line["accepted_qty"], pin_id=pin_id
            )
            if updated != 1:
                # Deleted between validation and update by a concurrent completion
                raise NotFoundError(f"Pin item {line['pin_item_id']} not found on pin {pin_id}")

        db.session.commit()

    run_store_write(_apply, description="accept pin items")

    result = AcceptResult(pin_id=pin_id, accepted=True, completed=False)
    try:
        snapshot = pin_item_service.remaining_by_line(pin_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Accepted items for pin %s but completion check failed: %s", pin_id, exc)
        result.error = PartialFailure(
            f"Items accepted but completion check failed for pin {pin_id}", pin_id=pin_id, original=exc
        )
        return result

    for line in parsed:
        remaining = snapshot.get(line["pin_item_id"])
        result.lines.append({
            "pin_item_id": line["pin_item_id"],
            "accepted_qty": line["accepted_qty"],
            "remaining_qty": remaining,
        })
        current_app.logger.info(
            "Pin %s item %s: accepted %s, remaining %s",
            pin_id, line["pin_item_id"], line["accepted_qty"], remaining,
        )

    result.completed, result.error = _complete_if_fulfilled(pin_id, snapshot)
    if result.completed:
        current_app.logger.info("All items fulfilled for pin %s; pin removed", pin_id)
    return result


def _complete_if_fulfilled(pin_id: int, snapshot: dict[int, int]) -> tuple[bool, PartialFailure | None]:
    if not snapshot:
        # Every line vanished after our commit: a concurrent batch completed the pin
        still_there = db.session.query(Pin.id).filter_by(id=pin_id).first() is not None
        return not still_there, None

    if any(remaining > 0 for remaining in snapshot.values()):
        return False, None

    def _op():
        lock_for_update(db.session.query(Pin.id).filter(Pin.id == pin_id)).first()
        deleted = remove_fulfilled_pin(pin_id)
        db.session.commit()
        return deleted

    try:
        deleted = run_with_retry(_op)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Pin %s fulfilled but deletion failed: %s", pin_id, exc)
        return False, PartialFailure(
            f"Items accepted but pin {pin_id} could not be removed; retry reconcile",
            pin_id=pin_id,
            original=exc,
        )
    if deleted:
        return True, None

    # Not deleted: either a concurrent batch removed it first, or a line was
    # attached after the snapshot and the pin is open again.
    if db.session.query(Pin.id).filter_by(id=pin_id).first() is not None:
        current_app.logger.info("Pin %s gained outstanding lines before completion; left open", pin_id)
        return False, None
    return True, None


def reconcile(pin_id: int) -> ReconcileResult:
    """
    Re-derive completion for one pin from the current rows.

    - pin absent: nothing to do
    - pin with no lines: vacuously complete, delete it
    - pin whose lines are all at 0: delete lines, then pin
    - otherwise: leave it
    """
    def _op():
        pin_row = lock_for_update(db.session.query(Pin.id).filter(Pin.id == pin_id)).first()
        if pin_row is None:
            return False
        snapshot = pin_item_service.remaining_by_line(pin_id)
        if any(remaining > 0 for remaining in snapshot.values()):
            return False
        deleted = remove_fulfilled_pin(pin_id)
        db.session.commit()
        return deleted

    deleted = run_store_write(_op, description="reconcile pin")
    if deleted:
        current_app.logger.info("Reconcile removed completed pin %s", pin_id)
    return ReconcileResult(pin_id=pin_id, deleted=deleted)


def find_fulfilled_pin_ids() -> list[int]:
    """Pins that still have line items, all of them at zero."""
    rows = (
        db.session.query(PinItem.pin_id)
        .group_by(PinItem.pin_id)
        .having(func.max(PinItem.remaining_qty) == 0)
        .order_by(PinItem.pin_id.asc())
        .all()
    )
    return [pin_id for (pin_id,) in rows]


def sweep_completed() -> list[ReconcileResult]:
    """
    Periodic healing pass over pins left behind by failed completion deletes.

    Pins that never had line items are not touched here; reconcile() them
    explicitly if they should go.
    """
    results = []
    for pin_id in find_fulfilled_pin_ids():
        try:
            results.append(reconcile(pin_id))
        except StoreError:
            current_app.logger.exception("Sweep could not reconcile pin %s", pin_id)
    return results
