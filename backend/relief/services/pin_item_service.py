# Overview: Line-item ledger; owns PinItem rows and their quantity invariants.

"""
Line-Item Ledger Invariants (authoritative)

- requested_qty > 0, fixed when the line is attached.
- 0 <= remaining_qty <= requested_qty at all times.
- remaining_qty only decreases, and only through decrement_remaining(), which
  is a single UPDATE evaluated by the database:
      remaining_qty = CASE WHEN remaining_qty > q THEN remaining_qty - q ELSE 0 END
  Never read remaining_qty in Python and write back a computed value.
- The ledger does not look at pin status; accept policy lives in
  fulfillment_service.
- Helpers that write (decrement_remaining, delete_pin_items) do not commit.
  The caller owns the transaction.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import NotFoundError
from ..models import Item, Pin, PinItem
from ..validation import parse_item_lines
from .concurrency import decrement_with_floor, lock_for_update, run_store_write


def require_catalog_items(item_ids) -> None:
    """Raise NotFoundError unless every id is a catalog item."""
    wanted = set(item_ids)
    if not wanted:
        return
    known = {row[0] for row in db.session.query(Item.id).filter(Item.id.in_(wanted)).all()}
    missing = sorted(wanted - known)
    if missing:
        raise NotFoundError(f"Unknown item id(s): {', '.join(str(m) for m in missing)}")


def attach_items(pin_id: int, lines) -> list[PinItem]:
    """
    Create one PinItem per {item_id, requested_qty} line.

    Allowed on pending pins (trackers may pre-populate a report before
    confirming it). Raises ValidationError for non-positive quantities and
    NotFoundError for an unknown pin or catalog item.
    """
    parsed = parse_item_lines(lines)
    if not parsed:
        return []

    def _op():
        if lock_for_update(db.session.query(Pin.id).filter(Pin.id == pin_id)).first() is None:
            raise NotFoundError(f"Pin {pin_id} not found")

        require_catalog_items(line["item_id"] for line in parsed)

        rows = [
            PinItem(
                pin_id=pin_id,
                item_id=line["item_id"],
                requested_qty=line["requested_qty"],
                remaining_qty=line["requested_qty"],
            )
            for line in parsed
        ]
        db.session.add_all(rows)
        db.session.commit()
        return rows

    return run_store_write(_op, description="attach pin items")


def list_pin_items(pin_id: int) -> list[PinItem]:
    """Current line items for a pin, with catalog details, refreshed from the database."""
    return (
        db.session.query(PinItem)
        .options(joinedload(PinItem.item))
        .filter(PinItem.pin_id == pin_id)
        .order_by(PinItem.id.asc())
        .populate_existing()
        .all()
    )


def get_pin_item(pin_item_id: int) -> PinItem:
    pin_item = db.session.query(PinItem).filter_by(id=pin_item_id).populate_existing().first()
    if pin_item is None:
        raise NotFoundError(f"Pin item {pin_item_id} not found")
    return pin_item


def decrement_remaining(pin_item_id: int, quantity: int, *, pin_id: int | None = None) -> int:
    """
    Atomically lower remaining_qty by quantity, flooring at zero.

    Returns the number of rows updated (0 when the line no longer exists).
    """
    query = db.session.query(PinItem).filter(PinItem.id == pin_item_id)
    if pin_id is not None:
        query = query.filter(PinItem.pin_id == pin_id)
    return query.update(
        {PinItem.remaining_qty: decrement_with_floor(PinItem.remaining_qty, quantity)},
        synchronize_session=False,
    )


def remaining_by_line(pin_id: int) -> dict[int, int]:
    """Fresh {pin_item_id: remaining_qty} snapshot straight from the table."""
    rows = (
        db.session.query(PinItem.id, PinItem.remaining_qty)
        .filter(PinItem.pin_id == pin_id)
        .all()
    )
    return {pin_item_id: remaining for pin_item_id, remaining in rows}


def count_pin_items(pin_id: int) -> int:
    return int(
        db.session.query(func.count(PinItem.id)).filter(PinItem.pin_id == pin_id).scalar() or 0
    )


def all_fulfilled(pin_id: int) -> bool:
    """True when the pin has at least one line and every line is at zero."""
    snapshot = remaining_by_line(pin_id)
    return bool(snapshot) and all(remaining == 0 for remaining in snapshot.values())


def delete_pin_items(pin_id: int) -> int:
    """Bulk delete every line of a pin. Returns rows deleted."""
    return (
        db.session.query(PinItem)
        .filter(PinItem.pin_id == pin_id)
        .delete(synchronize_session=False)
    )
