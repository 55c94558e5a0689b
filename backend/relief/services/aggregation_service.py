# Overview: Region aggregation of outstanding need and the organization dashboard feed.

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Pin, PinItem
from ..models.pins import KIND_DAMAGE, STATUS_CONFIRMED
from .geocoding_service import UNKNOWN_REGION, get_geocoder
from .pin_service import derive_status


class _RegionCache:
    """Region label per pin id; one geocoding call per pin per run."""

    def __init__(self, geocoder):
        self._geocoder = geocoder
        self._regions: dict[int, str] = {}

    def region_for(self, pin: Pin) -> str:
        if pin.id not in self._regions:
            try:
                region = self._geocoder.reverse_geocode(pin.latitude, pin.longitude)
            except Exception:
                current_app.logger.exception("Geocoding raised for pin %s", pin.id)
                region = UNKNOWN_REGION
            self._regions[pin.id] = region or UNKNOWN_REGION
        return self._regions[pin.id]


def _confirmed_pins_with_items() -> list[Pin]:
    return (
        db.session.query(Pin)
        .options(joinedload(Pin.items).joinedload(PinItem.item))
        .filter(Pin.status == STATUS_CONFIRMED)
        .order_by(Pin.created_at.desc(), Pin.id.desc())
        .all()
    )


def aggregate_outstanding_by_region(geocoder=None) -> list[dict]:
    """
    Outstanding quantity per (region, item) across confirmed pins.

    Sums remaining_qty, so partially fulfilled lines only count what is still
    needed. Fully fulfilled pins are already gone (fulfillment_service), so
    no zero filtering happens here.
    """
    regions = _RegionCache(geocoder or get_geocoder())
    totals: dict[tuple[str, str], dict] = {}

    for pin in _confirmed_pins_with_items():
        if not pin.items:
            continue
        region = regions.region_for(pin)
        for pin_item in pin.items:
            item = pin_item.item
            if item is None:
                continue
            key = (region, item.name)
            entry = totals.get(key)
            if entry is None:
                entry = totals[key] = {
                    "region": region,
                    "item_name": item.name,
                    "unit": item.unit,
                    "item_id": item.id,
                    "total_quantity_needed": 0,
                }
            entry["total_quantity_needed"] += pin_item.remaining_qty

    return sorted(totals.values(), key=lambda e: (e["region"], e["item_name"]))


def list_help_requests(geocoder=None) -> list[dict]:
    """
    Confirmed pins as help requests for the organization dashboard.

    Each request carries its derived status (pending / partially_accepted),
    the full item list and the lines that have been accepted so far. Pins whose
    lines are all fulfilled are skipped.
    """
    regions = _RegionCache(geocoder or get_geocoder())
    requests = []

    for pin in _confirmed_pins_with_items():
        pin_items = sorted(pin.items, key=lambda pi: pi.id)
        status = derive_status(pin_items)
        if status is None:
            continue

        location = regions.region_for(pin)
        requests.append({
            "id": pin.id,
            "title": f"Emergency Response - {'Damage' if pin.kind == KIND_DAMAGE else 'Shelter'} Report",
            "description": pin.description or "",
            "location": location,
            "region": location,
            "lat": pin.latitude,
            "lng": pin.longitude,
            "image_url": pin.image_url,
            "status": status,
            "requested_by": pin.reporter_actor_id or pin.phone,
            "requested_at": pin.to_dict()["created_at"],
            "required_items": [
                {
                    "pin_item_id": pi.id,
                    "item_id": pi.item_id,
                    "item_name": pi.item.name if pi.item else "Unknown",
                    "unit": pi.item.unit if pi.item else "",
                    "requested_qty": pi.requested_qty,
                    "remaining_qty": pi.remaining_qty,
                }
                for pi in pin_items
            ],
            "accepted_items": [
                {
                    "pin_item_id": pi.id,
                    "item_name": pi.item.name if pi.item else "Unknown",
                    "unit": pi.item.unit if pi.item else "",
                    "requested_qty": pi.requested_qty,
                    "accepted_qty": pi.accepted_qty,
                    "remaining_qty": pi.remaining_qty,
                }
                for pi in pin_items
                if pi.remaining_qty < pi.requested_qty
            ],
        })
    return requests
