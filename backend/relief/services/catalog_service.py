# Overview: Read-only item catalog lookups plus a seed helper for fresh installs.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import Item


DEFAULT_ITEMS = [
    ("Drinking Water", "bottles", "water"),
    ("Rice", "kg", "food"),
    ("Instant Noodles", "packs", "food"),
    ("Blankets", "pieces", "shelter"),
    ("Tarpaulin", "sheets", "shelter"),
    ("First Aid Kit", "kits", "medical"),
    ("Oral Rehydration Salts", "sachets", "medical"),
    ("Hygiene Kit", "kits", "hygiene"),
]


def list_items() -> list[Item]:
    return db.session.query(Item).order_by(Item.name.asc()).all()


def get_item(item_id: int) -> Item:
    item = db.session.query(Item).filter_by(id=item_id).first()
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    return item


def seed_default_items() -> int:
    """
    Insert the default catalog entries that are missing.

    Safe to call repeatedly (idempotent). Returns the number of items created.
    """
    existing = {name for (name,) in db.session.query(Item.name).all()}
    created = 0
    for name, unit, category in DEFAULT_ITEMS:
        if name in existing:
            continue
        db.session.add(Item(name=name, unit=unit, category=category))
        created += 1
    db.session.commit()
    return created
