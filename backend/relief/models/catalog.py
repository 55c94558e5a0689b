from __future__ import annotations

from ..extensions import db


class Item(db.Model):
    """Reference catalog of supplies. Read-only from the fulfillment engine's point of view."""
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_items_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} unit={self.unit!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "category": self.category,
        }
