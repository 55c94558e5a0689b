# Overview: Tracker fan-out for new pins and recipient-side notification helpers.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError
from ..models import Membership, Notification, Pin
from ..models.membership import MEMBER_STATUS_ACTIVE, MEMBER_TYPE_TRACKER
from ..models.pins import KIND_DAMAGE


TYPE_PIN_REPORTED = "pin_reported"

TITLE_DAMAGE = "Damaged Location Reported"
TITLE_SHELTER = "Safe Zone Reported"

ELLIPSIS = "…"


def truncate_body(text: str | None, limit: int | None = None) -> str:
    """Cut text longer than limit to limit - 3 characters plus an ellipsis."""
    if limit is None:
        limit = current_app.config.get("NOTIFICATION_BODY_MAX_LENGTH", 140)
    text = text or ""
    if len(text) > limit:
        return text[: limit - 3] + ELLIPSIS
    return text


def resolve_tracker_recipients(exclude_actor_id: str | None = None) -> tuple[list[str], bool]:
    """
    Actor ids that should hear about a new pin.

    Prefers memberships explicitly typed "tracker". When no such membership
    exists at all, widens to every active member. Returns (recipients, widened).
    """
    strict = (
        db.session.query(Membership.actor_id)
        .filter(
            Membership.status == MEMBER_STATUS_ACTIVE,
            Membership.member_type == MEMBER_TYPE_TRACKER,
        )
        .order_by(Membership.id.asc())
        .all()
    )
    widened = False
    rows = strict
    if not rows:
        widened = True
        rows = (
            db.session.query(Membership.actor_id)
            .filter(Membership.status == MEMBER_STATUS_ACTIVE)
            .order_by(Membership.id.asc())
            .all()
        )

    recipients: list[str] = []
    seen: set[str] = set()
    for (actor_id,) in rows:
        if not actor_id or actor_id == exclude_actor_id or actor_id in seen:
            continue
        seen.add(actor_id)
        recipients.append(actor_id)
    return recipients, widened


def pin_snapshot(pin: Pin) -> dict:
    return {
        "pin_id": pin.id,
        "kind": pin.kind,
        "status": pin.status,
        "lat": pin.latitude,
        "lng": pin.longitude,
        "description": pin.description,
        "phone": pin.phone,
    }


def fan_out_pin_reported(pin: Pin) -> int:
    """
    Write one pin_reported notification per tracker (reporter excluded).

    Single batch insert. Returns the number of notifications written. Errors
    propagate; pin_service decides they are non-fatal.
    """
    recipients, widened = resolve_tracker_recipients(exclude_actor_id=pin.reporter_actor_id)
    if not recipients:
        current_app.logger.info("[pin_notifications] No tracker recipients for pin %s", pin.id)
        return 0

    title = TITLE_DAMAGE if pin.kind == KIND_DAMAGE else TITLE_SHELTER
    body = truncate_body(pin.description)
    payload = pin_snapshot(pin)

    db.session.add_all([
        Notification(
            recipient_actor_id=actor_id,
            type=TYPE_PIN_REPORTED,
            title=title,
            body=body,
            payload=payload,
        )
        for actor_id in recipients
    ])
    db.session.commit()

    if widened:
        current_app.logger.info(
            "[pin_notifications] Fallback fan-out to %d active member(s) for pin %s", len(recipients), pin.id
        )
    else:
        current_app.logger.info(
            "[pin_notifications] Fan-out pin_reported to %d tracker(s) for pin %s", len(recipients), pin.id
        )
    return len(recipients)


def list_notifications(actor_id: str, *, unread_only: bool = False, limit: int | None = None) -> list[Notification]:
    q = db.session.query(Notification).filter_by(recipient_actor_id=actor_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def _get_owned(notification_id: int, actor_id: str) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter_by(id=notification_id, recipient_actor_id=actor_id)
        .first()
    )
    if notification is None:
        raise NotFoundError(f"Notification {notification_id} not found")
    return notification


def mark_read(notification_id: int, actor_id: str) -> Notification:
    notification = _get_owned(notification_id, actor_id)
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(actor_id: str) -> int:
    updated = (
        db.session.query(Notification)
        .filter_by(recipient_actor_id=actor_id, is_read=False)
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(notification_id: int, actor_id: str) -> None:
    notification = _get_owned(notification_id, actor_id)
    db.session.delete(notification)
    db.session.commit()
