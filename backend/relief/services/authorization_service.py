# Overview: Authorization gate for pin confirmation and fulfillment.

"""
Who may confirm a report or act on line items.

- Trackers are actors with an active membership. Any active membership
  counts here: member_type is not reliably populated upstream (see the
  fallback in notification_service).
- Organizations act under Organization.account_actor_id, or present the
  "organization" role from the gateway.

All checks are read-only predicates over membership/organization rows.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import Unauthorized
from ..models import Membership, Organization
from ..models.membership import MEMBER_STATUS_ACTIVE
from ..models.pins import STATUS_CONFIRMED, STATUS_PENDING


ROLE_ORGANIZATION = "organization"


def get_active_membership(actor_id: str | None) -> Membership | None:
    """Return the actor's active membership (needed as confirmed_by reference)."""
    if not actor_id:
        return None
    return (
        db.session.query(Membership)
        .filter_by(actor_id=actor_id, status=MEMBER_STATUS_ACTIVE)
        .order_by(Membership.id.asc())
        .first()
    )


def is_active_tracker(actor_id: str | None) -> bool:
    return get_active_membership(actor_id) is not None


def is_organization(actor_id: str | None) -> bool:
    if not actor_id:
        return False
    return db.session.query(Organization.id).filter_by(account_actor_id=actor_id).first() is not None


def classify_initial_status(reporter_actor_id: str | None, reporter_role: str | None) -> str:
    """
    Status a new pin starts in.

    - anonymous -> pending, unconditionally
    - active tracker -> confirmed
    - organization role -> confirmed
    - anyone else -> pending (waits for a tracker)
    """
    if not reporter_actor_id:
        return STATUS_PENDING
    if is_active_tracker(reporter_actor_id):
        return STATUS_CONFIRMED
    if reporter_role == ROLE_ORGANIZATION:
        return STATUS_CONFIRMED
    return STATUS_PENDING


def require_tracker_membership(actor_id: str | None, membership_id: int | None) -> Membership:
    """
    Resolve the membership a confirmation is recorded under.

    Raises Unauthorized unless membership_id is an active membership owned by actor_id.
    """
    if not actor_id or membership_id is None:
        raise Unauthorized("Only trackers can confirm pins")

    membership = db.session.query(Membership).filter_by(id=membership_id).first()
    if membership is None or membership.actor_id != actor_id or not membership.is_active:
        raise Unauthorized("Only trackers can confirm pins")
    return membership


def can_fulfill(actor_id: str | None, actor_role: str | None) -> bool:
    """Trackers and organizations may accept or attach line items."""
    if not actor_id:
        return False
    if actor_role == ROLE_ORGANIZATION or is_organization(actor_id):
        return True
    return is_active_tracker(actor_id)
