# backend/relief/routes/pins.py
"""
Help-request (pin) routes.

ACTOR CONTEXT: identity comes from the gateway headers (see decorators.py).
- Anyone, including anonymous reporters, may create a pin.
- Confirmation requires an active tracker membership.
- Attaching, accepting and reconciling line items requires a tracker or organization.
- Manual deletion is organization-only.

Accept responses always carry both "accepted" and "completed" so the client
can tell failed / accepted-but-open / accepted-and-closed apart.
"""
from flask import Blueprint, current_app, g, request

from ..errors import ReliefError, Unauthorized, error_response
from ..decorators import require_actor, with_actor
from ..services import authorization_service, fulfillment_service, pin_item_service, pin_service
from ..validation import parse_item_lines, parse_membership_id


pins_bp = Blueprint("pins", __name__, url_prefix="/api/pins")


def _require_fulfiller() -> None:
    if not authorization_service.can_fulfill(g.actor_id, g.actor_role):
        raise Unauthorized("Only trackers and organizations can manage pin items")


@pins_bp.post("")
@with_actor
def create_pin_route():
    """Report a new help request. Status is decided from the reporter's identity."""
    payload = request.get_json(silent=True) or {}

    try:
        pin = pin_service.create_pin(payload, reporter_actor_id=g.actor_id, reporter_role=g.actor_role)
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create pin")
        return {"error": "Failed to create pin"}, 500

    return {"pin": pin.to_dict()}, 201


@pins_bp.get("")
def list_pins_route():
    status = request.args.get("status") or None
    try:
        pins = pin_service.list_pins(status=status)
    except ReliefError as e:
        return error_response(e)
    return {"pins": [p.to_dict() for p in pins]}


@pins_bp.get("/<int:pin_id>")
def get_pin_route(pin_id: int):
    try:
        return {"pin": pin_service.get_pin_detail(pin_id)}
    except ReliefError as e:
        return error_response(e)


@pins_bp.post("/<int:pin_id>/confirm")
@require_actor
def confirm_pin_route(pin_id: int):
    """
    Confirm a pending pin.

    Body: {"membership_id": int, "items": [{"item_id", "requested_qty"}, ...]?}
    Items, when given, are validated (quantities and catalog ids) up front and
    attached after confirmation.
    """
    payload = request.get_json(silent=True) or {}

    try:
        lines = parse_item_lines(payload.get("items"))
        membership_id = parse_membership_id(payload.get("membership_id"))
        pin_item_service.require_catalog_items(line["item_id"] for line in lines)
        pin = pin_service.confirm_pin(pin_id, g.actor_id, membership_id)
        created = pin_item_service.attach_items(pin_id, lines) if lines else []
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm pin")
        return {"error": "Failed to confirm pin"}, 500

    return {"pin": pin.to_dict(), "items": [pi.to_dict() for pi in created]}


@pins_bp.post("/<int:pin_id>/items")
@require_actor
def attach_items_route(pin_id: int):
    """Body: {"items": [{"item_id": int, "requested_qty": int}, ...]}"""
    payload = request.get_json(silent=True) or {}

    try:
        _require_fulfiller()
        created = pin_item_service.attach_items(pin_id, payload.get("items"))
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to attach pin items")
        return {"error": "Failed to attach pin items"}, 500

    return {"items": [pi.to_dict() for pi in created]}, 201


@pins_bp.post("/<int:pin_id>/accept")
@require_actor
def accept_items_route(pin_id: int):
    """
    Accept quantities of a pin's line items.

    Body: {"items": [{"pin_item_id": int, "accepted_qty": int}, ...]}
    Over-acceptance clamps to zero remaining.
    """
    payload = request.get_json(silent=True) or {}

    try:
        _require_fulfiller()
        result = fulfillment_service.accept_items(pin_id, payload.get("items"))
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to accept pin items")
        return {"error": "Failed to accept pin items"}, 500

    return result.to_dict()


@pins_bp.post("/<int:pin_id>/reconcile")
@require_actor
def reconcile_pin_route(pin_id: int):
    try:
        _require_fulfiller()
        result = fulfillment_service.reconcile(pin_id)
    except ReliefError as e:
        return error_response(e)
    return result.to_dict()


@pins_bp.delete("/<int:pin_id>")
@require_actor
def delete_pin_route(pin_id: int):
    try:
        pin_service.delete_pin(pin_id, g.actor_id, g.actor_role)
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete pin")
        return {"error": "Failed to delete pin"}, 500
    return {"deleted": True, "pin_id": pin_id}
