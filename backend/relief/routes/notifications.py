# backend/relief/routes/notifications.py
"""
Recipient-side notification routes.

Every route is scoped to the calling actor; other actors' notifications are
reported as not found.
"""
from flask import Blueprint, g, request

from ..errors import ReliefError, error_response
from ..decorators import require_actor
from ..services import notification_service
from ..validation import parse_limit


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_actor
def list_notifications_route():
    unread_only = request.args.get("unread") in ("1", "true", "yes")
    try:
        limit = parse_limit(request.args.get("limit"))
    except ReliefError as e:
        return error_response(e)
    notifications = notification_service.list_notifications(g.actor_id, unread_only=unread_only, limit=limit)
    return {"notifications": [n.to_dict() for n in notifications]}


@notifications_bp.post("/<int:notification_id>/read")
@require_actor
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.actor_id)
    except ReliefError as e:
        return error_response(e)
    return {"notification": notification.to_dict()}


@notifications_bp.post("/read-all")
@require_actor
def mark_all_read_route():
    updated = notification_service.mark_all_read(g.actor_id)
    return {"updated": updated}


@notifications_bp.delete("/<int:notification_id>")
@require_actor
def delete_notification_route(notification_id: int):
    try:
        notification_service.delete_notification(notification_id, g.actor_id)
    except ReliefError as e:
        return error_response(e)
    return {"deleted": True, "notification_id": notification_id}
