# backend/relief/routes/dashboard.py
"""
Read-only views for responding organizations.

- /api/help-requests: open confirmed pins with derived status
- /api/supplies/by-region: outstanding quantities per region and item
- /api/items: supply catalog

Region labels come from reverse geocoding; a geocoder outage degrades labels
to "Unknown Region" instead of failing the request.
"""
from flask import Blueprint, current_app

from ..errors import ReliefError, error_response
from ..services import aggregation_service, catalog_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/help-requests")
def list_help_requests_route():
    try:
        requests = aggregation_service.list_help_requests()
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load help requests")
        return {"error": "Failed to load help requests"}, 500
    return {"help_requests": requests}


@dashboard_bp.get("/supplies/by-region")
def supplies_by_region_route():
    try:
        supplies = aggregation_service.aggregate_outstanding_by_region()
    except ReliefError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to aggregate supplies")
        return {"error": "Failed to aggregate supplies"}, 500
    return {"supplies": supplies}


@dashboard_bp.get("/items")
def list_items_route():
    return {"items": [item.to_dict() for item in catalog_service.list_items()]}
