# Overview: End-to-end HTTP coverage for pin, dashboard, notification and system routes.

"""
Route Tests

Drives the blueprints through the Flask test client with gateway identity
headers. Status codes follow the error taxonomy:
ValidationError 400, missing identity 401, Unauthorized 403, NotFoundError 404.
"""

from relief.models import Notification
from relief.models.pins import STATUS_PENDING

from conftest import actor_headers, add_membership, line_ids, make_pin


PIN_BODY = {
    "type": "damaged",
    "phone": "+95-9-555-0100",
    "description": "Clinic roof gone",
    "lat": 16.8,
    "lng": 96.15,
}


class TestPinRoutes:

    def test_anonymous_report_is_pending(self, client, db_session):
        resp = client.post("/api/pins", json=PIN_BODY)

        assert resp.status_code == 201
        pin = resp.get_json()["pin"]
        assert pin["status"] == "pending"
        assert pin["kind"] == "damage"
        assert pin["lat"] == 16.8

    def test_tracker_report_is_confirmed(self, client, db_session, tracker):
        resp = client.post("/api/pins", json=PIN_BODY, headers=actor_headers("tracker-1"))

        assert resp.status_code == 201
        assert resp.get_json()["pin"]["status"] == "confirmed"

    def test_invalid_report_is_400(self, client, db_session):
        resp = client.post("/api/pins", json={**PIN_BODY, "lat": 123})

        assert resp.status_code == 400
        assert "lat" in resp.get_json()["error"]

    def test_list_with_bad_status_is_400(self, client, db_session):
        assert client.get("/api/pins?status=done").status_code == 400

    def test_list_by_status(self, client, db_session):
        pending = make_pin(db_session, status=STATUS_PENDING)
        make_pin(db_session)

        resp = client.get("/api/pins?status=pending")

        assert [p["id"] for p in resp.get_json()["pins"]] == [pending.id]

    def test_missing_pin_is_404(self, client, db_session):
        assert client.get("/api/pins/4040").status_code == 404

    def test_pin_detail(self, client, db_session, water):
        pin = make_pin(db_session, lines=[(water, 8, 3)])

        data = client.get(f"/api/pins/{pin.id}").get_json()["pin"]

        assert data["derived_status"] == "partially_accepted"
        assert data["items"][0]["accepted_qty"] == 5


class TestConfirmRoute:

    def test_requires_identity(self, client, db_session):
        pin = make_pin(db_session, status=STATUS_PENDING)

        assert client.post(f"/api/pins/{pin.id}/confirm", json={}).status_code == 401

    def test_non_tracker_is_403(self, client, db_session, tracker):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": tracker.id},
            headers=actor_headers("citizen-7"),
        )

        assert resp.status_code == 403

    def test_confirm_with_items(self, client, db_session, tracker, water):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": tracker.id, "items": [{"item_id": water.id, "requested_qty": 12}]},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["pin"]["status"] == "confirmed"
        assert body["pin"]["confirmed_by_membership_id"] == tracker.id
        assert [(i["requested_qty"], i["remaining_qty"]) for i in body["items"]] == [(12, 12)]

    def test_bad_items_reject_before_confirming(self, client, db_session, tracker, water):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": tracker.id, "items": [{"item_id": water.id, "requested_qty": 0}]},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 400
        assert client.get(f"/api/pins/{pin.id}").get_json()["pin"]["status"] == "pending"

    def test_unknown_item_rejects_before_confirming(self, client, db_session, tracker, water):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": tracker.id, "items": [{"item_id": 999999, "requested_qty": 3}]},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 404
        assert client.get(f"/api/pins/{pin.id}").get_json()["pin"]["status"] == "pending"

    def test_non_integer_membership_id_is_400(self, client, db_session, tracker):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": "abc"},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 400
        assert client.get(f"/api/pins/{pin.id}").get_json()["pin"]["status"] == "pending"

    def test_numeric_string_membership_id_confirms(self, client, db_session, tracker):
        pin = make_pin(db_session, status=STATUS_PENDING)

        resp = client.post(
            f"/api/pins/{pin.id}/confirm",
            json={"membership_id": str(tracker.id)},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 200
        assert resp.get_json()["pin"]["confirmed_by_membership_id"] == tracker.id


class TestFulfillmentRoutes:

    def test_attach_requires_fulfiller(self, client, db_session, water):
        pin = make_pin(db_session)

        resp = client.post(
            f"/api/pins/{pin.id}/items",
            json={"items": [{"item_id": water.id, "requested_qty": 2}]},
            headers=actor_headers("citizen-7"),
        )

        assert resp.status_code == 403

    def test_organization_attaches_and_accepts_until_gone(self, client, db_session, water, rice):
        pin = make_pin(db_session)
        pin_id = pin.id
        org = actor_headers("org-x", "Organization")

        resp = client.post(
            f"/api/pins/{pin_id}/items",
            json={"items": [{"item_id": water.id, "requested_qty": 10}, {"item_id": rice.id, "requested_qty": 5}]},
            headers=org,
        )
        assert resp.status_code == 201
        first, second = [i["id"] for i in resp.get_json()["items"]]

        resp = client.post(
            f"/api/pins/{pin_id}/accept",
            json={"items": [{"pin_item_id": first, "accepted_qty": 6}, {"pin_item_id": second, "accepted_qty": 5}]},
            headers=org,
        )
        assert resp.status_code == 200
        assert resp.get_json()["accepted"] is True
        assert resp.get_json()["completed"] is False

        resp = client.post(
            f"/api/pins/{pin_id}/accept",
            json={"items": [{"pin_item_id": first, "accepted_qty": 4}]},
            headers=org,
        )
        assert resp.get_json()["completed"] is True
        assert client.get(f"/api/pins/{pin_id}").status_code == 404

    def test_accept_on_pending_pin_is_400(self, client, db_session, tracker, water):
        pin = make_pin(db_session, status=STATUS_PENDING, lines=[(water, 3)])
        (line_id,) = line_ids(db_session, pin.id)

        resp = client.post(
            f"/api/pins/{pin.id}/accept",
            json={"items": [{"pin_item_id": line_id, "accepted_qty": 1}]},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 400

    def test_accept_unknown_line_is_404(self, client, db_session, tracker, water):
        pin = make_pin(db_session, lines=[(water, 3)])

        resp = client.post(
            f"/api/pins/{pin.id}/accept",
            json={"items": [{"pin_item_id": 999999, "accepted_qty": 1}]},
            headers=actor_headers("tracker-1"),
        )

        assert resp.status_code == 404

    def test_reconcile_route(self, client, db_session, tracker, water):
        pin = make_pin(db_session, lines=[(water, 3, 0)])
        pin_id = pin.id

        resp = client.post(f"/api/pins/{pin_id}/reconcile", headers=actor_headers("tracker-1"))

        assert resp.get_json() == {"pin_id": pin_id, "deleted": True}

    def test_reconcile_requires_fulfiller(self, client, db_session, tracker):
        pin = make_pin(db_session, status=STATUS_PENDING)
        pin_id = pin.id

        resp = client.post(f"/api/pins/{pin_id}/reconcile", headers=actor_headers("citizen-7"))

        assert resp.status_code == 403
        assert client.get(f"/api/pins/{pin_id}").status_code == 200

    def test_delete_is_organization_only(self, client, db_session, tracker, water):
        pin = make_pin(db_session, lines=[(water, 3)])
        pin_id = pin.id

        assert client.delete(f"/api/pins/{pin_id}", headers=actor_headers("tracker-1")).status_code == 403

        resp = client.delete(f"/api/pins/{pin_id}", headers=actor_headers("org-x", "organization"))
        assert resp.status_code == 200
        assert client.get(f"/api/pins/{pin_id}").status_code == 404


class TestDashboardRoutes:

    def test_help_requests_and_supplies(self, client, db_session, geocoder, water):
        geocoder.regions[(16.8, 96.15)] = "Yangon, Yangon Region"
        make_pin(db_session, lines=[(water, 10, 6)])

        requests = client.get("/api/help-requests").get_json()["help_requests"]
        supplies = client.get("/api/supplies/by-region").get_json()["supplies"]

        assert [r["status"] for r in requests] == ["partially_accepted"]
        assert supplies == [{
            "region": "Yangon, Yangon Region",
            "item_name": "Drinking Water",
            "unit": "bottles",
            "item_id": water.id,
            "total_quantity_needed": 6,
        }]

    def test_finished_line_beside_untouched_line_is_pending(self, client, db_session, geocoder, water, rice):
        pin = make_pin(db_session, lines=[(water, 5, 0), (rice, 10, 10)])

        requests = client.get("/api/help-requests").get_json()["help_requests"]
        detail = client.get(f"/api/pins/{pin.id}").get_json()["pin"]

        assert [r["status"] for r in requests] == ["pending"]
        assert detail["derived_status"] == "pending"

    def test_items(self, client, db_session, water, rice):
        names = [i["name"] for i in client.get("/api/items").get_json()["items"]]

        assert names == ["Drinking Water", "Rice"]


class TestNotificationRoutes:

    def test_fan_out_visible_to_tracker(self, client, db_session, relief_org):
        add_membership(db_session, "tracker-2", org=relief_org)
        client.post("/api/pins", json=PIN_BODY)

        resp = client.get("/api/notifications?unread=1", headers=actor_headers("tracker-2"))

        (notification,) = resp.get_json()["notifications"]
        assert notification["type"] == "pin_reported"
        assert notification["title"] == "Damaged Location Reported"

        nid = notification["id"]
        assert client.post(f"/api/notifications/{nid}/read", headers=actor_headers("tracker-2")).status_code == 200
        assert client.get("/api/notifications?unread=1", headers=actor_headers("tracker-2")).get_json() == {
            "notifications": []
        }

    def test_requires_identity(self, client, db_session):
        assert client.get("/api/notifications").status_code == 401

    def test_read_all_and_delete(self, client, db_session):
        db_session.add_all([
            Notification(recipient_actor_id="tracker-9", type="pin_reported", title="a", body="", payload={}),
            Notification(recipient_actor_id="tracker-9", type="pin_reported", title="b", body="", payload={}),
        ])
        db_session.commit()
        headers = actor_headers("tracker-9")

        assert client.post("/api/notifications/read-all", headers=headers).get_json() == {"updated": 2}

        nid = client.get("/api/notifications", headers=headers).get_json()["notifications"][0]["id"]
        assert client.delete(f"/api/notifications/{nid}", headers=headers).status_code == 200
        assert client.delete(f"/api/notifications/{nid}", headers=headers).status_code == 404

    def test_bad_limit_is_400(self, client, db_session):
        headers = actor_headers("tracker-9")

        assert client.get("/api/notifications?limit=-1", headers=headers).status_code == 400
        assert client.get("/api/notifications?limit=0", headers=headers).status_code == 400
        assert client.get("/api/notifications?limit=abc", headers=headers).status_code == 400

    def test_limit_caps_result_size(self, client, db_session):
        db_session.add_all([
            Notification(recipient_actor_id="tracker-9", type="pin_reported", title=str(n), body="", payload={})
            for n in range(3)
        ])
        db_session.commit()

        resp = client.get("/api/notifications?limit=2", headers=actor_headers("tracker-9"))

        assert resp.status_code == 200
        assert len(resp.get_json()["notifications"]) == 2


class TestSystemRoutes:

    def test_health(self, client, db_session, water):
        resp = client.get("/health")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["catalog_items"] == 1

    def test_version(self, client, db_session):
        assert client.get("/version").get_json()["api_version"] == "0.1.0"
