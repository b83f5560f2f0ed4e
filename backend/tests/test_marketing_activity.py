"""
Marketing trip and shop visit tests.

Verifies:
- One open trip per staff member (second punch-in is 400, punch-out without a trip is 404)
- Punch-out rolls the trip's visits into the trip totals
- One visit row per (trip, shop); a resubmission updates it in place
- Visit duration is rounded to the nearest minute
"""

from datetime import datetime, timedelta

import pytest

from fieldops.models import MarketingStaffActivity, RetailerShopActivity
from fieldops.time_utils import minutes_between


def _punch_in_payload(distributor_id, **overrides):
    payload = {
        "distributorId": distributor_id,
        "areaName": "Andheri East",
        "modeOfTransport": "Bike",
        "selfieImage": "https://cdn.fieldops.test/selfies/a.jpg",
        "tripCompanion": {"category": "Distributor Staff", "name": "Ramesh"},
        "shops": [{"name": "New Kirana"}],
    }
    payload.update(overrides)
    return payload


def _punch_in(client, distributor_id, headers, **overrides):
    return client.post("/api/marketing-activity/punch-in", json=_punch_in_payload(distributor_id, **overrides), headers=headers)


def _visit(client, headers, **body):
    return client.post("/api/retailer-shop-activity", json=body, headers=headers)


# =============================================================================
# PUNCH IN / OUT
# =============================================================================


class TestPunch:

    def test_punch_in_creates_open_trip(self, client, distributor, marketing_headers):
        resp = _punch_in(client, distributor.id, marketing_headers)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["status"] == "Punched In"
        assert data["distributor"] == distributor.name
        assert data["shops"][0]["name"] == "New Kirana"
        assert data["shops"][0]["isTemporary"] is True

        current = client.get("/api/marketing-activity/current", headers=marketing_headers).get_json()
        assert current["isPunchedIn"] is True
        assert current["data"]["id"] == data["id"]

    def test_second_punch_in_is_rejected(self, client, db_session, distributor, marketing, marketing_headers):
        assert _punch_in(client, distributor.id, marketing_headers).status_code == 201

        resp = _punch_in(client, distributor.id, marketing_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "You are already punched in. Please punch out first."
        assert db_session.query(MarketingStaffActivity).filter_by(marketing_staff_id=marketing.id).count() == 1

    def test_punch_out_then_in_again(self, client, distributor, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        resp = client.patch("/api/marketing-activity/punch-out", json={}, headers=marketing_headers)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "Punched Out"
        assert data["durationMinutes"] == 0
        assert data["totalShopsVisited"] == 0

        assert _punch_in(client, distributor.id, marketing_headers).status_code == 201

    def test_punch_out_without_trip(self, client, marketing_headers):
        resp = client.patch("/api/marketing-activity/punch-out", json={}, headers=marketing_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "No active marketing activity found. Please punch in first."

    @pytest.mark.parametrize(
        "overrides",
        [
            {"areaName": ""},
            {"selfieImage": None},
            {"tripCompanion": {"category": "Friend", "name": "Ravi"}},
            {"tripCompanion": {"category": "Other"}},
        ],
    )
    def test_punch_in_validation(self, client, distributor, marketing_headers, overrides):
        assert _punch_in(client, distributor.id, marketing_headers, **overrides).status_code == 400

    def test_other_staff_can_punch_in_independently(self, client, distributor, marketing_headers, make_user, headers_for):
        other = make_user("Marketing Staff", email="other@fieldops.test")
        assert _punch_in(client, distributor.id, marketing_headers).status_code == 201
        assert _punch_in(client, distributor.id, headers_for(other)).status_code == 201

    def test_manager_cannot_punch_in(self, client, distributor, manager_headers):
        assert _punch_in(client, distributor.id, manager_headers).status_code == 403


# =============================================================================
# SHOP VISITS
# =============================================================================


class TestShopVisits:

    def test_visit_needs_open_trip(self, client, distributor, legacy_shop, marketing_headers):
        resp = _visit(client, marketing_headers, shopId=legacy_shop.id, distributorId=distributor.id, isLegacy=True)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No active marketing activity found. Please punch in first."

    def test_duration_rounds_to_nearest_minute(self, client, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        resp = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitStartTime="2025-01-10T10:00:00Z",
            visitEndTime="2025-01-10T10:02:05Z",
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["visitDurationMinutes"] == 2
        assert data["isLegacyShop"] is True
        assert data["shopName"] == "Old Corner Store"

    def test_resubmission_updates_same_row(self, client, db_session, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        first = _visit(client, marketing_headers, shopId=legacy_shop.id, distributorId=distributor.id, isLegacy=True)
        assert first.status_code == 201

        second = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            complaint="Late delivery",
            salesOrders=[{"brandName": "Acme", "variant": "Gold", "size": "1L", "quantity": 4, "rate": 25}],
        )
        assert second.status_code == 200
        assert second.get_json()["data"]["id"] == first.get_json()["data"]["id"]
        assert second.get_json()["data"]["complaint"] == "Late delivery"
        assert db_session.query(RetailerShopActivity).count() == 1

    def test_unknown_shop(self, client, distributor, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        resp = _visit(client, marketing_headers, shopId=9999, distributorId=distributor.id)
        assert resp.status_code == 404

    def test_end_before_start(self, client, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        resp = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitStartTime="2025-01-10T10:05:00Z",
            visitEndTime="2025-01-10T10:00:00Z",
        )
        assert resp.status_code == 400

    def test_update_end_before_stored_start(self, client, db_session, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        first = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitStartTime="2025-01-10T10:05:00Z",
        )
        assert first.status_code == 201

        resp = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitEndTime="2025-01-10T10:00:00Z",
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["field"] == "visitEndTime"

        row = db_session.get(RetailerShopActivity, first.get_json()["data"]["id"])
        assert row.visit_end_time is None
        assert row.visit_duration_minutes == 0

    def test_update_start_after_stored_end(self, client, db_session, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitStartTime="2025-01-10T10:00:00Z",
            visitEndTime="2025-01-10T10:10:00Z",
        )

        resp = _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            visitStartTime="2025-01-10T10:20:00Z",
        )
        assert resp.status_code == 400
        assert db_session.query(RetailerShopActivity).one().visit_duration_minutes == 10

    def test_punch_out_rolls_up_visits(self, client, distributor, legacy_shop, marketing_headers):
        trip_id = _punch_in(client, distributor.id, marketing_headers).get_json()["data"]["id"]
        _visit(
            client,
            marketing_headers,
            shopId=legacy_shop.id,
            distributorId=distributor.id,
            isLegacy=True,
            salesOrders=[
                {"brandName": "Acme", "variant": "Gold", "size": "1L", "quantity": 4, "rate": 25},
                {"brandName": "Acme", "variant": "Gold", "size": "5L", "quantity": 1, "rate": 110},
            ],
        )

        data = client.patch("/api/marketing-activity/punch-out", json={}, headers=marketing_headers).get_json()["data"]
        assert data["id"] == trip_id
        assert data["totalShopsVisited"] == 1
        assert data["totalSalesOrders"] == 2
        assert data["totalSalesValue"] == pytest.approx(210.0)

        visits = client.get(f"/api/marketing-activity/{trip_id}/shop-visits", headers=marketing_headers).get_json()
        assert visits["count"] == 1


# =============================================================================
# ROUNDING
# =============================================================================


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, 0),
        (29, 0),
        (30, 1),
        (89, 1),
        (90, 2),
        (125, 2),
    ],
)
def test_minutes_between_rounds_half_up(seconds, expected):
    start = datetime(2025, 1, 10, 10, 0, 0)
    assert minutes_between(start, start + timedelta(seconds=seconds)) == expected


# =============================================================================
# FRESH ORDERS
# =============================================================================


def _fresh(client, headers, distributor_id, shop_id, orders, **extra):
    body = {"distributorId": distributor_id, "shopId": shop_id, "orders": orders, **extra}
    return client.post("/api/fresh-orders", json=body, headers=headers)


GOLD_1L = {"brandName": "Acme", "variant": "Gold", "size": "1L", "quantity": 4, "rate": 25}
GOLD_5L = {"brandName": "Acme", "variant": "Gold", "size": "5L", "quantity": 1, "rate": 110}


class TestFreshOrders:

    def test_needs_open_trip_without_visit_today(self, client, distributor, legacy_shop, marketing_headers):
        resp = _fresh(client, marketing_headers, distributor.id, legacy_shop.id, [GOLD_1L], isLegacy=True)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No active marketing activity found. Please punch in first."

    def test_record_then_replace(self, client, db_session, distributor, legacy_shop, marketing, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        first = _fresh(client, marketing_headers, distributor.id, legacy_shop.id, [GOLD_1L], isLegacy=True)
        assert first.status_code == 201
        data = first.get_json()["data"]
        assert data["shopName"] == "Old Corner Store"
        assert data["distributorName"] == distributor.name
        assert data["marketingStaffId"] == marketing.id
        assert data["salesOrders"][0]["orderType"] == "Fresh Order"

        second = _fresh(client, marketing_headers, distributor.id, legacy_shop.id, [GOLD_5L], isLegacy=True)
        assert second.status_code == 200
        assert second.get_json()["data"]["visitId"] == data["visitId"]
        assert [o["size"] for o in second.get_json()["data"]["salesOrders"]] == ["5L"]
        assert db_session.query(RetailerShopActivity).count() == 1

    def test_replaces_orders_of_recorded_visit(self, client, distributor, legacy_shop, marketing_headers):
        _punch_in(client, distributor.id, marketing_headers)
        visit_id = _visit(
            client, marketing_headers, shopId=legacy_shop.id, distributorId=distributor.id, isLegacy=True, salesOrders=[GOLD_1L]
        ).get_json()["data"]["id"]
        client.patch("/api/marketing-activity/punch-out", json={}, headers=marketing_headers)

        resp = _fresh(client, marketing_headers, distributor.id, legacy_shop.id, [GOLD_5L, GOLD_1L], isLegacy=True)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["visitId"] == visit_id
        assert len(resp.get_json()["data"]["salesOrders"]) == 2

    @pytest.mark.parametrize(
        "orders",
        [
            [],
            None,
            [{"brandName": "Acme", "variant": "Gold", "quantity": 1}],
            [{"brandName": "Acme", "variant": "Gold", "size": "1L", "quantity": 0}],
        ],
    )
    def test_orders_are_validated(self, client, db_session, distributor, legacy_shop, marketing_headers, orders):
        _punch_in(client, distributor.id, marketing_headers)
        resp = _fresh(client, marketing_headers, distributor.id, legacy_shop.id, orders, isLegacy=True)
        assert resp.status_code == 400
        assert db_session.query(RetailerShopActivity).count() == 0

    def test_list_is_scoped_to_caller(
        self, client, distributor, legacy_shop, marketing_headers, manager_headers, make_user, headers_for
    ):
        other_headers = headers_for(make_user("Marketing Staff", email="other@fieldops.test"))
        for headers in (marketing_headers, other_headers):
            _punch_in(client, distributor.id, headers)
            _fresh(client, headers, distributor.id, legacy_shop.id, [GOLD_1L], isLegacy=True)

        mine = client.get("/api/fresh-orders", headers=marketing_headers).get_json()
        assert mine["pagination"]["totalItems"] == 1
        team = client.get(f"/api/fresh-orders?shopId={legacy_shop.id}", headers=manager_headers).get_json()
        assert team["pagination"]["totalItems"] == 2

    def test_godown_cannot_list(self, client, godown_headers):
        assert client.get("/api/fresh-orders", headers=godown_headers).status_code == 403


# =============================================================================
# SALES ORDERS BY SHOP
# =============================================================================


class TestDistributorShopOrders:

    URL = "/api/retailer-shop-activity/distributor-shops-sales-orders"

    def test_orders_grouped_by_shop(self, client, distributor, legacy_shop, marketing_headers):
        for orders in ([GOLD_1L], [GOLD_5L, GOLD_1L]):
            _punch_in(client, distributor.id, marketing_headers)
            _visit(client, marketing_headers, shopId=legacy_shop.id, distributorId=distributor.id, isLegacy=True, salesOrders=orders)
            client.patch("/api/marketing-activity/punch-out", json={}, headers=marketing_headers)

        body = client.get(self.URL, query_string={"distributorId": distributor.id}, headers=marketing_headers).get_json()
        assert body["count"] == 1
        shop = body["data"][0]
        assert shop["shopId"] == legacy_shop.id
        assert shop["isLegacyShop"] is True
        assert shop["shopOwner"] == "Mehta"
        assert [o["size"] for o in shop["salesOrders"]] == ["5L", "1L", "1L"]

    def test_date_range_and_caller_scope(
        self, client, distributor, legacy_shop, marketing_headers, make_user, headers_for
    ):
        other_headers = headers_for(make_user("Marketing Staff", email="other@fieldops.test"))
        _punch_in(client, distributor.id, other_headers)
        _visit(client, other_headers, shopId=legacy_shop.id, distributorId=distributor.id, isLegacy=True, salesOrders=[GOLD_1L])

        assert client.get(self.URL, query_string={"distributorId": distributor.id}, headers=marketing_headers).get_json()["count"] == 0

        params = {"distributorId": distributor.id, "startDate": "2000-01-01", "endDate": "2000-01-02"}
        assert client.get(self.URL, query_string=params, headers=other_headers).get_json()["count"] == 0
        params["endDate"] = "2999-01-01"
        assert client.get(self.URL, query_string=params, headers=other_headers).get_json()["count"] == 1

    def test_distributor_is_required(self, client, marketing_headers):
        assert client.get(self.URL, headers=marketing_headers).status_code == 400
