"""
Distributor and shop tests.

Verifies:
- Pending shops stay out of the distributor's merged list until approved
- Approval mirrors a shop into the legacy rows exactly once
- An unlinked legacy row describing the same shop is linked, not duplicated
- Rejection needs a reason and decisions are final
"""

import pytest

from fieldops.models import Distributor, LegacyShop, Shop


def _shop_payload(distributor_id, **overrides):
    payload = {
        "name": "Gupta General Store",
        "ownerName": "R. Gupta",
        "address": "7 Station Road",
        "type": "Retailer",
        "distributorId": distributor_id,
    }
    payload.update(overrides)
    return payload


def _merged(client, distributor_id, headers, **params):
    resp = client.get(f"/api/shops/distributor/{distributor_id}", query_string=params, headers=headers)
    assert resp.status_code == 200
    return resp.get_json()


# =============================================================================
# DISTRIBUTORS
# =============================================================================


class TestDistributors:

    def test_create_and_fetch(self, client, admin_headers):
        resp = client.post(
            "/api/distributors",
            json={"name": "Verma Agencies", "shopName": "Verma Depot", "contact": "98111", "address": "Ring Road"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        distributor_id = resp.get_json()["data"]["id"]

        body = client.get(f"/api/distributors/{distributor_id}", headers=admin_headers).get_json()
        assert body["data"]["shopName"] == "Verma Depot"
        assert body["data"]["retailShopCount"] == 0

    def test_missing_fields_are_listed(self, client, admin_headers):
        resp = client.post("/api/distributors", json={"name": "Only Name"}, headers=admin_headers)
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.get_json()["errors"]}
        assert fields == {"shopName", "contact", "address"}

    def test_search_and_pagination(self, client, distributor, marketing_headers):
        resp = client.get("/api/distributors", query_string={"search": "sharma"}, headers=marketing_headers)
        body = resp.get_json()
        assert [d["id"] for d in body["data"]] == [distributor.id]
        assert body["pagination"]["totalItems"] == 1

    def test_delete_hides_distributor(self, client, db_session, distributor, admin_headers):
        assert client.delete(f"/api/distributors/{distributor.id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/distributors/{distributor.id}", headers=admin_headers).status_code == 404
        assert db_session.get(Distributor, distributor.id).is_active is False

    def test_add_retail_shop_to_own_list(self, client, distributor, admin_headers):
        resp = client.post(
            f"/api/distributors/{distributor.id}/retail-shops",
            json={"shopName": "Lane Kirana", "ownerName": "Bose", "address": "9 Lane"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["retailShopCount"] == 1
        assert data["wholesaleShopCount"] == 0


# =============================================================================
# PENDING -> APPROVED MERGED LIST
# =============================================================================


class TestShopApproval:

    def test_pending_shop_hidden_until_approved(
        self, client, db_session, distributor, legacy_shop, marketing_headers, manager_headers
    ):
        resp = client.post("/api/shops", json=_shop_payload(distributor.id), headers=marketing_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Shop created and sent for approval"
        shop_id = body["data"]["id"]
        assert body["data"]["approvalStatus"] == "Pending"

        listed = _merged(client, distributor.id, marketing_headers)
        assert listed["count"] == 1
        assert listed["data"][0]["isLegacy"] is True
        assert listed["data"][0]["id"] == legacy_shop.id

        pending = client.get("/api/shops/pending", headers=manager_headers).get_json()
        assert [s["id"] for s in pending["data"]] == [shop_id]

        resp = client.patch(f"/api/shops/{shop_id}/approval", json={"approvalStatus": "Approved"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Shop approved successfully"

        listed = _merged(client, distributor.id, marketing_headers)
        assert listed["count"] == 2
        entries = {(e["isLegacy"], e["id"]) for e in listed["data"]}
        assert entries == {(False, shop_id), (True, legacy_shop.id)}

        mirror = db_session.query(LegacyShop).filter_by(shop_id=shop_id).all()
        assert len(mirror) == 1
        assert mirror[0].shop_name == "Gupta General Store"

    def test_approval_links_matching_legacy_row(
        self, client, db_session, distributor, legacy_shop, marketing_headers, manager_headers
    ):
        payload = _shop_payload(distributor.id, name="  old corner STORE ", ownerName="mehta", address="4 lane")
        shop_id = client.post("/api/shops", json=payload, headers=marketing_headers).get_json()["data"]["id"]

        client.patch(f"/api/shops/{shop_id}/approval", json={"approvalStatus": "Approved"}, headers=manager_headers)

        assert db_session.query(LegacyShop).count() == 1
        assert db_session.get(LegacyShop, legacy_shop.id).shop_id == shop_id

        listed = _merged(client, distributor.id, marketing_headers)
        assert listed["count"] == 1
        assert listed["data"][0]["isLegacy"] is False
        assert listed["data"][0]["id"] == shop_id

    def test_manager_created_shop_is_auto_approved(self, client, db_session, distributor, manager_headers):
        resp = client.post("/api/shops", json=_shop_payload(distributor.id), headers=manager_headers)
        assert resp.status_code == 201
        assert resp.get_json()["message"] == "Shop created"
        assert resp.get_json()["data"]["approvalStatus"] == "Approved"
        assert db_session.query(LegacyShop).filter_by(distributor_id=distributor.id).count() == 1

    def test_rejection_requires_reason(self, client, distributor, marketing_headers, manager_headers):
        shop_id = client.post("/api/shops", json=_shop_payload(distributor.id), headers=marketing_headers).get_json()["data"]["id"]

        resp = client.patch(f"/api/shops/{shop_id}/approval", json={"approvalStatus": "Rejected"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Rejection reason is required when rejecting a shop"

        resp = client.patch(
            f"/api/shops/{shop_id}/approval",
            json={"approvalStatus": "Rejected", "rejectionReason": "Duplicate outlet"},
            headers=manager_headers,
        )
        assert resp.status_code == 200

        status = client.get(f"/api/shops/{shop_id}/approval-status", headers=manager_headers).get_json()["data"]
        assert status["approvalStatus"] == "Rejected"
        assert status["rejectionReason"] == "Duplicate outlet"

    def test_decision_is_final(self, client, db_session, distributor, marketing_headers, manager_headers):
        shop_id = client.post("/api/shops", json=_shop_payload(distributor.id), headers=marketing_headers).get_json()["data"]["id"]
        client.patch(f"/api/shops/{shop_id}/approval", json={"approvalStatus": "Approved"}, headers=manager_headers)

        resp = client.patch(
            f"/api/shops/{shop_id}/approval",
            json={"approvalStatus": "Rejected", "rejectionReason": "Changed mind"},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Shop is already approved"
        assert db_session.get(Shop, shop_id).approval_status == "Approved"

    @pytest.mark.parametrize("status", ["Pending", "approved", None])
    def test_invalid_approval_status(self, client, distributor, marketing_headers, manager_headers, status):
        shop_id = client.post("/api/shops", json=_shop_payload(distributor.id), headers=marketing_headers).get_json()["data"]["id"]
        resp = client.patch(f"/api/shops/{shop_id}/approval", json={"approvalStatus": status}, headers=manager_headers)
        assert resp.status_code == 400


class TestShopRules:

    def test_duplicate_name_under_same_distributor(self, client, distributor, marketing_headers):
        assert client.post("/api/shops", json=_shop_payload(distributor.id), headers=marketing_headers).status_code == 201
        resp = client.post(
            "/api/shops", json=_shop_payload(distributor.id, name="GUPTA general store"), headers=marketing_headers
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "A shop with this name already exists for this distributor"

    def test_unknown_type_rejected(self, client, distributor, marketing_headers):
        resp = client.post("/api/shops", json=_shop_payload(distributor.id, type="Kiosk"), headers=marketing_headers)
        assert resp.status_code == 400

    def test_unknown_distributor(self, client, marketing_headers, db_session):
        resp = client.post("/api/shops", json=_shop_payload(9999), headers=marketing_headers)
        assert resp.status_code == 404

    def test_type_filter(self, client, distributor, legacy_shop, marketing_headers):
        assert _merged(client, distributor.id, marketing_headers, type="Whole Seller")["count"] == 0
        assert _merged(client, distributor.id, marketing_headers, type="Retailer")["count"] == 1
        resp = client.get(f"/api/shops/distributor/{distributor.id}?type=Kiosk", headers=marketing_headers)
        assert resp.status_code == 400

    def test_delete_removes_mirror(self, client, db_session, distributor, manager_headers, admin_headers):
        shop_id = client.post("/api/shops", json=_shop_payload(distributor.id), headers=manager_headers).get_json()["data"]["id"]
        assert db_session.query(LegacyShop).filter_by(shop_id=shop_id).count() == 1

        assert client.delete(f"/api/shops/{shop_id}", headers=admin_headers).status_code == 200

        assert db_session.query(LegacyShop).filter_by(shop_id=shop_id).count() == 0
        assert _merged(client, distributor.id, manager_headers)["count"] == 0

    def test_delete_unlinks_older_legacy_row(
        self, client, db_session, distributor, legacy_shop, marketing_headers, manager_headers, admin_headers
    ):
        client.post(
            "/api/marketing-activity/punch-in",
            json={
                "distributorId": distributor.id,
                "areaName": "Andheri East",
                "modeOfTransport": "Bike",
                "selfieImage": "https://cdn.fieldops.test/selfies/a.jpg",
                "tripCompanion": {"category": "Distributor Staff", "name": "Ramesh"},
            },
            headers=marketing_headers,
        )
        visit = client.post(
            "/api/retailer-shop-activity",
            json={"shopId": legacy_shop.id, "distributorId": distributor.id, "isLegacy": True},
            headers=marketing_headers,
        )
        assert visit.status_code == 201

        shop_id = client.post(
            "/api/shops",
            json=_shop_payload(distributor.id, name="Old Corner Store", ownerName="Mehta", address="4 Lane"),
            headers=manager_headers,
        ).get_json()["data"]["id"]
        db_session.refresh(legacy_shop)
        assert legacy_shop.shop_id == shop_id

        assert client.delete(f"/api/shops/{shop_id}", headers=admin_headers).status_code == 200

        db_session.refresh(legacy_shop)
        assert legacy_shop.shop_id is None
        merged = _merged(client, distributor.id, manager_headers)
        assert [(s["name"], s["isLegacy"]) for s in merged["data"]] == [("Old Corner Store", True)]
        listed = client.get("/api/retailer-shop-activity/my-activities", headers=marketing_headers).get_json()
        assert listed["data"][0]["shopId"] == legacy_shop.id

    def test_update_keeps_mirror_in_sync(self, client, db_session, distributor, manager_headers):
        shop_id = client.post("/api/shops", json=_shop_payload(distributor.id), headers=manager_headers).get_json()["data"]["id"]
        resp = client.put(f"/api/shops/{shop_id}", json={"address": "8 Station Road"}, headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.query(LegacyShop).filter_by(shop_id=shop_id).one().address == "8 Station Road"

    def test_details_lists_merged_shops(self, client, distributor, legacy_shop, manager_headers):
        client.post("/api/shops", json=_shop_payload(distributor.id, type="Whole Seller"), headers=manager_headers)
        data = client.get(f"/api/distributors/{distributor.id}/details", headers=manager_headers).get_json()["data"]
        assert [s["name"] for s in data["shops"]["retailShops"]] == ["Old Corner Store"]
        assert [s["name"] for s in data["shops"]["wholesaleShops"]] == ["Gupta General Store"]
