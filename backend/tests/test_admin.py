"""
Admin panel tests: product catalog, staff accounts, distributor assignments
and the staff activity trail.
"""

import pytest

from conftest import PASSWORD
from fieldops.models import StaffActivity, User


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalog:

    def _brand(self, client, headers, name="Acme"):
        resp = client.post("/api/brands", json={"name": name, "description": "Paints"}, headers=headers)
        assert resp.status_code == 201
        return resp.get_json()["data"]["id"]

    def test_tree_lists_active_entries(self, client, admin_headers, marketing_headers):
        brand_id = self._brand(client, admin_headers)
        resp = client.post(
            "/api/variants",
            json={"name": "Gold", "brand": brand_id, "sizes": ["1L", {"name": "5L"}, "1L"]},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        variant_id = resp.get_json()["data"]["id"]
        assert [s["name"] for s in resp.get_json()["data"]["sizes"]] == ["1L", "5L"]

        client.post("/api/variants", json={"name": "Silver", "brand": brand_id}, headers=admin_headers)
        silver_id = client.get(f"/api/variants?brand={brand_id}", headers=admin_headers).get_json()["data"][1]["id"]
        client.delete(f"/api/variants/{silver_id}", headers=admin_headers)

        tree = client.get("/api/products/catalog", headers=marketing_headers).get_json()
        assert tree["count"] == 1
        assert tree["data"][0]["variants"] == [{"id": variant_id, "name": "Gold", "sizes": ["1L", "5L"]}]

    def test_duplicate_brand_name(self, client, admin_headers):
        self._brand(client, admin_headers)
        resp = client.post("/api/brands", json={"name": "acme"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "A brand with that name already exists"

    def test_add_size_once(self, client, admin_headers):
        brand_id = self._brand(client, admin_headers)
        variant_id = client.post(
            "/api/variants", json={"name": "Gold", "brand": brand_id}, headers=admin_headers
        ).get_json()["data"]["id"]

        assert client.post(f"/api/variants/{variant_id}/sizes", json={"name": "2L"}, headers=admin_headers).status_code == 201
        resp = client.post(f"/api/variants/{variant_id}/sizes", json={"name": "2L"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_deleted_brand_hidden(self, client, admin_headers, marketing_headers):
        brand_id = self._brand(client, admin_headers)
        client.delete(f"/api/brands/{brand_id}", headers=admin_headers)
        assert client.get("/api/brands", headers=marketing_headers).get_json()["count"] == 0
        body = client.get("/api/brands?includeInactive=true", headers=marketing_headers).get_json()
        assert body["data"][0]["isActive"] is False

    def test_variant_needs_known_brand(self, client, admin_headers):
        assert client.post("/api/variants", json={"name": "Gold", "brand": 999}, headers=admin_headers).status_code == 404
        assert client.post("/api/variants", json={"name": "Gold"}, headers=admin_headers).status_code == 400


# =============================================================================
# STAFF
# =============================================================================


class TestStaff:

    def test_create_and_login(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Kiran", "email": "kiran@fieldops.test", "password": PASSWORD, "role": "Godown Incharge"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["role"] == "Godown Incharge"

        login = client.post("/api/auth/login", json={"email": "kiran@fieldops.test", "password": PASSWORD})
        assert login.status_code == 200

    def test_duplicate_email(self, client, admin_headers, marketing):
        resp = client.post(
            "/api/staff",
            json={"name": "Copy", "email": marketing.email, "password": PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Staff member with this email already exists"

    def test_sub_admin_goes_through_own_endpoint(self, client, admin_headers):
        resp = client.post(
            "/api/staff",
            json={"name": "Sub", "email": "sub@fieldops.test", "password": PASSWORD, "role": "Sub Admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_deactivated_staff_token_stops_working(self, client, db_session, marketing, marketing_headers, admin_headers):
        resp = client.patch(f"/api/staff/{marketing.id}/toggle-status", headers=admin_headers)
        assert resp.get_json()["message"] == "Staff member deactivated"

        resp = client.get("/api/auth/me", headers=marketing_headers)
        assert resp.status_code == 401

    def test_delete_keeps_row(self, client, db_session, marketing, admin_headers):
        assert client.delete(f"/api/staff/{marketing.id}", headers=admin_headers).status_code == 200
        assert db_session.get(User, marketing.id).active is False

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f"/api/staff/{admin.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "You cannot delete your own account"

    def test_reset_password_unlocks(self, client, db_session, make_user, admin_headers):
        user = make_user("Marketing Staff", login_attempts=5, account_locked=True)
        resp = client.put(f"/api/staff/{user.id}/reset-password", json={"password": "Another123!"}, headers=admin_headers)
        assert resp.status_code == 200

        db_session.refresh(user)
        assert user.account_locked is False
        assert client.post("/api/auth/login", json={"email": user.email, "password": "Another123!"}).status_code == 200

    def test_stats(self, client, admin, marketing, manager, admin_headers):
        data = client.get("/api/staff/stats", headers=admin_headers).get_json()["data"]
        assert data["totalStaff"] == 3
        assert data["staffByRole"]["Marketing Staff"] == 1


# =============================================================================
# ASSIGNMENTS
# =============================================================================


class TestAssignments:

    def test_assign_replace_and_remove(self, client, db_session, admin, marketing, distributor, admin_headers, marketing_headers):
        second = client.post(
            "/api/distributors",
            json={"name": "Verma Agencies", "shopName": "Verma Depot", "contact": "98111", "address": "Ring Road"},
            headers=admin_headers,
        ).get_json()["data"]["id"]

        resp = client.post(
            "/api/staff-assignments", json={"staffId": marketing.id, "distributorIds": [distributor.id]}, headers=admin_headers
        )
        assert resp.status_code == 201

        resp = client.post(
            "/api/staff-assignments",
            json={"staffId": marketing.id, "distributorIds": [distributor.id, second]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert len(resp.get_json()["data"]["distributorIds"]) == 2

        mine = client.get("/api/staff-assignments/my-distributors", headers=marketing_headers).get_json()
        assert mine["count"] == 2

        resp = client.patch(
            f"/api/staff-assignments/{marketing.id}/remove-distributors",
            json={"distributorIds": [distributor.id]},
            headers=admin_headers,
        )
        assert [d["id"] for d in resp.get_json()["data"]["distributorIds"]] == [second]

    def test_only_marketing_staff(self, client, manager, distributor, admin_headers):
        resp = client.post(
            "/api/staff-assignments", json={"staffId": manager.id, "distributorIds": [distributor.id]}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_unknown_distributor(self, client, marketing, admin_headers):
        resp = client.post(
            "/api/staff-assignments", json={"staffId": marketing.id, "distributorIds": [9999]}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "One or more distributors do not exist"

    def test_other_staff_cannot_read_assignment(self, client, marketing, make_user, headers_for):
        other = make_user("Marketing Staff", email="other@fieldops.test")
        assert client.get(f"/api/staff-assignments/{marketing.id}", headers=headers_for(other)).status_code == 403

    def test_no_assignment_means_no_distributors(self, client, marketing_headers):
        body = client.get("/api/staff-assignments/my-distributors", headers=marketing_headers).get_json()
        assert body["data"] == []


# =============================================================================
# STAFF ACTIVITY
# =============================================================================


class TestStaffActivity:

    def test_manual_entry_and_feed(self, client, db_session, marketing, marketing_headers, manager_headers):
        resp = client.post(
            "/api/staff-activity",
            json={"activityType": "Other", "details": "Market survey", "status": "Pending"},
            headers=marketing_headers,
        )
        assert resp.status_code == 201

        mine = client.get("/api/staff-activity/me", headers=marketing_headers).get_json()
        assert [a["details"] for a in mine["data"]] == ["Market survey"]

        feed = client.get(f"/api/staff-activity?staffId={marketing.id}&status=Pending", headers=manager_headers).get_json()
        assert feed["pagination"]["totalItems"] == 1
        assert feed["data"][0]["staffId"]["id"] == marketing.id

    def test_manual_entry_numeric_related_id(self, client, db_session, marketing_headers):
        resp = client.post(
            "/api/staff-activity",
            json={"activityType": "Order", "details": "Followed up", "onModel": "Order", "relatedId": "17"},
            headers=marketing_headers,
        )
        assert resp.status_code == 201
        assert db_session.query(StaffActivity).one().related_id == 17

    @pytest.mark.parametrize(
        "body",
        [
            {"activityType": "Gossip", "details": "x"},
            {"activityType": "Other", "details": "  "},
            {"activityType": "Other", "details": "x", "status": "Done"},
            {"activityType": "Other", "details": "x", "onModel": "Invoice"},
            {"activityType": "Other", "details": "x", "onModel": "Order", "relatedId": "ord-17"},
            {"activityType": "Other", "details": "x", "onModel": "Order", "relatedId": 2.5},
        ],
    )
    def test_manual_entry_validation(self, client, db_session, marketing_headers, body):
        assert client.post("/api/staff-activity", json=body, headers=marketing_headers).status_code == 400
        assert db_session.query(StaffActivity).count() == 0
