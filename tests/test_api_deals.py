"""
Tests for the real-estate deal pipeline endpoints.
"""
from storedesk.models import Deal
from storedesk.routes.deals import apply_commission


def _create_deal(client, auth, **overrides):
    body = {"asking_price": 100_000_000, "agent_id": "staff-1"}
    body.update(overrides)
    resp = client.post("/deals", json=body, auth=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestDealAuth:
    def test_missing_credentials_returns_401(self, client):
        resp = client.get("/deals")
        assert resp.status_code == 401
        assert resp.headers.get("WWW-Authenticate") == "Basic"

    def test_wrong_password_returns_401(self, client, owner_auth):
        resp = client.get("/deals", auth=(owner_auth[0], "nope"))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"

    def test_user_without_store_returns_403(self, client, storeless_auth):
        resp = client.get("/deals", auth=storeless_auth)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Store not found"

    def test_other_tenant_cannot_read_deal(self, client, owner_auth, stranger_auth):
        deal = _create_deal(client, owner_auth)
        resp = client.get(f"/deals/{deal['id']}", auth=stranger_auth)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Deal not found"

        listing = client.get("/deals", auth=stranger_auth).json()
        assert listing == {"data": [], "total": 0}


class TestDealCrud:
    def test_create_starts_as_lead(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        assert deal["status"] == "lead"
        assert deal["deal_number"].startswith("DEAL-")
        assert deal["commission_rate"] == 5
        assert deal["agent_share_rate"] == 50
        assert deal["agent_id"] == "staff-1"

    def test_create_with_unknown_property_returns_404(self, client, owner_auth):
        resp = client.post("/deals", json={"property_id": "missing"}, auth=owner_auth)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Property not found"

    def test_invalid_body_returns_400_with_field_path(self, client, owner_auth):
        resp = client.post("/deals", json={"commission_rate": 150}, auth=owner_auth)
        assert resp.status_code == 400
        assert "commission_rate" in resp.json()["detail"]

    def test_empty_patch_returns_400(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        resp = client.patch(f"/deals/{deal['id']}", json={}, auth=owner_auth)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No valid fields to update"

    def test_patch_merges_metadata(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        client.patch(f"/deals/{deal['id']}", json={"metadata": {"source": "facebook"}}, auth=owner_auth)
        resp = client.patch(f"/deals/{deal['id']}", json={"metadata": {"floor": 3}}, auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json()["metadata"] == {"source": "facebook", "floor": 3}

    def test_list_is_newest_first_and_paged(self, client, owner_auth):
        first = _create_deal(client, owner_auth, notes="first")
        _create_deal(client, owner_auth, notes="second")
        last = _create_deal(client, owner_auth, notes="third")

        resp = client.get("/deals?limit=2", auth=owner_auth)
        body = resp.json()
        assert body["total"] == 3
        assert len(body["data"]) == 2
        assert body["data"][0]["id"] == last["id"]

        resp = client.get("/deals?limit=2&offset=2", auth=owner_auth)
        assert [d["id"] for d in resp.json()["data"]] == [first["id"]]

    def test_bad_paging_and_unknown_filter_are_ignored(self, client, owner_auth):
        _create_deal(client, owner_auth)
        _create_deal(client, owner_auth)
        resp = client.get("/deals?limit=abc&offset=-5&status=bogus", auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json()["total"] == 2
        assert len(resp.json()["data"]) == 2

    def test_status_filter(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        _create_deal(client, owner_auth)
        client.patch(f"/deals/{deal['id']}", json={"status": "lost"}, auth=owner_auth)

        resp = client.get("/deals?status=lost", auth=owner_auth)
        assert resp.json()["total"] == 1
        assert resp.json()["data"][0]["id"] == deal["id"]


class TestDealPipeline:
    def test_full_pipeline_stamps_dates_and_computes_commission(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        url = f"/deals/{deal['id']}"

        viewing = client.patch(url, json={"status": "viewing"}, auth=owner_auth).json()
        assert viewing["status"] == "viewing"
        assert viewing["viewing_date"] is not None

        offer = client.patch(url, json={"status": "offer", "offer_price": 95_000_000}, auth=owner_auth).json()
        assert offer["offer_date"] is not None

        contract = client.patch(url, json={"status": "contract"}, auth=owner_auth).json()
        assert contract["contract_date"] is not None

        resp = client.patch(url, json={"status": "closed", "final_price": 90_000_000}, auth=owner_auth)
        assert resp.status_code == 200
        closed = resp.json()
        assert closed["status"] == "closed"
        assert closed["closed_date"] is not None
        assert closed["final_price"] == 90_000_000
        assert closed["commission_amount"] == 4_500_000
        assert closed["agent_share_amount"] == 2_250_000
        assert closed["company_share_amount"] == 2_250_000

    def test_skipping_stages_is_rejected(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        resp = client.patch(f"/deals/{deal['id']}", json={"status": "closed"}, auth=owner_auth)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot transition from lead to closed"

    def test_terminal_status_cannot_move(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        client.patch(f"/deals/{deal['id']}", json={"status": "lost"}, auth=owner_auth)
        resp = client.patch(f"/deals/{deal['id']}", json={"status": "viewing"}, auth=owner_auth)
        assert resp.status_code == 400

    def test_withdrawn_from_contract(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        url = f"/deals/{deal['id']}"
        for status in ("viewing", "offer", "contract"):
            client.patch(url, json={"status": status}, auth=owner_auth)
        resp = client.patch(url, json={"status": "withdrawn"}, auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json()["withdrawn_date"] is not None
        assert resp.json()["commission_amount"] is None

    def test_delete_only_lead_or_lost(self, client, owner_auth):
        deal = _create_deal(client, owner_auth)
        client.patch(f"/deals/{deal['id']}", json={"status": "viewing"}, auth=owner_auth)
        resp = client.delete(f"/deals/{deal['id']}", auth=owner_auth)
        assert resp.status_code == 400

        lead = _create_deal(client, owner_auth)
        resp = client.delete(f"/deals/{lead['id']}", auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get(f"/deals/{lead['id']}", auth=owner_auth).status_code == 404


class TestApplyCommission:
    def test_falls_back_to_offer_price_and_default_rates(self):
        deal = Deal(offer_price=1000.0, asking_price=2000.0, commission_rate=None, agent_share_rate=None)
        apply_commission(deal)
        assert deal.final_price == 1000.0
        assert deal.commission_rate == 5
        assert deal.agent_share_rate == 50
        assert deal.commission_amount == 50.0
        assert deal.agent_share_amount == 25.0
        assert deal.company_share_amount == 25.0

    def test_body_values_override_stored_values(self):
        deal = Deal(final_price=500.0, commission_rate=5.0, agent_share_rate=50.0)
        apply_commission(deal, final_price=2000.0, commission_rate=10.0, agent_share_rate=40.0)
        assert deal.commission_amount == 200.0
        assert deal.agent_share_amount == 80.0
        assert deal.company_share_amount == 120.0

    def test_no_price_leaves_amounts_empty(self):
        deal = Deal(commission_rate=5.0, agent_share_rate=50.0)
        apply_commission(deal)
        assert deal.final_price is None
        assert deal.commission_amount is None

    def test_amounts_are_stored_unrounded(self):
        deal = Deal(final_price=333.33, commission_rate=3.0, agent_share_rate=50.0)
        apply_commission(deal)
        commission = 333.33 * 3.0 / 100
        assert deal.commission_amount == commission
        assert deal.agent_share_amount == commission * 50.0 / 100
        assert deal.company_share_amount == commission - commission * 50.0 / 100
        assert deal.commission_amount != round(commission, 2)
