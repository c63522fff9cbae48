# Overview: Pytest coverage for store ownership isolation.

"""
Store Isolation Tests

SECURITY TESTS: Prove that one owner cannot read or write another owner's
store, and that the attempt is distinguishable from "not logged in".

1. Unknown store          -> 404
2. Someone else's store   -> 403, logged as CROSS_TENANT_ACCESS_DENIED
3. No / bad token         -> 401
4. Nested resources (products, solds) are looked up inside the owned store
"""

import pytest

from storeledger.errors import ForbiddenError, NotFoundError
from storeledger.models import SecurityEvent, SoldRecord
from storeledger.services import sold_service
from storeledger.services.tenant_service import require_store_owner

from conftest import DAY_1


class TestTenantServiceHelpers:
    def test_owner_passes(self, db_session, owner, store):
        assert require_store_owner(store.id, owner.id).id == store.id

    def test_other_owner_is_forbidden(self, db_session, owner, foreign_store):
        with pytest.raises(ForbiddenError):
            require_store_owner(foreign_store.id, owner.id)

    def test_unknown_store(self, db_session, owner):
        with pytest.raises(NotFoundError):
            require_store_owner(99999, owner.id)

    def test_cross_tenant_access_logs_security_event(self, db_session, app, owner, foreign_store):
        initial_count = db_session.query(SecurityEvent).filter_by(
            event_type="CROSS_TENANT_ACCESS_DENIED"
        ).count()

        with app.test_request_context("/api/stores/x", method="PUT"):
            with pytest.raises(ForbiddenError):
                require_store_owner(foreign_store.id, owner.id)

        events = db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").all()
        assert len(events) == initial_count + 1
        assert events[-1].user_id == owner.id
        assert events[-1].store_id == foreign_store.id
        assert events[-1].action == "PUT"


class TestHttpIsolation:
    def test_unauthenticated(self, client, db_session, store):
        resp = client.get(f"/api/stores/{store.id}/products")
        assert resp.status_code == 401

    def test_bad_token(self, client, db_session, store):
        resp = client.get(f"/api/stores/{store.id}/products", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_forbidden_vs_not_found(self, client, db_session, store, intruder_headers):
        assert client.get(f"/api/stores/{store.id}", headers=intruder_headers).status_code == 403
        assert client.get("/api/stores/99999", headers=intruder_headers).status_code == 404

    def test_intruder_cannot_record_sale(self, client, db_session, store, product, intruder_headers):
        resp = client.post(
            f"/api/stores/{store.id}/solds",
            json={"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-02"},
            headers=intruder_headers,
        )
        assert resp.status_code == 403
        assert db_session.query(SoldRecord).count() == 0

    def test_own_store_path_with_foreign_product(self, client, db_session, store, product, foreign_store, intruder_headers):
        """Owning *a* store does not reach products of another store through it."""
        resp = client.post(
            f"/api/stores/{foreign_store.id}/solds",
            json={"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-02"},
            headers=intruder_headers,
        )
        assert resp.status_code == 404

    def test_own_store_path_with_foreign_sold(self, client, db_session, store, product, foreign_store, intruder_headers):
        sold = sold_service.record_sale(store.id, product.id, total_sold_out=1, sold_on=DAY_1)
        resp = client.delete(f"/api/stores/{foreign_store.id}/solds/{sold.id}", headers=intruder_headers)
        assert resp.status_code == 404
        assert db_session.query(SoldRecord).count() == 1

    def test_store_listing_is_scoped(self, client, db_session, store, foreign_store, owner_headers):
        resp = client.get("/api/stores", headers=owner_headers)
        assert [s["id"] for s in resp.json["items"]] == [store.id]

    def test_admin_overview_requires_admin(self, client, db_session, owner_headers, admin_headers, store):
        assert client.get("/api/admin/overview", headers=owner_headers).status_code == 403
        resp = client.get("/api/admin/overview", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["items"][0]["owner"]["username"] == "owner"
