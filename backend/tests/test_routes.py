# Overview: Pytest coverage for the HTTP surface.

"""
Route tests: request parsing, status codes and error bodies.

Business rules are covered by the service tests; here we check that every
outcome reaches the caller as a distinct status with an error body.
"""

import io

from openpyxl import Workbook

from conftest import PASSWORD, auth_headers


def _sale(client, headers, store_id, product_id, units, day):
    return client.post(
        f"/api/stores/{store_id}/solds",
        json={"product_id": product_id, "total_sold_out": units, "sold_on": day},
        headers=headers,
    )


class TestHealth:
    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


class TestAuthRoutes:
    def test_register_login_me_logout(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "username": "newbie", "email": "Newbie@Example.com", "password": PASSWORD,
        })
        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "newbie@example.com"

        resp = client.post("/api/auth/login", json={"username": "newbie", "password": PASSWORD})
        assert resp.status_code == 200
        headers = auth_headers(resp.json["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["user"]["username"] == "newbie"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "username": "weak", "email": "weak@example.com", "password": "short",
        })
        assert resp.status_code == 400

    def test_duplicate_username(self, client, db_session, owner):
        resp = client.post("/api/auth/register", json={
            "username": "owner", "email": "x@example.com", "password": PASSWORD,
        })
        assert resp.status_code == 409

    def test_bad_login(self, client, db_session, owner):
        resp = client.post("/api/auth/login", json={"username": "owner", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_and_unknown_tokens(self, client, db_session, store):
        resp = client.get(f"/api/stores/{store.id}/products")
        assert resp.status_code == 401
        assert resp.json == {"error": "Unauthenticated"}

        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json == {"error": "Invalid or expired token"}


class TestStoreAndCategoryRoutes:
    def test_store_lifecycle(self, client, db_session, owner_headers):
        resp = client.post("/api/stores", json={"name": "Toko"}, headers=owner_headers)
        assert resp.status_code == 201
        store_id = resp.json["store"]["id"]

        assert client.post("/api/stores", json={"name": "Toko"}, headers=owner_headers).status_code == 409
        assert client.post("/api/stores", json={}, headers=owner_headers).status_code == 400

        resp = client.put(f"/api/stores/{store_id}", json={"name": "Toko Baru"}, headers=owner_headers)
        assert resp.json["store"]["name"] == "Toko Baru"

        assert client.delete(f"/api/stores/{store_id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/stores/{store_id}", headers=owner_headers).status_code == 404

    def test_delete_store_cascades(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 1, "2024-01-02")
        assert client.delete(f"/api/stores/{store.id}", headers=owner_headers).status_code == 200
        from storeledger.models import Product, SoldRecord
        assert db_session.query(Product).count() == 0
        assert db_session.query(SoldRecord).count() == 0

    def test_category_in_use_cannot_be_deleted(self, client, db_session, store, category, product, owner_headers):
        resp = client.delete(f"/api/stores/{store.id}/categories/{category.id}", headers=owner_headers)
        assert resp.status_code == 409
        assert resp.json["details"]["products"] == 1

    def test_category_crud(self, client, db_session, store, owner_headers):
        resp = client.post(f"/api/stores/{store.id}/categories", json={"name": "Roti"}, headers=owner_headers)
        assert resp.status_code == 201
        cid = resp.json["category"]["id"]
        resp = client.put(f"/api/stores/{store.id}/categories/{cid}", json={"name": "Kue"}, headers=owner_headers)
        assert resp.json["category"]["name"] == "Kue"
        listing = client.get(f"/api/stores/{store.id}/categories", headers=owner_headers)
        assert listing.json["count"] == 1
        assert client.delete(f"/api/stores/{store.id}/categories/{cid}", headers=owner_headers).status_code == 200


class TestProductRoutes:
    def test_create_returns_baseline(self, client, db_session, store, category, owner_headers):
        resp = client.post(f"/api/stores/{store.id}/products", json={
            "name": "Kopi",
            "category_id": category.id,
            "price_cents": 1000,
            "capital_cents": 50000,
            "quantity": 100,
            "tax_bps": 1000,
            "created_at": "2024-01-01T00:00:00Z",
        }, headers=owner_headers)
        assert resp.status_code == 201
        body = resp.json["product"]
        assert body["remain_quantity"] == 100
        assert body["profit_cents"] == -50000

    def test_derived_fields_are_not_writable(self, client, db_session, store, product, owner_headers):
        resp = client.put(
            f"/api/stores/{store.id}/products/{product.id}",
            json={"profit_cents": 1},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_rejects_decimal_price(self, client, db_session, store, category, owner_headers):
        resp = client.post(f"/api/stores/{store.id}/products", json={
            "name": "Kopi", "category_id": category.id, "price_cents": 10.5, "quantity": 1,
        }, headers=owner_headers)
        assert resp.status_code == 400

    def test_statics_edit_recalculates(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 20, "2024-01-02")
        resp = client.put(
            f"/api/stores/{store.id}/products/{product.id}",
            json={"tax_bps": 0},
            headers=owner_headers,
        )
        assert resp.status_code == 200
        assert resp.json["product"]["income_cents"] == 20000

    def test_lower_quantity_than_sold_conflicts(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 20, "2024-01-02")
        resp = client.put(
            f"/api/stores/{store.id}/products/{product.id}",
            json={"quantity": 10},
            headers=owner_headers,
        )
        assert resp.status_code == 409

    def test_list_and_recalculate(self, client, db_session, store, product, owner_headers):
        resp = client.get(f"/api/stores/{store.id}/products?in_stock=true&page=1", headers=owner_headers)
        assert resp.json["pagination"]["total"] == 1
        resp = client.post(f"/api/stores/{store.id}/products/{product.id}/recalculate", headers=owner_headers)
        assert resp.status_code == 200

    def test_delete(self, client, db_session, store, product, owner_headers):
        assert client.delete(f"/api/stores/{store.id}/products/{product.id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/stores/{store.id}/products/{product.id}", headers=owner_headers).status_code == 404


class TestSoldRoutes:
    def test_scenario_through_http(self, client, db_session, store, product, owner_headers):
        day1 = _sale(client, owner_headers, store.id, product.id, 20, "2024-01-02")
        assert day1.status_code == 201
        assert day1.json["product"]["profit_cents"] == -32000

        day2 = _sale(client, owner_headers, store.id, product.id, 30, "2024-01-03")
        assert day2.json["product"]["profit_cents"] == -5000

        edited = client.put(
            f"/api/stores/{store.id}/solds/{day1.json['sold']['id']}",
            json={"total_sold_out": 25},
            headers=owner_headers,
        )
        assert edited.status_code == 200
        assert edited.json["product"]["sold_out_quantity"] == 55

        deleted = client.delete(f"/api/stores/{store.id}/solds/{day2.json['sold']['id']}", headers=owner_headers)
        assert deleted.status_code == 200
        assert deleted.json["product"]["sold_out_quantity"] == 25

        listing = client.get(f"/api/stores/{store.id}/solds?product_id={product.id}", headers=owner_headers)
        assert listing.json["count"] == 1

    def test_error_statuses(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 1, "2024-01-02")

        duplicate = _sale(client, owner_headers, store.id, product.id, 1, "2024-01-02")
        assert duplicate.status_code == 409
        assert duplicate.json["details"]["sold_on"] == "2024-01-02"

        too_early = _sale(client, owner_headers, store.id, product.id, 1, "2023-12-31")
        assert too_early.status_code == 400

        zero = _sale(client, owner_headers, store.id, product.id, 0, "2024-01-05")
        assert zero.status_code == 400

        too_many = _sale(client, owner_headers, store.id, product.id, 100, "2024-01-05")
        assert too_many.status_code == 409
        assert too_many.json["details"]["max_allowed"] == 99

        missing = client.get(f"/api/stores/{store.id}/solds/424242", headers=owner_headers)
        assert missing.status_code == 404

        no_date = client.post(
            f"/api/stores/{store.id}/solds",
            json={"product_id": product.id, "total_sold_out": 1},
            headers=owner_headers,
        )
        assert no_date.status_code == 400

        bad_range = client.get(f"/api/stores/{store.id}/solds?start=nope", headers=owner_headers)
        assert bad_range.status_code == 400


class TestImportRoutes:
    def test_json_rows(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 1, "2024-01-02")
        resp = client.post(f"/api/stores/{store.id}/imports/solds", json={"rows": [
            {"product_id": product.id, "total_sold_out": 1, "sold_on": "2024-01-02"},
            {"product_id": product.id, "total_sold_out": 2, "sold_on": "2024-01-03"},
        ]}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["imported"] == 1
        assert resp.json["skipped"] == 1

    def test_csv_upload(self, client, db_session, store, product, owner_headers):
        csv_bytes = (
            "product_id,total_sold_out,sold_on\n"
            f"{product.id},2,2024-01-02\n"
            f"{product.id},3,2024-01-03\n"
        ).encode("utf-8")
        resp = client.post(
            f"/api/stores/{store.id}/imports/solds",
            data={"file": (io.BytesIO(csv_bytes), "solds.csv")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.json["imported"] == 2

    def test_xlsx_upload(self, client, db_session, store, category, owner_headers):
        wb = Workbook()
        sheet = wb.active
        sheet.append(["name", "category_name", "price", "capital", "quantity", "tax"])
        sheet.append(["Gula", category.name, 12.5, 1000, 40, 10])
        buf = io.BytesIO()
        wb.save(buf)
        buf.seek(0)

        resp = client.post(
            f"/api/stores/{store.id}/imports/products",
            data={"file": (buf, "products.xlsx")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.json["items"][0]["price_cents"] == 1250
        assert resp.json["items"][0]["tax_bps"] == 1000

    def test_unsupported_upload(self, client, db_session, store, owner_headers):
        resp = client.post(
            f"/api/stores/{store.id}/imports/categories",
            data={"file": (io.BytesIO(b"x"), "categories.txt")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_category_rows_conflict(self, client, db_session, store, category, owner_headers):
        resp = client.post(
            f"/api/stores/{store.id}/imports/categories",
            json=[{"name": category.name}],
            headers=owner_headers,
        )
        assert resp.status_code == 409


class TestReportRoutes:
    def test_reports(self, client, db_session, store, product, owner_headers):
        _sale(client, owner_headers, store.id, product.id, 20, "2024-01-02")
        summary = client.get(f"/api/stores/{store.id}/reports/summary", headers=owner_headers)
        assert summary.json["gross_income_cents"] == 20000
        products = client.get(f"/api/stores/{store.id}/reports/products", headers=owner_headers)
        assert products.json["count"] == 1
        sales = client.get(f"/api/stores/{store.id}/reports/sales?group_by=month", headers=owner_headers)
        assert sales.json["items"][0]["period"] == "2024-01"
        bad = client.get(f"/api/stores/{store.id}/reports/sales?group_by=decade", headers=owner_headers)
        assert bad.status_code == 400
