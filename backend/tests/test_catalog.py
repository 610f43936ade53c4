"""
Catalog and promotion API tests.

Verifies:
- Product reads are public and hide soft-deleted rows
- Product and taxonomy writes require staff
- Payload validation rejects bad prices and unknown fields
"""

from skinshop.extensions import db
from skinshop.models import Product


class TestProducts:

    def test_list_is_public(self, client, make_product):
        make_product(name="Cleanser")
        make_product(name="Toner")

        resp = client.get("/api/products")

        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()["items"]] == ["Cleanser", "Toner"]

    def test_pagination(self, client, make_product):
        for name in ("A", "B", "C"):
            make_product(name=name)

        resp = client.get("/api/products?page=2&per_page=2")

        body = resp.get_json()
        assert [p["name"] for p in body["items"]] == ["C"]
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["has_prev"] is True

    def test_search(self, client, make_product):
        make_product(name="Vitamin C Serum")
        make_product(name="Clay Mask")

        resp = client.get("/api/products?q=serum")

        assert [p["name"] for p in resp.get_json()["items"]] == ["Vitamin C Serum"]

    def test_manager_creates_product(self, client, manager_headers):
        resp = client.post("/api/products", json={
            "name": "Hydrating Toner",
            "price": 250000,
            "quantity": 15,
        }, headers=manager_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["price"] == 250000
        assert body["quantity"] == 15

    def test_customer_cannot_create_product(self, client, customer_headers):
        resp = client.post("/api/products", json={"name": "X", "price": 1, "quantity": 1}, headers=customer_headers)

        assert resp.status_code == 403

    def test_rejects_negative_price(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "X", "price": -1, "quantity": 1}, headers=manager_headers)

        assert resp.status_code == 400

    def test_rejects_decimal_quantity(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "X", "price": 1, "quantity": 1.5}, headers=manager_headers)

        assert resp.status_code == 400

    def test_rejects_unknown_field(self, client, manager_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "price": 1, "quantity": 1, "is_deleted": True},
            headers=manager_headers,
        )

        assert resp.status_code == 400

    def test_rejects_unknown_category(self, client, manager_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "price": 1, "quantity": 1, "category_id": 999999},
            headers=manager_headers,
        )

        assert resp.status_code == 404

    def test_update_product(self, client, manager_headers, make_product):
        product = make_product(price=100)

        resp = client.put(f"/api/products/{product.id}", json={"price": 150}, headers=manager_headers)

        assert resp.status_code == 200
        assert db.session.get(Product, product.id).price == 150

    def test_soft_delete_hides_product(self, client, manager_headers, make_product):
        product = make_product()

        assert client.delete(f"/api/products/{product.id}", headers=manager_headers).status_code == 200

        assert client.get(f"/api/products/{product.id}").status_code == 404
        assert client.get("/api/products").get_json()["items"] == []
        assert db.session.get(Product, product.id).is_deleted is True


class TestTaxonomy:

    def test_create_and_list(self, client, manager_headers):
        resp = client.post("/api/catalog/skins", json={"name": "Oily"}, headers=manager_headers)
        assert resp.status_code == 201

        resp = client.get("/api/catalog/skins")

        assert [row["name"] for row in resp.get_json()["items"]] == ["Oily"]

    def test_duplicate_name(self, client, manager_headers):
        client.post("/api/catalog/brands", json={"name": "Laneige"}, headers=manager_headers)

        resp = client.post("/api/catalog/brands", json={"name": "Laneige"}, headers=manager_headers)

        assert resp.status_code == 409

    def test_unknown_kind(self, client, db_session):
        assert client.get("/api/catalog/colors").status_code == 404

    def test_product_filter_by_category(self, client, manager_headers, make_product):
        category_id = client.post(
            "/api/catalog/categories", json={"name": "Serums"}, headers=manager_headers
        ).get_json()["id"]
        serum = make_product(name="Serum")
        serum.category_id = category_id
        db.session.commit()
        make_product(name="Mask")

        resp = client.get(f"/api/products?category_id={category_id}")

        assert [p["name"] for p in resp.get_json()["items"]] == ["Serum"]


class TestPromotionRoutes:

    def test_manager_creates_promotion(self, client, manager_headers):
        resp = client.post("/api/promotions", json={
            "code": "glow10",
            "discount": 10,
            "expires_at": "2099-12-31T00:00:00Z",
        }, headers=manager_headers)

        assert resp.status_code == 201
        assert resp.get_json()["code"] == "GLOW10"
        assert [p["code"] for p in client.get("/api/promotions").get_json()["items"]] == ["GLOW10"]

    def test_discount_out_of_range(self, client, manager_headers):
        resp = client.post("/api/promotions", json={
            "code": "BIG",
            "discount": 150,
            "expires_at": "2099-12-31T00:00:00Z",
        }, headers=manager_headers)

        assert resp.status_code == 400

    def test_duplicate_code(self, client, manager_headers):
        payload = {"code": "SAME", "discount": 5, "expires_at": "2099-12-31T00:00:00Z"}
        client.post("/api/promotions", json=payload, headers=manager_headers)

        resp = client.post("/api/promotions", json=payload, headers=manager_headers)

        assert resp.status_code == 409

    def test_expired_promotions_are_not_listed(self, client, manager_headers):
        client.post("/api/promotions", json={
            "code": "OLD",
            "discount": 5,
            "expires_at": "2000-01-01T00:00:00Z",
        }, headers=manager_headers)

        assert client.get("/api/promotions").get_json()["items"] == []
