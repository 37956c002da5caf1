"""
상품 조회 및 관리자 상품 관리 API 테스트
"""

import pytest
from sqlalchemy import select

from carbontrack.models import AuditLog, Product


class TestProductCatalog:
    def test_lists_only_active_products(self, client, make_product):
        make_product(name="Bamboo Toothbrush")
        make_product(name="Hidden Item", status="inactive")

        response = client.get("/api/v1/products")

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data["items"]] == ["Bamboo Toothbrush"]
        assert data["items"][0]["is_available"] is True
        assert data["pagination"]["limit"] == 20

    def test_limit_is_clamped(self, client, make_product):
        make_product()

        small = client.get("/api/v1/products", params={"limit": 1})
        large = client.get("/api/v1/products", params={"limit": 500})

        assert small.json()["pagination"]["limit"] == 10
        assert large.json()["pagination"]["limit"] == 50

    def test_filters(self, client, make_product):
        make_product(name="Reusable Bag", points_required=30, category="lifestyle")
        make_product(name="Solar Charger", points_required=300, category="tech")
        make_product(name="Steel Straw", points_required=60, category="lifestyle")

        by_category = client.get("/api/v1/products", params={"category": "tech"})
        by_range = client.get("/api/v1/products", params={"min_points": 50, "max_points": 100})
        by_search = client.get("/api/v1/products", params={"search": "bag"})

        assert [p["name"] for p in by_category.json()["items"]] == ["Solar Charger"]
        assert [p["name"] for p in by_range.json()["items"]] == ["Steel Straw"]
        assert [p["name"] for p in by_search.json()["items"]] == ["Reusable Bag"]

    def test_inverted_points_range_returns_400(self, client):
        response = client.get("/api/v1/products", params={"min_points": 100, "max_points": 10})
        assert response.status_code == 400

    def test_categories(self, client, make_product):
        make_product(category="tech")
        make_product(category="lifestyle")
        make_product(category="tech")
        make_product(category="hidden", status="inactive")

        response = client.get("/api/v1/products/categories")

        assert response.json()["categories"] == ["lifestyle", "tech"]

    def test_product_detail_and_404(self, client, make_product):
        product = make_product(name="Compost Bin")

        found = client.get(f"/api/v1/products/{product.id}")
        missing = client.get("/api/v1/products/9999")

        assert found.status_code == 200
        assert found.json()["name"] == "Compost Bin"
        assert missing.status_code == 404
        assert missing.json()["error"] == "Product not found"


class TestAdminProducts:
    def test_create_update_delete(self, client, db_session, make_user, auth_headers):
        admin = make_user(is_admin=True)
        headers = auth_headers(admin)

        created = client.post(
            "/api/v1/admin/products",
            json={
                "name": "Tumbler",
                "category": "lifestyle",
                "points_required": 80,
                "stock": 5,
                "images": [" /img/a.png ", ""],
            },
            headers=headers,
        )
        assert created.status_code == 200
        product = created.json()
        assert product["images"] == ["/img/a.png"]

        updated = client.put(
            f"/api/v1/admin/products/{product['id']}",
            json={"stock": 12, "status": "inactive"},
            headers=headers,
        )
        assert updated.json()["stock"] == 12
        assert updated.json()["is_available"] is False

        deleted = client.delete(f"/api/v1/admin/products/{product['id']}", headers=headers)
        assert deleted.status_code == 200
        assert client.get(f"/api/v1/products/{product['id']}").status_code == 404

        actions = [
            log.action
            for log in db_session.execute(select(AuditLog).order_by(AuditLog.id)).scalars()
        ]
        assert actions == ["product_created", "product_updated", "product_deleted"]

    def test_admin_list_includes_inactive(self, client, make_user, make_product, auth_headers):
        admin = make_user(is_admin=True)
        make_product(name="On Sale")
        make_product(name="Paused", status="inactive")

        everything = client.get("/api/v1/admin/products", headers=auth_headers(admin))
        paused = client.get(
            "/api/v1/admin/products", params={"status": "inactive"}, headers=auth_headers(admin)
        )

        assert everything.json()["pagination"]["total"] == 2
        assert [p["name"] for p in paused.json()["items"]] == ["Paused"]

    def test_negative_stock_rejected(self, client, make_user, auth_headers):
        admin = make_user(is_admin=True)

        response = client.post(
            "/api/v1/admin/products",
            json={"name": "Broken", "points_required": 10, "stock": -1},
            headers=auth_headers(admin),
        )

        assert response.status_code == 422

    def test_requires_admin(self, client, make_user, auth_headers):
        user = make_user()

        response = client.post(
            "/api/v1/admin/products",
            json={"name": "Nope", "points_required": 10},
            headers=auth_headers(user),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "AUTH_002"
        assert response.json()["error"] == "Admin access required"

    @pytest.mark.parametrize("field", ["name", "stock", "points_required", "status", "sort_order"])
    def test_update_rejects_null_for_required_columns(
        self, client, db_session, make_user, make_product, auth_headers, field
    ):
        admin = make_user(is_admin=True)
        product = make_product(stock=7)

        response = client.put(
            f"/api/v1/admin/products/{product.id}",
            json={field: None},
            headers=auth_headers(admin),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_001"
        assert response.json()["details"]["errors"][0]["loc"] == ["body", field]
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 7

    def test_update_allows_null_for_optional_columns(
        self, client, make_user, make_product, auth_headers
    ):
        admin = make_user(is_admin=True)
        product = make_product()

        response = client.put(
            f"/api/v1/admin/products/{product.id}",
            json={"category": None, "description": None},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["category"] is None
