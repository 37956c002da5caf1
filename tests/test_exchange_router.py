"""
상품 교환 / 관리자 교환 상태 API 테스트
"""

from decimal import Decimal
from unittest.mock import MagicMock

from dependency_injector import providers

from carbontrack.models import ExchangeRecord, User
from carbontrack.services.email_service import EmailService


class TestExchangeEndpoint:
    """POST /api/v1/exchange"""

    def test_exchange_success(self, client, db_session, make_user, make_product, exchange_headers):
        # Arrange
        user = make_user(points=1000)
        product = make_product(points_required=50, stock=10)

        # Act
        response = client.post(
            "/api/v1/exchange",
            json={"product_id": product.id, "quantity": 2},
            headers=exchange_headers(user),
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["points_used"] == 100
        assert data["remaining_points"] == 900
        assert data["message"] == "Product exchanged successfully"
        assert data["exchange_id"]

    def test_delivery_field_synonyms(self, client, db_session, make_user, make_product, exchange_headers):
        """shipping_address/phone/remark 별칭이 표준 필드로 저장됨"""
        user = make_user(points=1000)
        product = make_product()

        response = client.post(
            "/api/v1/exchange",
            json={
                "product_id": product.id,
                "shipping_address": "  Seoul 123  ",
                "phone": "010-0000-0000",
                "remark": "leave at door",
            },
            headers=exchange_headers(user),
        )

        assert response.status_code == 200
        record = db_session.get(ExchangeRecord, response.json()["exchange_id"])
        assert record.quantity == 1
        assert record.delivery_address == "Seoul 123"
        assert record.contact_phone == "010-0000-0000"
        assert record.notes == "leave at door"

    def test_insufficient_points_returns_400(self, client, db_session, make_user, make_product, exchange_headers):
        user = make_user(points=10)
        product = make_product(points_required=50)

        response = client.post(
            "/api/v1/exchange",
            json={"product_id": product.id},
            headers=exchange_headers(user),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Insufficient points"
        assert body["code"] == "BALANCE_001"
        db_session.expire_all()
        assert db_session.get(User, user.id).points == Decimal("10")

    def test_insufficient_stock_returns_400(self, client, make_user, make_product, exchange_headers):
        user = make_user(points=1000)
        product = make_product(stock=1)

        response = client.post(
            "/api/v1/exchange",
            json={"product_id": product.id, "quantity": 2},
            headers=exchange_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient stock"

    def test_zero_quantity_returns_400(self, client, make_user, make_product, exchange_headers):
        user = make_user(points=1000)
        product = make_product()

        response = client.post(
            "/api/v1/exchange",
            json={"product_id": product.id, "quantity": 0},
            headers=exchange_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_001"

    def test_unknown_product_returns_404(self, client, make_user, exchange_headers):
        user = make_user(points=1000)

        response = client.post(
            "/api/v1/exchange", json={"product_id": 9999}, headers=exchange_headers(user)
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Product not found"

    def test_requires_authentication(self, client, make_product, exchange_headers):
        product = make_product()

        response = client.post(
            "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers()
        )

        assert response.status_code == 401
        assert response.json()["code"] == "HTTP_401"

    def test_invalid_token_returns_401(self, client, make_product, exchange_headers):
        product = make_product()

        response = client.post(
            "/api/v1/exchange",
            json={"product_id": product.id},
            headers={**exchange_headers(), "Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    def test_request_id_is_echoed(self, client, make_user, exchange_headers):
        user = make_user(points=1000)
        headers = exchange_headers(user)

        response = client.post("/api/v1/exchange", json={"product_id": 9999}, headers=headers)

        assert response.headers["X-Request-ID"] == headers["X-Request-ID"]
        assert response.json()["request_id"] == headers["X-Request-ID"]

    def test_exchange_sends_linked_email(self, app, client, make_user, make_product, exchange_headers):
        email_service = MagicMock()
        email_service.subject_for_priority.side_effect = EmailService.subject_for_priority
        app.container.email_service.override(providers.Object(email_service))
        try:
            user = make_user(points=1000, email="router@example.com")
            product = make_product()

            response = client.post(
                "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers(user)
            )
        finally:
            app.container.email_service.reset_override()

        assert response.status_code == 200
        email_service.send_email.assert_called_once()
        assert email_service.send_email.call_args.args[0] == "router@example.com"


class TestExchangeHistory:
    """GET /api/v1/exchange/transactions"""

    def test_lists_only_own_exchanges(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        owner = make_user(points=1000)
        other = make_user(points=1000)
        product = make_product()
        for user in (owner, owner, other):
            client.post(
                "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers(user)
            )

        response = client.get("/api/v1/exchange/transactions", headers=auth_headers(owner))

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 2
        assert all(item["user_id"] == owner.id for item in data["items"])

    def test_other_users_exchange_is_not_found(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        owner = make_user(points=1000)
        other = make_user(points=1000)
        product = make_product()
        exchange_id = client.post(
            "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers(owner)
        ).json()["exchange_id"]

        mine = client.get(
            f"/api/v1/exchange/transactions/{exchange_id}", headers=auth_headers(owner)
        )
        theirs = client.get(
            f"/api/v1/exchange/transactions/{exchange_id}", headers=auth_headers(other)
        )

        assert mine.status_code == 200
        assert mine.json()["data"]["id"] == exchange_id
        assert theirs.status_code == 404

    def test_invalid_status_filter_returns_400(self, client, make_user, auth_headers):
        user = make_user()

        response = client.get(
            "/api/v1/exchange/transactions",
            params={"status": "lost"},
            headers=auth_headers(user),
        )

        assert response.status_code == 400


class TestAdminExchangeStatus:
    """PUT /api/v1/admin/exchanges/{exchange_id}/status"""

    def _create_exchange(self, client, make_user, make_product, exchange_headers):
        user = make_user(points=1000)
        product = make_product()
        response = client.post(
            "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers(user)
        )
        return user, response.json()["exchange_id"]

    def test_admin_updates_status(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        admin = make_user(is_admin=True)
        _, exchange_id = self._create_exchange(client, make_user, make_product, exchange_headers)

        response = client.put(
            f"/api/v1/admin/exchanges/{exchange_id}/status",
            json={"status": "shipped", "tracking_number": "TRK-1"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["refunded"] is False
        assert data["data"]["status"] == "shipped"
        assert data["data"]["tracking_number"] == "TRK-1"

    def test_invalid_status_returns_400_and_keeps_record(
        self, client, db_session, make_user, make_product, auth_headers, exchange_headers
    ):
        admin = make_user(is_admin=True)
        _, exchange_id = self._create_exchange(client, make_user, make_product, exchange_headers)

        response = client.put(
            f"/api/v1/admin/exchanges/{exchange_id}/status",
            json={"status": "teleported"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid status"
        db_session.expire_all()
        assert db_session.get(ExchangeRecord, exchange_id).status == "pending"

    def test_non_admin_gets_403(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        user, exchange_id = self._create_exchange(client, make_user, make_product, exchange_headers)

        response = client.put(
            f"/api/v1/admin/exchanges/{exchange_id}/status",
            json={"status": "shipped"},
            headers=auth_headers(user),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"
        assert response.json()["code"] == "AUTH_002"

    def test_unknown_exchange_returns_404(self, client, make_user, auth_headers):
        admin = make_user(is_admin=True)

        response = client.put(
            "/api/v1/admin/exchanges/does-not-exist/status",
            json={"status": "shipped"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 404

    def test_admin_lists_all_exchanges_with_status_filter(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        admin = make_user(is_admin=True)
        _, first_id = self._create_exchange(client, make_user, make_product, exchange_headers)
        self._create_exchange(client, make_user, make_product, exchange_headers)
        client.put(
            f"/api/v1/admin/exchanges/{first_id}/status",
            json={"status": "processing"},
            headers=auth_headers(admin),
        )

        everything = client.get("/api/v1/admin/exchanges", headers=auth_headers(admin))
        processing = client.get(
            "/api/v1/admin/exchanges",
            params={"status": "processing"},
            headers=auth_headers(admin),
        )

        assert everything.json()["pagination"]["total"] == 2
        assert [item["id"] for item in processing.json()["items"]] == [first_id]
