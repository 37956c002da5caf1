"""
포인트 잔액/원장 및 관리자 포인트 조정 API 테스트
"""

from decimal import Decimal

from carbontrack.models import User


class TestPointRoutes:
    """포인트 라우터 테스트"""

    def test_get_my_balance(self, client, make_user, auth_headers):
        """내 포인트 잔액 조회 테스트"""
        # Given
        user = make_user(points=1000)

        # When
        response = client.get("/api/v1/points/balance", headers=auth_headers(user))

        # Then
        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 1000
        assert data["user_id"] == user.id

    def test_get_my_ledger_newest_first(
        self, client, make_user, make_product, auth_headers, exchange_headers
    ):
        """교환 후 원장 조회 - 사용 항목이 먼저 나옴"""
        user = make_user(points=1000)
        product = make_product(points_required=50)
        client.post(
            "/api/v1/exchange", json={"product_id": product.id}, headers=exchange_headers(user)
        )

        response = client.get("/api/v1/points/ledger", headers=auth_headers(user))

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 950
        assert data["pagination"]["total"] == 2
        assert data["items"][0]["points"] == -50
        assert data["items"][0]["type"] == "spend"
        assert data["items"][1]["type"] == "earn"

    def test_ledger_limit_bounds(self, client, make_user, auth_headers):
        user = make_user()

        response = client.get(
            "/api/v1/points/ledger", params={"limit": 1000}, headers=auth_headers(user)
        )

        assert response.status_code == 422

    def test_balance_requires_authentication(self, client):
        response = client.get("/api/v1/points/balance")
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client, make_user, auth_headers):
        user = make_user(status="suspended")

        response = client.get("/api/v1/points/balance", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error"] == "Inactive user account"


class TestAdminPointAdjustment:
    """관리자 포인트 조정 테스트"""

    def test_adjust_points_credits_balance_and_ledger(
        self, client, db_session, make_user, auth_headers
    ):
        admin = make_user(is_admin=True)
        user = make_user(points=100)

        response = client.post(
            f"/api/v1/admin/users/{user.id}/points/adjust",
            json={"delta": 25.5, "reason": "Event bonus"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 125.5
        assert data["delta"] == 25.5
        db_session.expire_all()
        assert db_session.get(User, user.id).points == Decimal("125.50")

        integrity = client.get(
            f"/api/v1/admin/users/{user.id}/points/integrity", headers=auth_headers(admin)
        )
        assert integrity.json()["is_consistent"] is True

    def test_adjustment_cannot_go_negative(self, client, make_user, auth_headers):
        admin = make_user(is_admin=True)
        user = make_user(points=10)

        response = client.post(
            f"/api/v1/admin/users/{user.id}/points/adjust",
            json={"delta": -50, "reason": "Correction"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BALANCE_001"

    def test_zero_adjustment_rejected(self, client, make_user, auth_headers):
        admin = make_user(is_admin=True)
        user = make_user(points=10)

        response = client.post(
            f"/api/v1/admin/users/{user.id}/points/adjust",
            json={"delta": 0, "reason": "Nothing"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400

    def test_integrity_detects_drift(self, client, db_session, make_user, auth_headers):
        """원장 없이 잔액만 바뀐 경우 불일치 보고"""
        admin = make_user(is_admin=True)
        user = make_user(points=100)
        db_session.get(User, user.id).points = Decimal("150")
        db_session.commit()

        response = client.get(
            f"/api/v1/admin/users/{user.id}/points/integrity", headers=auth_headers(admin)
        )

        data = response.json()
        assert data["is_consistent"] is False
        assert data["difference"] == 50

    def test_audit_log_recorded(self, client, make_user, auth_headers):
        admin = make_user(is_admin=True)
        user = make_user(points=100)
        client.post(
            f"/api/v1/admin/users/{user.id}/points/adjust",
            json={"delta": 5, "reason": "Bonus"},
            headers={**auth_headers(admin), "X-Request-ID": "adjust-1"},
        )

        response = client.get(
            "/api/v1/admin/audit-logs",
            params={"action": "points_adjusted"},
            headers=auth_headers(admin),
        )

        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["request_id"] == "adjust-1"
        assert items[0]["data"]["extra"]["reason"] == "Bonus"
