"""
사용자 수신함 API 테스트
"""

import pytest

from carbontrack.services.message_service import MessageService


@pytest.fixture
def inbox(db_session, make_user):
    """사용자 두 명과 각자의 메시지"""
    owner = make_user()
    stranger = make_user()
    service = MessageService(db_session)
    messages = [
        service.send(receiver_id=owner.id, title=f"Notice {i}", content="Body")
        for i in range(3)
    ]
    service.send(receiver_id=stranger.id, title="Private", content="Body")
    return owner, stranger, messages


class TestMessageInbox:
    def test_list_and_unread_count(self, client, inbox, auth_headers):
        owner, _, _ = inbox

        listing = client.get("/api/v1/messages", headers=auth_headers(owner))
        unread = client.get("/api/v1/messages/unread-count", headers=auth_headers(owner))

        assert listing.status_code == 200
        assert listing.json()["pagination"]["total"] == 3
        assert unread.json()["unread_count"] == 3

    def test_detail_marks_message_read(self, client, inbox, auth_headers):
        owner, _, messages = inbox

        response = client.get(f"/api/v1/messages/{messages[0].id}", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json()["data"]["is_read"] is True
        unread = client.get("/api/v1/messages/unread-count", headers=auth_headers(owner))
        assert unread.json()["unread_count"] == 2

    def test_read_filter(self, client, inbox, auth_headers):
        owner, _, messages = inbox
        client.put(f"/api/v1/messages/{messages[1].id}/read", headers=auth_headers(owner))

        response = client.get(
            "/api/v1/messages", params={"is_read": "true"}, headers=auth_headers(owner)
        )

        assert [item["id"] for item in response.json()["items"]] == [messages[1].id]

    def test_mark_all_read(self, client, inbox, auth_headers):
        owner, stranger, _ = inbox

        response = client.put("/api/v1/messages/read-all", headers=auth_headers(owner))

        assert response.json()["affected"] == 3
        other = client.get("/api/v1/messages/unread-count", headers=auth_headers(stranger))
        assert other.json()["unread_count"] == 1

    def test_delete_hides_message(self, client, inbox, auth_headers):
        owner, _, messages = inbox

        deleted = client.delete(f"/api/v1/messages/{messages[2].id}", headers=auth_headers(owner))
        again = client.get(f"/api/v1/messages/{messages[2].id}", headers=auth_headers(owner))

        assert deleted.status_code == 200
        assert again.status_code == 404

    def test_cannot_touch_other_users_messages(self, client, inbox, auth_headers):
        _, stranger, messages = inbox

        read = client.get(f"/api/v1/messages/{messages[0].id}", headers=auth_headers(stranger))
        delete = client.delete(
            f"/api/v1/messages/{messages[0].id}", headers=auth_headers(stranger)
        )

        assert read.status_code == 404
        assert read.json()["error"] == "Message not found"
        assert delete.status_code == 404
