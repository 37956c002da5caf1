from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select

from carbontrack.config import Settings
from carbontrack.core.exceptions import NotFoundError, ValidationError
from carbontrack.models import AuditLog, Message, MessageBroadcast
from carbontrack.schemas.broadcast import (
    BroadcastRequest,
    EmailDeliveryReport,
    EmailDeliveryStatus,
)
from carbontrack.services.broadcast_service import BroadcastService
from carbontrack.services.email_service import EmailService
from carbontrack.services.message_service import MessageService


@pytest.fixture
def settings():
    return Settings(EMAIL_FORCE_SIMULATION=True)


@pytest.fixture
def email_service(settings):
    return EmailService(settings)


@pytest.fixture
def broadcast_service(db_session, settings, email_service):
    return BroadcastService(db_session, settings=settings, email_service=email_service)


class TestBroadcastValidation:
    @pytest.mark.parametrize("priority", ["critical", "LOWEST", "1"])
    def test_invalid_priority(self, broadcast_service, make_user, priority):
        admin = make_user(is_admin=True)
        with pytest.raises(ValidationError) as exc_info:
            broadcast_service.broadcast(
                BroadcastRequest(title="Hi", content="Body", priority=priority),
                admin_id=admin.id,
            )
        assert exc_info.value.status_code == 422
        assert str(exc_info.value) == "Invalid priority value"

    def test_priority_is_case_insensitive(self, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        result = broadcast_service.broadcast(
            BroadcastRequest(title="Hi", content="Body", priority=" Low "),
            admin_id=admin.id,
        )
        assert result.priority == "low"

    @pytest.mark.parametrize(
        "title,content,status_code",
        [("", "Body", 400), ("   ", "Body", 400), ("Hi", "", 400), ("x" * 256, "Body", 422)],
    )
    def test_title_and_content_rules(
        self, broadcast_service, make_user, title, content, status_code
    ):
        admin = make_user(is_admin=True)
        with pytest.raises(ValidationError) as exc_info:
            broadcast_service.broadcast(
                BroadcastRequest(title=title, content=content), admin_id=admin.id
            )
        assert exc_info.value.status_code == status_code

    def test_empty_target_list(self, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        with pytest.raises(ValidationError) as exc_info:
            broadcast_service.broadcast(
                BroadcastRequest(title="Hi", content="Body", target_users=[]),
                admin_id=admin.id,
            )
        assert exc_info.value.status_code == 400

    def test_non_positive_target_ids(self, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        with pytest.raises(ValidationError):
            broadcast_service.broadcast(
                BroadcastRequest(title="Hi", content="Body", target_users=[1, 0]),
                admin_id=admin.id,
            )

    def test_no_existing_targets(self, db_session, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        with pytest.raises(NotFoundError) as exc_info:
            broadcast_service.broadcast(
                BroadcastRequest(title="Hi", content="Body", target_users=[998, 999]),
                admin_id=admin.id,
            )
        assert str(exc_info.value) == "No target users found for broadcast"
        assert db_session.execute(select(Message)).scalars().all() == []


class TestBroadcastDelivery:
    def test_all_active_users_by_default(self, db_session, broadcast_service, make_user):
        """target_users 생략 시 활성 사용자 전체에게 발송"""
        admin = make_user(is_admin=True)
        active = make_user()
        make_user(status="inactive")

        result = broadcast_service.broadcast(
            BroadcastRequest(title="Notice", content="Maintenance tonight"),
            admin_id=admin.id,
        )

        assert result.sent_count == 2
        assert result.total_targets == 2
        assert result.priority == "normal"
        assert result.email_delivery is None
        receivers = {
            m.receiver_id for m in db_session.execute(select(Message)).scalars()
        }
        assert receivers == {admin.id, active.id}

    def test_invalid_ids_reported_and_duplicates_removed(
        self, db_session, broadcast_service, make_user
    ):
        admin = make_user(is_admin=True)
        target = make_user()

        result = broadcast_service.broadcast(
            BroadcastRequest(
                title="Hi", content="Body", target_users=[target.id, 999, target.id]
            ),
            admin_id=admin.id,
        )

        assert result.sent_count == 1
        assert result.total_targets == 1
        assert result.invalid_user_ids == [999]
        message = db_session.execute(select(Message)).scalar_one()
        assert message.receiver_id == target.id
        assert message.sender_id == admin.id
        assert message.type == "broadcast"

    def test_per_user_failure_is_isolated(self, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        first = make_user()
        second = make_user()
        original_send = MessageService.send

        def flaky_send(self, receiver_id, *args, **kwargs):
            if receiver_id == first.id:
                raise RuntimeError("insert failed")
            return original_send(self, receiver_id, *args, **kwargs)

        with patch.object(MessageService, "send", flaky_send):
            result = broadcast_service.broadcast(
                BroadcastRequest(
                    title="Hi", content="Body", target_users=[first.id, second.id]
                ),
                admin_id=admin.id,
            )

        assert result.sent_count == 1
        assert result.failed_user_ids == [first.id]

    def test_history_and_audit_recorded(self, db_session, broadcast_service, make_user):
        admin = make_user(is_admin=True)
        target = make_user()

        result = broadcast_service.broadcast(
            BroadcastRequest(title="Hi", content="Body", target_users=[target.id]),
            admin_id=admin.id,
        )

        history = db_session.get(MessageBroadcast, result.broadcast_id)
        assert history.scope == "custom"
        assert history.sent_count == 1
        assert len(history.content_hash) == 64
        audit = db_session.execute(
            select(AuditLog).where(AuditLog.action == "system_message_broadcast")
        ).scalar_one()
        assert audit.user_id == admin.id
        assert audit.data["extra"]["sent_count"] == 1


class TestBroadcastEmail:
    def test_high_priority_sends_bcc_email(self, db_session, settings, make_user):
        admin = make_user(is_admin=True)
        make_user(email="a@example.com")
        make_user(email="b@example.com")
        email_service = MagicMock()
        email_service.subject_for_priority.side_effect = EmailService.subject_for_priority
        email_service.send_bcc_batch.return_value = EmailDeliveryReport(
            status=EmailDeliveryStatus.SENT, recipient_count=3, sent_count=3, batches=1
        )
        service = BroadcastService(db_session, settings=settings, email_service=email_service)

        result = service.broadcast(
            BroadcastRequest(title="Outage", content="Body", priority="urgent"),
            admin_id=admin.id,
        )

        emails, subject, body = email_service.send_bcc_batch.call_args.args
        assert sorted(emails) == sorted([admin.email, "a@example.com", "b@example.com"])
        assert subject == "[URGENT] Outage"
        assert body == "Body"
        assert result.email_delivery.status == EmailDeliveryStatus.SENT

    def test_email_failure_does_not_undo_messages(self, db_session, settings, make_user):
        admin = make_user(is_admin=True)
        target = make_user()
        email_service = MagicMock()
        email_service.subject_for_priority.side_effect = EmailService.subject_for_priority
        email_service.send_bcc_batch.return_value = EmailDeliveryReport(
            status=EmailDeliveryStatus.FAILED, recipient_count=1, errors=["batch 1: boom"]
        )
        service = BroadcastService(db_session, settings=settings, email_service=email_service)

        result = service.broadcast(
            BroadcastRequest(title="Hi", content="Body", priority="high", target_users=[target.id]),
            admin_id=admin.id,
        )

        assert result.sent_count == 1
        assert result.email_delivery.status == EmailDeliveryStatus.FAILED
        assert len(db_session.execute(select(Message)).scalars().all()) == 1

    def test_normal_priority_skips_email(self, db_session, settings, make_user):
        admin = make_user(is_admin=True)
        email_service = MagicMock()
        service = BroadcastService(db_session, settings=settings, email_service=email_service)

        service.broadcast(
            BroadcastRequest(title="Hi", content="Body", priority="normal"),
            admin_id=admin.id,
        )

        email_service.send_bcc_batch.assert_not_called()
