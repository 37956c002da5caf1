import logging
from typing import Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from carbontrack.config import Settings
from carbontrack.schemas.broadcast import EmailDeliveryReport, EmailDeliveryStatus

logger = logging.getLogger(__name__)

PRIORITY_SUBJECT_PREFIX = {
    "urgent": "[URGENT] ",
    "high": "[HIGH] ",
}


class EmailService:
    """AWS SES 기반 이메일 발송

    SES_SENDER_EMAIL 이 비어 있거나 EMAIL_FORCE_SIMULATION 이 켜져 있으면
    SES 를 호출하지 않고 발송 성공으로 기록한다.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.region_name = settings.AWS_REGION
        self.aws_access_key_id = settings.AWS_ACCESS_KEY_ID
        self.aws_secret_access_key = settings.AWS_SECRET_ACCESS_KEY

    def _client(self):
        if self.aws_access_key_id and self.aws_secret_access_key:
            return boto3.client(
                "ses",
                region_name=self.region_name,
                aws_access_key_id=self.aws_access_key_id,
                aws_secret_access_key=self.aws_secret_access_key,
            )

        return boto3.client("ses", region_name=self.region_name)

    @property
    def simulated(self) -> bool:
        return self.settings.email_simulation

    @property
    def source(self) -> str:
        sender = self.settings.SES_SENDER_EMAIL
        if self.settings.SES_SENDER_NAME:
            return f"{self.settings.SES_SENDER_NAME} <{sender}>"
        return sender

    @staticmethod
    def normalize_recipients(emails: Iterable[Optional[str]]) -> List[str]:
        """공백 제거, 빈 값 제외, 대소문자 무시 중복 제거 (첫 등장 순서 유지)"""
        seen = set()
        recipients = []
        for email in emails:
            if not email or not email.strip():
                continue
            cleaned = email.strip()
            key = cleaned.lower()
            if key in seen:
                continue
            seen.add(key)
            recipients.append(cleaned)
        return recipients

    @staticmethod
    def subject_for_priority(title: str, priority: str) -> str:
        return f"{PRIORITY_SUBJECT_PREFIX.get(priority, '')}{title}"

    def _message(self, subject: str, body_text: str) -> dict:
        return {
            "Subject": {"Data": subject, "Charset": "UTF-8"},
            "Body": {"Text": {"Data": body_text, "Charset": "UTF-8"}},
        }

    def send_email(self, to_email: str, subject: str, body_text: str) -> bool:
        """단일 수신자 이메일 발송"""
        if self.simulated:
            logger.info(f"[Simulated] Email to {to_email}: {subject}")
            return True

        ses = self._client()
        try:
            response = ses.send_email(
                Source=self.source,
                Destination={"ToAddresses": [to_email]},
                Message=self._message(subject, body_text),
            )
            logger.info(f"Email sent to {to_email}, MessageId: {response['MessageId']}")
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to send email via SES: {str(e)}")
            return False

    def send_bcc_batch(
        self, emails: Iterable[Optional[str]], subject: str, body_text: str
    ) -> EmailDeliveryReport:
        """여러 수신자에게 BCC 로 일괄 발송

        발신 주소를 To 로 두고 수신자는 Bcc 로 넣는다. SES 목적지 제한에 맞춰
        SES_MAX_RECIPIENTS_PER_MESSAGE 단위로 나누어 보내며, 일부 묶음만 실패하면 partial.
        """
        recipients = self.normalize_recipients(emails)
        if not recipients:
            return EmailDeliveryReport(
                status=EmailDeliveryStatus.FAILED,
                simulated=self.simulated,
                errors=["No valid recipient email addresses"],
            )

        size = max(1, self.settings.SES_MAX_RECIPIENTS_PER_MESSAGE)
        batches = [recipients[i:i + size] for i in range(0, len(recipients), size)]

        sent_count = 0
        errors: List[str] = []
        ses = None if self.simulated else self._client()

        for index, batch in enumerate(batches, start=1):
            if ses is None:
                logger.info(f"[Simulated] BCC email batch {index} to {len(batch)} recipients: {subject}")
                sent_count += len(batch)
                continue
            try:
                response = ses.send_email(
                    Source=self.source,
                    Destination={
                        "ToAddresses": [self.settings.SES_SENDER_EMAIL],
                        "BccAddresses": batch,
                    },
                    Message=self._message(subject, body_text),
                )
                sent_count += len(batch)
                logger.info(
                    f"BCC email batch {index} sent to {len(batch)} recipients, MessageId: {response['MessageId']}"
                )
            except (BotoCoreError, ClientError) as e:
                logger.error(f"Failed to send BCC email batch {index}: {str(e)}")
                errors.append(f"batch {index}: {str(e)}")

        if sent_count == len(recipients):
            status = EmailDeliveryStatus.SENT
        elif sent_count == 0:
            status = EmailDeliveryStatus.FAILED
        else:
            status = EmailDeliveryStatus.PARTIAL

        return EmailDeliveryReport(
            status=status,
            recipient_count=len(recipients),
            sent_count=sent_count,
            batches=len(batches),
            simulated=self.simulated,
            errors=errors,
        )
