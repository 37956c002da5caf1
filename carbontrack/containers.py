from dependency_injector import containers, providers

from carbontrack.config import get_settings
from carbontrack.services.email_service import EmailService


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=["carbontrack.deps"],
    )

    config = providers.Singleton(get_settings)

    # SES 클라이언트 설정을 공유하는 이메일 서비스
    email_service = providers.Singleton(EmailService, settings=config)
