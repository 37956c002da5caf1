import logging
from typing import Optional

from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from carbontrack.core.exceptions import AuthenticationError
from carbontrack.core.security import decode_access_token
from carbontrack.repositories.user_repository import UserRepository
from carbontrack.schemas.user import TokenPayload, User as UserSchema

logger = logging.getLogger(__name__)


class AuthService:
    """Bearer 토큰 검증 및 현재 사용자 조회"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def verify_token(self, token: str) -> Optional[TokenPayload]:
        """JWT 토큰 검증 - 유효하지 않으면 None"""
        try:
            payload = decode_access_token(token)
            return TokenPayload.model_validate(payload)
        except (JWTError, PydanticValidationError) as e:
            logger.warning(f"Token verification failed: {str(e)}")
            return None

    def get_current_user(self, token: str) -> UserSchema:
        token_data = self.verify_token(token)
        if not token_data:
            raise AuthenticationError("Invalid or expired token")

        user = self.user_repo.get_live(token_data.user_id)
        if not user or user.email != token_data.sub:
            raise AuthenticationError("User not found")

        return UserSchema.model_validate(user)
