from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    """인증된 사용자 정보"""

    id: int
    username: str
    email: EmailStr
    points: float = 0
    status: str
    is_admin: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecipientItem(BaseModel):
    """브로드캐스트 수신자 검색 결과"""

    id: int
    username: str
    email: EmailStr

    class Config:
        from_attributes = True


class TokenPayload(BaseModel):
    user_id: int
    sub: EmailStr = Field(..., description="subject, typically user's email")
