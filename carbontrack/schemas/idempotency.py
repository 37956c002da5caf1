from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class IdempotencyRecordSchema(BaseModel):
    id: int
    idempotency_key: str
    user_id: Optional[int] = None
    request_method: str
    request_uri: str
    request_body: Optional[str] = None
    response_status: Optional[int] = None
    response_body: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_completed(self) -> bool:
        return self.response_status is not None
