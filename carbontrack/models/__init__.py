from carbontrack.models.base import Base
from carbontrack.models.user import User, UserStatus
from carbontrack.models.product import Product, ProductStatus
from carbontrack.models.points import (
    PointsTransaction,
    PointsTransactionStatus,
    PointsTransactionType,
)
from carbontrack.models.exchange import ExchangeRecord, ExchangeStatus
from carbontrack.models.message import Message, MessagePriority, MessageType
from carbontrack.models.broadcast import BroadcastScope, MessageBroadcast
from carbontrack.models.audit_log import ActorType, AuditLog
from carbontrack.models.idempotency import IdempotencyRecord

__all__ = [
    "Base",
    "User",
    "UserStatus",
    "Product",
    "ProductStatus",
    "PointsTransaction",
    "PointsTransactionStatus",
    "PointsTransactionType",
    "ExchangeRecord",
    "ExchangeStatus",
    "Message",
    "MessagePriority",
    "MessageType",
    "BroadcastScope",
    "MessageBroadcast",
    "ActorType",
    "AuditLog",
    "IdempotencyRecord",
]
