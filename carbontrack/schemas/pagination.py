import math

from pydantic import BaseModel


class PaginationMeta(BaseModel):
    """페이지네이션 메타 정보"""

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        pages = math.ceil(total / limit) if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages)


# 엔드포인트별 페이지네이션 제한
class PaginationLimits:
    EXCHANGES = {"min": 1, "max": 100, "default": 20}
    POINTS_LEDGER = {"min": 1, "max": 100, "default": 50}
    MESSAGES = {"min": 1, "max": 100, "default": 20}
    BROADCASTS = {"min": 1, "max": 100, "default": 20}
    RECIPIENTS = {"min": 1, "max": 50, "default": 20}
    AUDIT_LOGS = {"min": 1, "max": 100, "default": 50}


def clamp_limit(limit: int, bounds: dict) -> int:
    """범위를 벗어난 limit 값을 경계값으로 보정"""
    return max(bounds["min"], min(bounds["max"], limit))
