"""
Training Engine Errors

훈련 엔진 오류 분류
- ValidationError: 잘못된 날짜 범위, 필수값 누락, 일괄 취소 결과 없음
- NotFoundError: 세션/카테고리/목표/취소 기록 없음
- ConflictError: 유일성 제약 위반 (세션 동시 생성 등)
- StoreError: 저장소 통신/저장 실패 (호출자가 재시도 가능)
"""

from typing import Any, Optional


class TrainingError(Exception):
    """훈련 엔진 기본 오류"""

    kind = "training_error"
    status_code = 500

    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        data = {"error": self.kind, "detail": self.message}
        if self.field:
            data["field"] = self.field
        return data


class ValidationError(TrainingError):
    kind = "validation_error"
    status_code = 422


class NotFoundError(TrainingError):
    kind = "not_found"
    status_code = 404


class ConflictError(TrainingError):
    kind = "conflict"
    status_code = 409


class StoreError(TrainingError):
    kind = "store_error"
    status_code = 503
    retryable = True
