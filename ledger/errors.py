"""
오류 분류 및 결과 타입
======================
서비스 계층은 LedgerError 계열 예외를 발생시키고,
actions 계층에서 OperationResult로 변환한다.

사용법:
    try:
        delete_book(engine, book_id)
    except ConflictError as e:
        return OperationResult.fail(e.message)
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional


class LedgerError(Exception):
    """도메인 오류 기본 클래스"""
    code = "LEDGER_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(f"[{self.code}] {message}")


class InvalidInputError(LedgerError):
    """계산/처리 불가능한 입력값"""
    code = "INVALID_INPUT"


class NotFoundError(LedgerError):
    """도서/판매/작가가 존재하지 않음"""
    code = "NOT_FOUND"


class ConflictError(LedgerError):
    """현재 상태와 충돌 (판매 기록이 있는 도서 삭제, ISBN 중복 등)"""
    code = "CONFLICT"


class ExternalLookupError(LedgerError):
    """외부 메타데이터 조회 실패"""
    code = "EXTERNAL_LOOKUP"

    def __init__(self, message: str, detail: Optional[str] = None, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message, detail)


class StorageError(LedgerError):
    """저장소 오류 (현재 작업만 실패 처리)"""
    code = "STORAGE"


@dataclass
class OperationResult:
    """
    작업 결과

    success=False인 경우 error에 짧은 메시지,
    필드 단위 검증 실패는 errors에 ValidationError 리스트로 담긴다.
    """
    success: bool
    value: Any = None
    error: Optional[str] = None
    errors: List[Any] = field(default_factory=list)
    code: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls,
        error: str,
        errors: Optional[List[Any]] = None,
        code: Optional[str] = None,
    ) -> "OperationResult":
        return cls(success=False, error=error, errors=list(errors or []), code=code)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "value": self.value}
        return {
            "success": False,
            "error": self.error,
            "errors": [
                {"field": e.field, "message": e.message} for e in self.errors
            ],
        }
