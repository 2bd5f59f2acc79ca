"""
작업 진입점 (화면/API 경계)
===========================
서비스 호출 결과를 OperationResult로 통일한다.

- 필드 검증 실패 → errors에 ValidationError 리스트
- LedgerError 계열 → 짧은 메시지 (상세는 로그로만)
- DB 오류 → 작업별 실패 메시지 (현재 작업만 실패, 프로세스는 계속)

사용법:
    from ledger import actions

    result = actions.add_sale({"book_id": 1, "period": "01-2026", ...})
    if not result.success:
        print(result.error, result.errors)
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ledger import database
from ledger.api.openlibrary_client import OpenLibraryClient
from ledger.errors import LedgerError, OperationResult, StorageError
from ledger.services import author_payments, books, bulk_import, sales

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "Please fix the highlighted fields"


def _engine(engine: Optional[Engine]) -> Engine:
    return engine if engine is not None else database.engine


def _run(name: str, failure_message: str, func: Callable[[], Any]) -> OperationResult:
    """
    서비스 호출 + 오류 변환

    func가 (값, errors) 튜플을 돌려주는 경우 errors가 있으면 검증 실패로 처리
    """
    try:
        value = func()
    except LedgerError as e:
        logger.warning(f"{name} 실패: [{e.code}] {e.message} ({e.detail})")
        return OperationResult.fail(e.message, code=e.code)
    except SQLAlchemyError as e:
        logger.error(f"{name} DB 오류: {type(e).__name__}: {e}")
        return OperationResult.fail(failure_message, code=StorageError.code)

    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[1], list):
        result, errors = value
        if errors:
            logger.info(f"{name} 검증 실패: " + "; ".join(f"{e.field}: {e.message}" for e in errors))
            return OperationResult.fail(VALIDATION_FAILED, errors=errors, code="VALIDATION")
        value = result

    return OperationResult.ok(value)


# ─────────────────────────────────────────────
# 판매
# ─────────────────────────────────────────────

def list_sales(query: Any = None, engine: Optional[Engine] = None) -> OperationResult:
    return _run("판매 목록", "Failed to load sales", lambda: sales.list_sales(_engine(engine), query))


def list_sales_for_book(book_id: int, query: Any = None, engine: Optional[Engine] = None) -> OperationResult:
    return _run(
        "도서별 판매 목록", "Failed to load sales",
        lambda: sales.list_sales_for_book(_engine(engine), book_id, query),
    )


def get_sale(sale_id: int, engine: Optional[Engine] = None) -> OperationResult:
    return _run("판매 조회", "Failed to load sale", lambda: sales.get_sale(_engine(engine), sale_id))


def add_sale(data: Dict, engine: Optional[Engine] = None) -> OperationResult:
    return _run("판매 등록", "Failed to add sale", lambda: sales.add_sale(_engine(engine), data))


def update_sale(sale_id: int, data: Dict, engine: Optional[Engine] = None) -> OperationResult:
    return _run(
        "판매 수정", "Failed to update sale",
        lambda: sales.update_sale(_engine(engine), sale_id, data),
    )


def delete_sale(sale_id: int, engine: Optional[Engine] = None) -> OperationResult:
    return _run("판매 삭제", "Failed to delete sale", lambda: sales.delete_sale(_engine(engine), sale_id))


def toggle_paid_status(sale_id: int, engine: Optional[Engine] = None) -> OperationResult:
    return _run(
        "지급 상태 변경", "Failed to toggle status",
        lambda: sales.toggle_paid_status(_engine(engine), sale_id),
    )


# ─────────────────────────────────────────────
# 작가 지급
# ─────────────────────────────────────────────

def get_author_payments(
    page: Optional[int] = 1,
    page_size: Optional[int] = None,
    engine: Optional[Engine] = None,
) -> OperationResult:
    return _run(
        "작가 지급 목록", "Failed to load author payments",
        lambda: author_payments.get_author_payment_page(_engine(engine), page, page_size),
    )


def mark_author_paid(author_ids: Sequence[int], engine: Optional[Engine] = None) -> OperationResult:
    """작가 조합 일괄 지급 (0건도 성공)"""
    def _mark():
        count = author_payments.mark_group_paid(_engine(engine), author_ids)
        return {"updated_count": count, "message": f"Marked {count} sale(s) as paid"}

    return _run("작가 지급 처리", "Failed to mark sales as paid", _mark)


# ─────────────────────────────────────────────
# 대량 입력
# ─────────────────────────────────────────────

def preview_bulk_sales(text: str, engine: Optional[Engine] = None) -> OperationResult:
    """
    붙여넣기 미리보기

    value: {"valid", "invalid", "pending", "unmatched"}
    """
    def _preview():
        parsed = bulk_import.parse_bulk_text(text)
        lookup = books.load_book_lookup(_engine(engine))
        pending, unmatched = bulk_import.match_parsed_rows(parsed.valid, lookup)
        return {
            "valid": parsed.valid,
            "invalid": parsed.invalid,
            "pending": pending,
            "unmatched": unmatched,
        }

    return _run("대량 입력 미리보기", "Failed to preview records", _preview)


def submit_bulk_sales(
    items: List[bulk_import.PendingSaleItem],
    engine: Optional[Engine] = None,
) -> OperationResult:
    """
    대기 항목 저장

    일부 실패 시 success=False, error="Failed to save X of N record(s).",
    value에는 BatchSaveResult (성공한 줄은 이미 저장됨)
    """
    result = _run(
        "대량 저장", "Failed to save records",
        lambda: sales.save_pending_sales(_engine(engine), items),
    )
    if result.success and not result.value.success:
        return OperationResult(
            success=False, value=result.value, error=result.value.message, code="PARTIAL"
        )
    return result


def import_bulk_text(text: str, engine: Optional[Engine] = None) -> OperationResult:
    """붙여넣기 텍스트 → 파싱 → 도서 매칭 → 저장 (형식 오류 줄과 미발견 줄은 제외)"""
    preview = preview_bulk_sales(text, engine=engine)
    if not preview.success:
        return preview
    return submit_bulk_sales(preview.value["pending"], engine=engine)


# ─────────────────────────────────────────────
# 도서
# ─────────────────────────────────────────────

def list_books(query: Any = None, engine: Optional[Engine] = None) -> OperationResult:
    return _run("도서 목록", "Failed to load books", lambda: books.list_books(_engine(engine), query))


def get_book(book_id: int, engine: Optional[Engine] = None) -> OperationResult:
    return _run("도서 조회", "Failed to load book", lambda: books.get_book_detail(_engine(engine), book_id))


def create_book(data: Dict, engine: Optional[Engine] = None) -> OperationResult:
    return _run("도서 등록", "Failed to create book", lambda: books.create_book(_engine(engine), data))


def update_book(book_id: int, data: Dict, engine: Optional[Engine] = None) -> OperationResult:
    return _run(
        "도서 수정", "Failed to update book",
        lambda: books.update_book(_engine(engine), book_id, data),
    )


def delete_book(book_id: int, engine: Optional[Engine] = None) -> OperationResult:
    return _run("도서 삭제", "Failed to delete book", lambda: books.delete_book(_engine(engine), book_id))


def list_series(engine: Optional[Engine] = None) -> OperationResult:
    return _run("시리즈 목록", "Failed to load series", lambda: books.list_series(_engine(engine)))


def create_series(name: str, description: Optional[str] = None, engine: Optional[Engine] = None) -> OperationResult:
    return _run(
        "시리즈 생성", "Failed to create series",
        lambda: books.create_series(_engine(engine), name, description),
    )


def lookup_book_by_isbn(isbn: str, client: Optional[OpenLibraryClient] = None) -> OperationResult:
    """Open Library 조회 (실패해도 로컬 데이터 변경 없음)"""
    return _run(
        "ISBN 조회", "Failed to fetch book data",
        lambda: (client or OpenLibraryClient()).fetch_by_isbn(isbn),
    )
