"""
판매 기록 서비스
================
판매 검증, 목록 조회(검색/기간/정렬/페이지), 등록/수정/삭제, 지급 상태 변경,
대량 입력 저장

사용법:
    page = list_sales(engine, SalesQuery(search="tolkien", date_from="11-2025"))
    sale, errors = add_sale(engine, {"book_id": 1, "period": "01-2026", ...})
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ledger.constants import DEFAULT_SALE_SORT, SALE_NOT_FOUND
from ledger.errors import InvalidInputError, LedgerError, NotFoundError
from ledger.models import Book, Sale
from ledger.schemas import SalesQuery
from ledger.services.listing import (
    Page,
    filter_by_period_range,
    filter_by_search,
    paginate,
    period_key,
    stable_sort,
)
from ledger.services.royalty import (
    RoyaltyEditor,
    compute_royalty,
    differs_from_computed,
    round_money,
    to_decimal,
)
from ledger.services.transaction_manager import atomic_operation, atomic_session
from ledger.utils.formatters import format_currency, format_period, status_label
from ledger.utils.validators import SaleValidator, ValidationError, parse_int

logger = logging.getLogger(__name__)


@dataclass
class SaleView:
    """목록/상세 화면용 판매 기록 (세션과 분리된 값 객체)"""
    id: int
    book_id: int
    title: str
    authors: List[str]
    author_ids: Tuple[int, ...]
    period: str
    quantity: int
    publisher_revenue: Decimal
    author_royalty: Decimal
    royalty_overridden: bool
    paid: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, sale: Sale) -> "SaleView":
        book = sale.book
        return cls(
            id=sale.id,
            book_id=sale.book_id,
            title=book.title if book else "",
            authors=book.author_names if book else [],
            author_ids=book.author_ids if book else (),
            period=sale.period,
            quantity=sale.quantity,
            publisher_revenue=Decimal(sale.publisher_revenue),
            author_royalty=Decimal(sale.author_royalty),
            royalty_overridden=bool(sale.royalty_overridden),
            paid=bool(sale.paid),
            created_at=sale.created_at,
            updated_at=sale.updated_at,
        )

    @property
    def author_display(self) -> str:
        return ", ".join(self.authors)

    @property
    def period_sort_key(self) -> Optional[str]:
        return period_key(self.period)

    @property
    def revenue_display(self) -> str:
        return format_currency(self.publisher_revenue)

    @property
    def royalty_display(self) -> str:
        return format_currency(self.author_royalty)

    @property
    def period_display(self) -> str:
        return format_period(self.period)

    @property
    def status(self) -> str:
        return "paid" if self.paid else "pending"

    @property
    def status_label(self) -> str:
        return status_label(self.paid)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "title": self.title,
            "authors": self.author_display,
            "period": self.period,
            "period_display": self.period_display,
            "quantity": self.quantity,
            "publisher_revenue": str(self.publisher_revenue),
            "author_royalty": str(self.author_royalty),
            "revenue_display": self.revenue_display,
            "royalty_display": self.royalty_display,
            "royalty_overridden": self.royalty_overridden,
            "paid": self.paid,
            "status": self.status,
            "status_label": self.status_label,
        }


@dataclass
class ValidatedSale:
    """검증 통과한 판매 입력 (인세 확정)"""
    book_id: int
    period: str
    quantity: int
    publisher_revenue: Decimal
    author_royalty: Decimal
    royalty_overridden: bool
    paid: bool = False


@dataclass
class BatchSaveResult:
    """대량 저장 결과 (일부 실패해도 성공분은 유지)"""
    total: int
    saved_count: int
    failed_count: int
    saved_ids: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed_count == 0

    @property
    def message(self) -> str:
        if self.failed_count:
            return f"Failed to save {self.failed_count} of {self.total} record(s)."
        return f"Saved {self.saved_count} record(s)."

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "saved_count": self.saved_count,
            "failed_count": self.failed_count,
            "saved_ids": self.saved_ids,
            "message": self.message,
        }


SALE_SORT_KEYS = {
    "id": lambda v: v.id,
    "title": lambda v: v.title,
    "author": lambda v: v.author_display or None,
    "period": lambda v: v.period_sort_key,
    "quantity": lambda v: v.quantity,
    "publisher_revenue": lambda v: v.publisher_revenue,
    "author_royalty": lambda v: v.author_royalty,
    "paid": lambda v: v.paid,
    "royalty_overridden": lambda v: v.royalty_overridden,
}


# ─────────────────────────────────────────────
# 검증
# ─────────────────────────────────────────────

def _check_sale(data: Dict, book: Optional[Book]) -> Tuple[Optional[ValidatedSale], List[ValidationError]]:
    errors = SaleValidator().validate(data, book)
    if errors:
        return None, errors

    revenue = round_money(to_decimal(data["publisher_revenue"], "publisher_revenue"))
    computed = compute_royalty(revenue, book.default_royalty_rate)

    royalty_input = data.get("author_royalty")
    if royalty_input in (None, ""):
        royalty, overridden = computed, False
    else:
        royalty = round_money(to_decimal(royalty_input, "author_royalty"))
        overridden = differs_from_computed(royalty, computed)

    return ValidatedSale(
        book_id=book.id,
        period=str(data["period"]).strip(),
        quantity=parse_int(data["quantity"]),
        publisher_revenue=revenue,
        author_royalty=royalty,
        royalty_overridden=overridden,
        paid=bool(data.get("paid") or False),
    ), []


def validate_sale(engine: Engine, data: Dict) -> Tuple[Optional[ValidatedSale], List[ValidationError]]:
    """
    판매 입력 검증

    Args:
        data: book_id, period, quantity, publisher_revenue, author_royalty(선택), paid(선택)

    Returns:
        (ValidatedSale, []) 또는 (None, [ValidationError, ...])

    인세를 생략하면 도서 기본 인세율로 계산하고,
    계산값과 0.01 넘게 다르면 수동 입력(royalty_overridden)으로 기록한다.
    """
    book_id = parse_int(data.get("book_id"))
    with Session(engine) as session:
        book = session.get(Book, book_id) if book_id is not None else None
        return _check_sale(data, book)


# ─────────────────────────────────────────────
# 목록 조회
# ─────────────────────────────────────────────

def _coerce_query(query: Union[SalesQuery, Dict, None]) -> SalesQuery:
    if query is None:
        return SalesQuery()
    if isinstance(query, SalesQuery):
        return query
    try:
        return SalesQuery(**query)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise InvalidInputError(str(first.get("msg", "Invalid query")), detail=str(e))


def load_sale_views(engine: Engine, book_id: Optional[int] = None) -> List[SaleView]:
    with Session(engine) as session:
        stmt = (
            select(Sale)
            .options(selectinload(Sale.book).selectinload(Book.authors))
            .order_by(Sale.id)
        )
        if book_id is not None:
            stmt = stmt.where(Sale.book_id == book_id)
        return [SaleView.from_model(s) for s in session.scalars(stmt).all()]


def apply_sales_query(views: Iterable[SaleView], query: Union[SalesQuery, Dict, None]) -> Page[SaleView]:
    """
    검색 → 기간 필터 → 안정 정렬 → 페이지네이션

    알 수 없는 정렬 컬럼은 period로 대체
    """
    query = _coerce_query(query)

    rows = filter_by_search(views, query.search, lambda v: [v.title, v.author_display, *v.authors])
    rows = filter_by_period_range(rows, query.date_from, query.date_to, lambda v: v.period)

    sort_by = query.sort_by if query.sort_by in SALE_SORT_KEYS else DEFAULT_SALE_SORT
    rows = stable_sort(rows, SALE_SORT_KEYS[sort_by], descending=query.sort_dir == "desc")

    return paginate(rows, query.page, query.page_size, query.show_all)


def list_sales(engine: Engine, query: Union[SalesQuery, Dict, None] = None) -> Page[SaleView]:
    """판매 목록 조회"""
    return apply_sales_query(load_sale_views(engine), query)


def list_sales_for_book(
    engine: Engine,
    book_id: int,
    query: Union[SalesQuery, Dict, None] = None,
) -> Page[SaleView]:
    """도서 상세 화면의 판매 목록"""
    return apply_sales_query(load_sale_views(engine, book_id=book_id), query)


def get_sale(engine: Engine, sale_id: int) -> SaleView:
    """판매 상세 (없으면 NotFoundError)"""
    with Session(engine) as session:
        stmt = (
            select(Sale)
            .options(selectinload(Sale.book).selectinload(Book.authors))
            .where(Sale.id == sale_id)
        )
        sale = session.scalars(stmt).first()
        if sale is None:
            raise NotFoundError(SALE_NOT_FOUND, detail=f"sale_id={sale_id}")
        return SaleView.from_model(sale)


# ─────────────────────────────────────────────
# 등록 / 수정 / 삭제
# ─────────────────────────────────────────────

def add_sale(engine: Engine, data: Dict) -> Tuple[Optional[SaleView], List[ValidationError]]:
    """
    판매 등록

    Returns:
        (SaleView, []) 또는 검증 실패 시 (None, errors)
    """
    with atomic_session(engine) as session:
        book_id = parse_int(data.get("book_id"))
        book = session.get(Book, book_id) if book_id is not None else None

        validated, errors = _check_sale(data, book)
        if errors:
            return None, errors

        sale = Sale(
            book=book,
            period=validated.period,
            quantity=validated.quantity,
            publisher_revenue=validated.publisher_revenue,
            author_royalty=validated.author_royalty,
            royalty_overridden=validated.royalty_overridden,
            paid=validated.paid,
        )
        session.add(sale)
        session.flush()
        view = SaleView.from_model(sale)

    logger.info(
        f"판매 등록: id={view.id}, book={view.book_id}, period={view.period}, "
        f"royalty={view.author_royalty} (overridden={view.royalty_overridden})"
    )
    return view, []


def update_sale(
    engine: Engine,
    sale_id: int,
    data: Dict,
) -> Tuple[Optional[SaleView], List[ValidationError]]:
    """
    판매 수정 (전달된 필드만 반영)

    인세 처리:
      - revert_royalty=True → 현재 수익/인세율로 재계산, 수동 플래그 해제
      - author_royalty 전달 → 빈 값이면 재계산, 아니면 계산값과 비교해 수동 플래그 결정
      - 수익/도서만 변경 → 수동 입력이 아니면 재계산, 수동 입력이면 기존 인세 유지

    Raises:
        NotFoundError: 판매 기록 없음
    """
    with atomic_session(engine) as session:
        sale = session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError(SALE_NOT_FOUND, detail=f"sale_id={sale_id}")

        old_book = sale.book
        merged = {
            "book_id": sale.book_id,
            "period": sale.period,
            "quantity": sale.quantity,
            "publisher_revenue": sale.publisher_revenue,
        }
        for key in ("book_id", "period", "quantity", "publisher_revenue", "author_royalty"):
            if key in data:
                merged[key] = data[key]

        book_id = parse_int(merged.get("book_id"))
        book = session.get(Book, book_id) if book_id is not None else None

        errors = SaleValidator().validate(merged, book)
        if errors:
            return None, errors

        editor = RoyaltyEditor(
            rate=old_book.default_royalty_rate,
            revenue=sale.publisher_revenue,
            royalty=sale.author_royalty,
            overridden=sale.royalty_overridden,
        )
        if book.id != old_book.id:
            editor.set_rate(book.default_royalty_rate)
        if "publisher_revenue" in data:
            editor.set_revenue(round_money(to_decimal(data["publisher_revenue"])))

        if data.get("revert_royalty"):
            editor.revert()
        elif "author_royalty" in data:
            editor.set_royalty(data["author_royalty"])

        sale.book = book
        sale.period = str(merged["period"]).strip()
        sale.quantity = parse_int(merged["quantity"])
        sale.publisher_revenue = round_money(editor.revenue)
        sale.author_royalty = editor.royalty
        sale.royalty_overridden = editor.overridden
        if "paid" in data and data["paid"] is not None:
            sale.paid = bool(data["paid"])

        session.flush()
        view = SaleView.from_model(sale)

    logger.info(
        f"판매 수정: id={view.id}, royalty={view.author_royalty} "
        f"(overridden={view.royalty_overridden})"
    )
    return view, []


def delete_sale(engine: Engine, sale_id: int) -> None:
    """판매 삭제 (없으면 NotFoundError)"""
    with atomic_session(engine) as session:
        sale = session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError(SALE_NOT_FOUND, detail=f"sale_id={sale_id}")
        session.delete(sale)
    logger.info(f"판매 삭제: id={sale_id}")


def toggle_paid_status(engine: Engine, sale_id: int) -> SaleView:
    """지급 상태 전환 (paid ↔ pending)"""
    with atomic_session(engine) as session:
        sale = session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError(SALE_NOT_FOUND, detail=f"sale_id={sale_id}")
        sale.paid = not sale.paid
        session.flush()
        view = SaleView.from_model(sale)

    logger.info(f"지급 상태 변경: id={sale_id} → {view.status}")
    return view


# ─────────────────────────────────────────────
# 대량 저장
# ─────────────────────────────────────────────

def _insert_pending(conn: Connection, item: Any) -> int:
    """대기 항목 1건 검증 후 INSERT (검증 실패 시 InvalidInputError)"""
    book = conn.execute(
        select(Book.id, Book.isbn13, Book.isbn10).where(Book.id == item.book_id)
    ).first()

    errors = SaleValidator().validate(
        {
            "period": item.period,
            "quantity": item.quantity,
            "publisher_revenue": item.publisher_revenue,
            "author_royalty": item.author_royalty,
        },
        book,
    )
    if errors:
        raise InvalidInputError(errors[0].message, detail=f"{errors[0].field}={errors[0].value}")

    now = datetime.utcnow()
    result = conn.execute(
        Sale.__table__.insert().values(
            book_id=item.book_id,
            period=item.period,
            quantity=int(item.quantity),
            publisher_revenue=round_money(to_decimal(item.publisher_revenue)),
            author_royalty=round_money(to_decimal(item.author_royalty)),
            royalty_overridden=bool(item.royalty_overridden),
            paid=bool(getattr(item, "paid", False)),
            created_at=now,
            updated_at=now,
        )
    )
    return result.inserted_primary_key[0]


def _item_label(item: Any, index: int) -> str:
    line = getattr(item, "line", None)
    return f"Line {line}" if line is not None else f"Item {index + 1}"


def save_pending_sales(engine: Engine, items: List[Any]) -> BatchSaveResult:
    """
    대기 판매 목록 일괄 저장

    한 트랜잭션 안에서 항목마다 SAVEPOINT를 두고 INSERT한다.
    실패한 항목만 되돌리고 성공분은 마지막에 함께 커밋된다.

    Args:
        items: book_id, period, quantity, publisher_revenue, author_royalty,
               royalty_overridden 속성을 가진 항목 (PendingSaleItem)
    """
    outcome = BatchSaveResult(total=len(items), saved_count=0, failed_count=0)
    if not items:
        return outcome

    with atomic_operation(engine) as conn:
        for index, item in enumerate(items):
            try:
                with conn.begin_nested():
                    sale_id = _insert_pending(conn, item)
            except LedgerError as e:
                outcome.failed_count += 1
                outcome.errors.append(f"{_item_label(item, index)}: {e.message}")
            except SQLAlchemyError as e:
                outcome.failed_count += 1
                outcome.errors.append(f"{_item_label(item, index)}: {type(e).__name__}")
                logger.debug(f"저장 오류 (SAVEPOINT 롤백): {e}")
            else:
                outcome.saved_count += 1
                outcome.saved_ids.append(sale_id)

    if outcome.failed_count:
        logger.warning(f"대량 저장 일부 실패: {outcome.message} {outcome.errors[:5]}")
    else:
        logger.info(f"대량 저장 완료: {outcome.saved_count}건")
    return outcome
