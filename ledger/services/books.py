"""
도서 카탈로그 서비스
====================
도서 등록/수정/삭제, 상세(판매 합계), 목록(검색/정렬/페이지), 시리즈, ISBN 조회표

사용법:
    book, errors = create_book(engine, {"title": "...", "authors": ["A", "B"]})
    detail = get_book_detail(engine, book.id)
    lookup = load_book_lookup(engine)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ledger.config import settings
from ledger.constants import (
    BOOK_HAS_SALES,
    BOOK_NOT_FOUND,
    DEFAULT_BOOK_SORT,
    MISSING_PUBLICATION_SORT_KEY,
)
from ledger.errors import ConflictError, InvalidInputError, NotFoundError
from ledger.models import Author, Book, Sale, Series
from ledger.schemas import BookQuery
from ledger.services.bulk_import import BookLookup
from ledger.services.listing import Page, filter_by_search, paginate, stable_sort
from ledger.services.royalty import round_money, to_decimal
from ledger.services.transaction_manager import atomic_session
from ledger.utils.formatters import format_currency, format_publication
from ledger.utils.validators import BookValidator, ValidationError, digits_only, parse_int

logger = logging.getLogger(__name__)

BOOK_FIELDS = (
    "title",
    "authors",
    "isbn13",
    "isbn10",
    "publication_month",
    "publication_year",
    "default_royalty_rate",
    "series_id",
    "series_order",
)


@dataclass
class BookView:
    """목록 화면용 도서"""
    id: int
    title: str
    authors: List[str]
    author_ids: Tuple[int, ...]
    isbn13: Optional[str]
    isbn10: Optional[str]
    publication_month: Optional[str]
    publication_year: Optional[int]
    default_royalty_rate: Decimal
    series_id: Optional[int] = None
    series_name: Optional[str] = None
    series_order: Optional[int] = None
    total_sales: int = 0

    @classmethod
    def from_model(cls, book: Book, total_sales: int = 0) -> "BookView":
        return cls(
            id=book.id,
            title=book.title,
            authors=book.author_names,
            author_ids=book.author_ids,
            isbn13=book.isbn13,
            isbn10=book.isbn10,
            publication_month=book.publication_month,
            publication_year=book.publication_year,
            default_royalty_rate=Decimal(book.default_royalty_rate),
            series_id=book.series_id,
            series_name=book.series.name if book.series else None,
            series_order=book.series_order,
            total_sales=total_sales,
        )

    @property
    def author_display(self) -> str:
        return ", ".join(self.authors)

    @property
    def publication_display(self) -> str:
        return format_publication(self.publication_month, self.publication_year)

    @property
    def publication_sort_key(self) -> str:
        if not self.publication_year or not self.publication_month:
            return MISSING_PUBLICATION_SORT_KEY
        return f"{self.publication_year:04d}-{self.publication_month}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "authors": self.authors,
            "author_display": self.author_display,
            "isbn13": self.isbn13,
            "isbn10": self.isbn10,
            "publication_month": self.publication_month,
            "publication_year": self.publication_year,
            "publication_display": self.publication_display,
            "default_royalty_rate": str(self.default_royalty_rate),
            "series_id": self.series_id,
            "series_name": self.series_name,
            "series_order": self.series_order,
            "total_sales": self.total_sales,
        }


@dataclass
class BookDetail(BookView):
    """도서 상세 (판매 합계 포함)"""
    total_publisher_revenue: Decimal = Decimal("0.00")
    unpaid_author_royalty: Decimal = Decimal("0.00")
    paid_author_royalty: Decimal = Decimal("0.00")
    total_author_royalty: Decimal = Decimal("0.00")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "total_publisher_revenue": str(self.total_publisher_revenue),
            "unpaid_author_royalty": str(self.unpaid_author_royalty),
            "paid_author_royalty": str(self.paid_author_royalty),
            "total_author_royalty": str(self.total_author_royalty),
            "revenue_display": format_currency(self.total_publisher_revenue),
            "unpaid_display": format_currency(self.unpaid_author_royalty),
        })
        return data


@dataclass
class SeriesView:
    id: int
    name: str
    description: Optional[str] = None
    book_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "book_count": self.book_count,
        }


BOOK_SORT_KEYS = {
    "title": lambda b: b.title,
    "author": lambda b: b.author_display or None,
    "isbn13": lambda b: b.isbn13,
    "isbn10": lambda b: b.isbn10,
    "publication": lambda b: b.publication_sort_key,
    "default_royalty_rate": lambda b: b.default_royalty_rate,
    "total_sales": lambda b: b.total_sales,
}


# ─────────────────────────────────────────────
# 입력 정리
# ─────────────────────────────────────────────

def _split_authors(value: Any) -> List[str]:
    """작가 입력 정리 ("A, B" 또는 리스트 → 중복 제거된 이름 목록)"""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    names = []
    for name in value:
        name = str(name or "").strip()
        if name and name not in names:
            names.append(name)
    return names


def _normalize_month(value: Any) -> Any:
    """1 → "01", "3" → "03" (그 외는 그대로 두고 검증에서 거름)"""
    if value in (None, ""):
        return None
    text = str(value).strip()
    if text.isdigit() and len(text) == 1:
        return f"0{text}"
    return text


def _normalize_book_input(data: Dict) -> Dict:
    cleaned = {k: data[k] for k in BOOK_FIELDS if k in data}
    if "authors" in cleaned:
        cleaned["authors"] = _split_authors(cleaned["authors"])
    if "title" in cleaned and cleaned["title"] is not None:
        cleaned["title"] = str(cleaned["title"]).strip()
    if "publication_month" in cleaned:
        cleaned["publication_month"] = _normalize_month(cleaned["publication_month"])
    for key in ("isbn13", "isbn10", "publication_year", "series_id", "series_order",
                "default_royalty_rate"):
        if key in cleaned and cleaned[key] == "":
            cleaned[key] = None
    return cleaned


def _find_or_create_authors(session: Session, names: List[str]) -> List[Author]:
    authors = []
    for name in names:
        author = session.scalars(select(Author).where(Author.name == name)).first()
        if author is None:
            author = Author(name=name)
            session.add(author)
            logger.info(f"작가 추가: {name}")
        authors.append(author)
    return authors


def _ensure_unique_isbn(session: Session, column: str, value: Optional[str], exclude_id: Optional[int]):
    if not value:
        return
    stmt = select(Book.id).where(getattr(Book, column) == value)
    if exclude_id is not None:
        stmt = stmt.where(Book.id != exclude_id)
    if session.scalars(stmt).first() is not None:
        label = "ISBN-13" if column == "isbn13" else "ISBN-10"
        raise ConflictError(f"A book with this {label} already exists", detail=f"{column}={value}")


def _resolve_series(session: Session, data: Dict) -> Tuple[bool, Optional[Series]]:
    """
    시리즈 결정

    Returns:
        (변경 여부, 시리즈) - new_series_name이 있으면 새로 만들고,
        series_id 키가 있으면 해당 시리즈(None이면 해제)
    """
    new_name = (data.get("new_series_name") or "").strip()
    if new_name:
        if session.scalars(select(Series.id).where(Series.name == new_name)).first() is not None:
            raise ConflictError("A series with this name already exists", detail=new_name)
        series = Series(name=new_name)
        session.add(series)
        return True, series

    if "series_id" not in data:
        return False, None

    series_id = parse_int(data.get("series_id"))
    if series_id is None:
        return True, None

    series = session.get(Series, series_id)
    if series is None:
        raise NotFoundError("Series not found", detail=f"series_id={series_id}")
    return True, series


def _delete_series_if_empty(session: Session, series_id: Optional[int]):
    """소속 도서가 없는 시리즈 삭제"""
    if series_id is None:
        return
    session.flush()
    remaining = session.scalar(select(func.count(Book.id)).where(Book.series_id == series_id))
    if remaining == 0:
        series = session.get(Series, series_id)
        if series is not None:
            session.delete(series)
            logger.info(f"빈 시리즈 삭제: {series.name}")


def _conflict_from_integrity(e: IntegrityError) -> ConflictError:
    text = str(e.orig).lower()
    if "isbn13" in text:
        return ConflictError("A book with this ISBN-13 already exists", detail=str(e.orig))
    if "isbn10" in text:
        return ConflictError("A book with this ISBN-10 already exists", detail=str(e.orig))
    if "series" in text:
        return ConflictError("A series with this name already exists", detail=str(e.orig))
    return ConflictError("Failed to save book", detail=str(e.orig))


# ─────────────────────────────────────────────
# 등록 / 수정 / 삭제
# ─────────────────────────────────────────────

def create_book(engine: Engine, data: Dict) -> Tuple[Optional[BookView], List[ValidationError]]:
    """
    도서 등록

    - 작가는 이름으로 찾고 없으면 같은 트랜잭션에서 생성
    - new_series_name이 있으면 시리즈 생성
    - 인세율 생략 시 기본값 (50%)

    Returns:
        (BookView, []) 또는 검증 실패 시 (None, errors)

    Raises:
        ConflictError: ISBN 중복, 시리즈 이름 중복
        NotFoundError: 없는 series_id
    """
    cleaned = _normalize_book_input(data)
    errors = BookValidator().validate(cleaned)
    if errors:
        return None, errors

    rate = cleaned.get("default_royalty_rate")
    isbn13 = digits_only(cleaned.get("isbn13")) or None
    isbn10 = digits_only(cleaned.get("isbn10")) or None

    try:
        with atomic_session(engine) as session:
            _ensure_unique_isbn(session, "isbn13", isbn13, None)
            _ensure_unique_isbn(session, "isbn10", isbn10, None)

            _, series = _resolve_series(session, data)
            book = Book(
                title=cleaned["title"],
                isbn13=isbn13,
                isbn10=isbn10,
                publication_month=cleaned.get("publication_month"),
                publication_year=parse_int(cleaned.get("publication_year")),
                default_royalty_rate=round_money(
                    to_decimal(rate if rate is not None else settings.default_royalty_rate)
                ),
                series=series,
                series_order=parse_int(cleaned.get("series_order")),
            )
            book.authors = _find_or_create_authors(session, cleaned["authors"])
            session.add(book)
            session.flush()
            view = BookView.from_model(book)
    except IntegrityError as e:
        raise _conflict_from_integrity(e)

    logger.info(f"도서 등록: id={view.id}, title={view.title}, authors={view.author_display}")
    return view, []


def update_book(engine: Engine, book_id: int, data: Dict) -> Tuple[Optional[BookView], List[ValidationError]]:
    """
    도서 수정 (전달된 필드만 반영)

    시리즈를 옮기거나 해제해서 이전 시리즈에 도서가 남지 않으면 시리즈도 삭제.
    인세율 변경은 기존 판매 기록의 인세에 영향을 주지 않는다.

    Raises:
        NotFoundError: 도서 없음
        ConflictError: ISBN 중복
    """
    cleaned = _normalize_book_input(data)
    errors = BookValidator().validate(cleaned, partial=True)
    if errors:
        return None, errors

    try:
        with atomic_session(engine) as session:
            book = session.get(Book, book_id)
            if book is None:
                raise NotFoundError(BOOK_NOT_FOUND, detail=f"book_id={book_id}")

            old_series_id = book.series_id

            # 연도만/월만 바꾸는 경우 기존 값과 합쳐서 다시 확인
            if "publication_month" in cleaned or "publication_year" in cleaned:
                month = cleaned.get("publication_month", book.publication_month)
                year = cleaned.get("publication_year", book.publication_year)
                pub_errors = BookValidator().validate_publication(month, year)
                if pub_errors:
                    return None, pub_errors

            if "title" in cleaned:
                book.title = cleaned["title"]
            if "authors" in cleaned:
                book.authors = _find_or_create_authors(session, cleaned["authors"])
            for column in ("isbn13", "isbn10"):
                if column in cleaned:
                    value = digits_only(cleaned[column]) or None
                    _ensure_unique_isbn(session, column, value, book.id)
                    setattr(book, column, value)
            if "publication_month" in cleaned:
                book.publication_month = cleaned["publication_month"]
            if "publication_year" in cleaned:
                book.publication_year = parse_int(cleaned["publication_year"])
            if cleaned.get("default_royalty_rate") is not None:
                book.default_royalty_rate = round_money(to_decimal(cleaned["default_royalty_rate"]))
            if "series_order" in cleaned:
                book.series_order = parse_int(cleaned["series_order"])

            changed, series = _resolve_series(session, data)
            if changed:
                book.series = series

            session.flush()
            if old_series_id is not None and old_series_id != book.series_id:
                _delete_series_if_empty(session, old_series_id)

            view = BookView.from_model(book, total_sales=_total_quantity(session, book.id))
    except IntegrityError as e:
        raise _conflict_from_integrity(e)

    logger.info(f"도서 수정: id={view.id}, title={view.title}")
    return view, []


def delete_book(engine: Engine, book_id: int) -> None:
    """
    도서 삭제

    Raises:
        NotFoundError: 도서 없음
        ConflictError: 판매 기록이 있는 도서
    """
    with atomic_session(engine) as session:
        book = session.get(Book, book_id)
        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND, detail=f"book_id={book_id}")

        sale_count = session.scalar(select(func.count(Sale.id)).where(Sale.book_id == book_id))
        if sale_count:
            raise ConflictError(BOOK_HAS_SALES, detail=f"book_id={book_id}, sales={sale_count}")

        series_id = book.series_id
        title = book.title
        session.delete(book)
        _delete_series_if_empty(session, series_id)

    logger.info(f"도서 삭제: id={book_id}, title={title}")


# ─────────────────────────────────────────────
# 조회
# ─────────────────────────────────────────────

def _total_quantity(session: Session, book_id: int) -> int:
    total = session.scalar(
        select(func.coalesce(func.sum(Sale.quantity), 0)).where(Sale.book_id == book_id)
    )
    return int(total or 0)


def get_book_detail(engine: Engine, book_id: int) -> BookDetail:
    """도서 상세 + 판매 합계 (수량, 출판사 수익, 미지급/지급/전체 인세)"""
    with Session(engine) as session:
        stmt = (
            select(Book)
            .options(selectinload(Book.authors), selectinload(Book.series), selectinload(Book.sales))
            .where(Book.id == book_id)
        )
        book = session.scalars(stmt).first()
        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND, detail=f"book_id={book_id}")

        quantity = 0
        revenue = Decimal("0")
        unpaid = Decimal("0")
        paid = Decimal("0")
        for sale in book.sales:
            quantity += sale.quantity
            revenue += Decimal(sale.publisher_revenue)
            if sale.paid:
                paid += Decimal(sale.author_royalty)
            else:
                unpaid += Decimal(sale.author_royalty)

        base = BookView.from_model(book, total_sales=quantity)
        return BookDetail(
            **base.__dict__,
            total_publisher_revenue=round_money(revenue),
            unpaid_author_royalty=round_money(unpaid),
            paid_author_royalty=round_money(paid),
            total_author_royalty=round_money(paid + unpaid),
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


def _load_book_views(engine: Engine) -> List[BookView]:
    with Session(engine) as session:
        totals = dict(
            session.execute(
                select(Sale.book_id, func.sum(Sale.quantity)).group_by(Sale.book_id)
            ).all()
        )
        stmt = (
            select(Book)
            .options(selectinload(Book.authors), selectinload(Book.series))
            .order_by(Book.id)
        )
        return [
            BookView.from_model(b, total_sales=int(totals.get(b.id) or 0))
            for b in session.scalars(stmt).all()
        ]


def _coerce_query(query: Union[BookQuery, Dict, None]) -> BookQuery:
    if query is None:
        return BookQuery()
    if isinstance(query, BookQuery):
        return query
    try:
        return BookQuery(**query)
    except PydanticValidationError as e:
        raise InvalidInputError(str(e.errors()[0].get("msg", "Invalid query")), detail=str(e))


def list_books(engine: Engine, query: Union[BookQuery, Dict, None] = None) -> Page[BookView]:
    """
    도서 목록

    검색: 제목/작가 부분 문자열 + ISBN(검색어 숫자만 남겨 비교)
    정렬: 알 수 없는 컬럼은 title
    """
    query = _coerce_query(query)
    books = _load_book_views(engine)

    term = (query.search or "").strip()
    if term:
        isbn_term = digits_only(term)
        text_hits = {id(b) for b in filter_by_search(books, term, lambda b: [b.title, *b.authors])}
        books = [
            b for b in books
            if id(b) in text_hits
            or (isbn_term and (isbn_term in (b.isbn13 or "") or isbn_term in (b.isbn10 or "")))
        ]

    sort_by = query.sort_by if query.sort_by in BOOK_SORT_KEYS else DEFAULT_BOOK_SORT
    books = stable_sort(books, BOOK_SORT_KEYS[sort_by], descending=query.sort_dir == "desc")

    return paginate(books, query.page, query.page_size, query.show_all)


def load_book_lookup(engine: Engine) -> BookLookup:
    """대량 입력용 ISBN → 도서 조회표"""
    with Session(engine) as session:
        books = session.scalars(select(Book).options(selectinload(Book.authors))).all()
        lookup = BookLookup.from_books(books)
    logger.debug(f"ISBN 조회표: {len(lookup)}개 키")
    return lookup


# ─────────────────────────────────────────────
# 시리즈
# ─────────────────────────────────────────────

def list_series(engine: Engine) -> List[SeriesView]:
    """시리즈 목록 (이름순)"""
    with Session(engine) as session:
        counts = dict(
            session.execute(
                select(Book.series_id, func.count(Book.id))
                .where(Book.series_id.is_not(None))
                .group_by(Book.series_id)
            ).all()
        )
        return [
            SeriesView(id=s.id, name=s.name, description=s.description,
                       book_count=int(counts.get(s.id) or 0))
            for s in session.scalars(select(Series).order_by(Series.name)).all()
        ]


def create_series(engine: Engine, name: str, description: Optional[str] = None) -> SeriesView:
    """
    시리즈 생성

    Raises:
        InvalidInputError: 이름 없음
        ConflictError: 같은 이름 존재
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Series name is required")

    try:
        with atomic_session(engine) as session:
            if session.scalars(select(Series.id).where(Series.name == name)).first() is not None:
                raise ConflictError("A series with this name already exists", detail=name)
            series = Series(name=name, description=(description or "").strip() or None)
            session.add(series)
            session.flush()
            view = SeriesView(id=series.id, name=series.name, description=series.description)
    except IntegrityError as e:
        raise _conflict_from_integrity(e)

    logger.info(f"시리즈 생성: {view.name}")
    return view
