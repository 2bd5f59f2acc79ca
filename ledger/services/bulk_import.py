"""
대량 붙여넣기 판매 입력
=======================
"MM-YYYY,ISBN,수량,출판사수익" 형식의 여러 줄 텍스트를 파싱하고,
ISBN으로 도서를 찾아 저장 대기 항목(PendingSaleItem)으로 변환

사용법:
    result = parse_bulk_text(text)
    for bad in result.invalid:
        print(f"Line {bad.line}: {bad.reason}")

    lookup = load_book_lookup(engine)
    pending = submit_parsed_rows(result.valid, lookup)
    save_pending_sales(engine, pending)
"""
import re
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from ledger.config import settings
from ledger.constants import BULK_FIELD_COUNT, BULK_MESSAGES, PERIOD_PATTERN
from ledger.services.royalty import compute_royalty, exceeds_max_amount, round_money
from ledger.utils.validators import digits_only

logger = logging.getLogger(__name__)

ISBN_DIGITS_PATTERN = re.compile(r"^[0-9]{10}([0-9]{3})?$")
INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")
# parseFloat과 같은 방식: 앞부분 숫자만 읽음 ("12.5abc" → 12.5)
LEADING_NUMBER_PATTERN = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


@dataclass
class ParsedRow:
    """형식 검증을 통과한 줄"""
    line: int
    period: str
    isbn: str  # 숫자만
    quantity: int
    publisher_revenue: Decimal
    raw: str

    @property
    def month(self) -> str:
        return self.period.split("-")[0]

    @property
    def year(self) -> str:
        return self.period.split("-")[1]


@dataclass
class InvalidRow:
    """형식 오류 줄 (첫 번째로 걸린 규칙의 사유 1개)"""
    line: int
    raw: str
    reason: str


@dataclass
class BulkParseResult:
    valid: List[ParsedRow] = field(default_factory=list)
    invalid: List[InvalidRow] = field(default_factory=list)


@dataclass
class LookupBook:
    """ISBN 조회용 도서 요약"""
    id: int
    title: str
    authors: List[str]
    default_royalty_rate: Decimal
    isbn13: Optional[str] = None
    isbn10: Optional[str] = None


class BookLookup:
    """
    정규화 ISBN → 도서

    ISBN-13과 ISBN-10이 모두 있으면 두 키 모두 같은 도서를 가리킨다.
    """

    def __init__(self, books: Iterable[LookupBook] = ()):
        self._by_isbn: Dict[str, LookupBook] = {}
        for book in books:
            self.add(book)

    def add(self, book: LookupBook):
        for isbn in (book.isbn13, book.isbn10):
            key = digits_only(isbn)
            if key:
                self._by_isbn[key] = book

    def get(self, isbn: str) -> Optional[LookupBook]:
        return self._by_isbn.get(digits_only(isbn))

    def __len__(self):
        return len(self._by_isbn)

    @classmethod
    def from_books(cls, books) -> "BookLookup":
        """ORM Book 목록에서 생성 (세션 안에서 호출)"""
        return cls(
            LookupBook(
                id=b.id,
                title=b.title,
                authors=b.author_names,
                default_royalty_rate=Decimal(b.default_royalty_rate),
                isbn13=b.isbn13,
                isbn10=b.isbn10,
            )
            for b in books
        )


@dataclass
class PendingSaleItem:
    """저장 대기 판매 (검토 화면 표시용 제목/작가 포함)"""
    book_id: int
    period: str
    quantity: int
    publisher_revenue: Decimal
    author_royalty: Decimal
    title: str
    authors: List[str]
    royalty_overridden: bool = False
    paid: bool = False
    line: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "book_id": self.book_id,
            "title": self.title,
            "authors": ", ".join(self.authors),
            "period": self.period,
            "quantity": self.quantity,
            "publisher_revenue": str(self.publisher_revenue),
            "author_royalty": str(self.author_royalty),
            "royalty_overridden": self.royalty_overridden,
            "line": self.line,
        }


@dataclass
class UnmatchedRow:
    """형식은 맞지만 ISBN에 해당하는 도서가 없는 줄"""
    row: ParsedRow

    @property
    def message(self) -> str:
        return f"ISBN {self.row.isbn} (Line {self.row.line})"


def _parse_number(text: str) -> Optional[Decimal]:
    match = LEADING_NUMBER_PATTERN.match(text)
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def parse_line(line: str, line_number: int) -> Tuple[Optional[ParsedRow], Optional[InvalidRow]]:
    """
    한 줄 파싱 (규칙 순서대로 검사, 처음 걸린 사유만 기록)

    1. 필드 수 4개
    2. 기간 MM-YYYY
    3. ISBN 숫자 10/13자리
    4. 수량 양의 정수
    5. 수익 숫자
    6. 수익 음수 불가
    7. 수익 상한 (10^10 미만)
    8. 연도 범위 (2000~2100)
    """
    def invalid(key: str, **fmt) -> Tuple[None, InvalidRow]:
        return None, InvalidRow(line=line_number, raw=line, reason=BULK_MESSAGES[key].format(**fmt))

    parts = [p.strip() for p in line.split(",")]
    if len(parts) != BULK_FIELD_COUNT:
        return invalid("field_count")

    period, isbn_raw, quantity_raw, revenue_raw = parts

    period_match = PERIOD_PATTERN.match(period)
    if not period_match:
        return invalid("period")

    isbn = digits_only(isbn_raw)
    if not ISBN_DIGITS_PATTERN.match(isbn):
        return invalid("isbn")

    if not INTEGER_PATTERN.match(quantity_raw) or int(quantity_raw) <= 0:
        return invalid("quantity")
    quantity = int(quantity_raw)

    revenue = _parse_number(revenue_raw)
    if revenue is None:
        return invalid("revenue")
    if revenue < 0:
        return invalid("revenue_negative")
    if exceeds_max_amount(revenue):
        return invalid("revenue_too_large")

    year = int(period_match.group(2))
    if not (settings.sales_year_min <= year <= settings.sales_year_max):
        return invalid("year_range", min=settings.sales_year_min, max=settings.sales_year_max)

    return ParsedRow(
        line=line_number,
        period=period,
        isbn=isbn,
        quantity=quantity,
        publisher_revenue=round_money(revenue),
        raw=line,
    ), None


def parse_bulk_text(text: str) -> BulkParseResult:
    """
    붙여넣기 텍스트 전체 파싱

    빈 줄은 건너뛰고(오류 아님), 줄 번호는 원문 기준 1부터.
    """
    result = BulkParseResult()

    for idx, raw_line in enumerate(re.split(r"\r?\n", text or "")):
        trimmed = raw_line.strip()
        if not trimmed:
            continue

        row, bad = parse_line(trimmed, idx + 1)
        if row:
            result.valid.append(row)
        else:
            result.invalid.append(bad)

    logger.info(f"대량 입력 파싱: 유효 {len(result.valid)}줄, 오류 {len(result.invalid)}줄")
    return result


def match_parsed_rows(
    rows: Iterable[ParsedRow],
    book_lookup: BookLookup,
) -> Tuple[List[PendingSaleItem], List[UnmatchedRow]]:
    """
    파싱된 줄 → 저장 대기 항목 + 도서 미발견 줄

    인세는 도서 기본 인세율로 계산하고 royalty_overridden=False
    """
    pending = []
    unmatched = []

    for row in rows:
        book = book_lookup.get(row.isbn)
        if book is None:
            unmatched.append(UnmatchedRow(row))
            continue

        pending.append(PendingSaleItem(
            book_id=book.id,
            period=row.period,
            quantity=row.quantity,
            publisher_revenue=row.publisher_revenue,
            author_royalty=compute_royalty(row.publisher_revenue, book.default_royalty_rate),
            title=book.title,
            authors=list(book.authors),
            royalty_overridden=False,
            line=row.line,
        ))

    if unmatched:
        logger.warning(
            f"도서 미발견으로 제외: {len(unmatched)}줄 - "
            + ", ".join(u.message for u in unmatched[:10])
        )

    return pending, unmatched


def submit_parsed_rows(rows: Iterable[ParsedRow], book_lookup: BookLookup) -> List[PendingSaleItem]:
    """
    파싱된 줄 → 저장 대기 항목

    도서를 찾지 못한 줄은 결과에서 빠진다 (로그에만 기록).
    제외된 줄이 필요하면 match_parsed_rows 사용.
    """
    pending, _ = match_parsed_rows(rows, book_lookup)
    return pending
