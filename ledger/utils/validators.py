"""
입력 검증 모듈
==============
도서 정보, 판매 기록 검증

검증기는 예외를 던지지 않고 ValidationError 리스트를 돌려준다.
빈 리스트면 유효.

사용법:
    validator = BookValidator()
    errors = validator.validate(book_data)
    if errors:
        print(f"검증 실패: {errors}")
"""
import re
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Any
from dataclasses import dataclass

from ledger.config import settings
from ledger.constants import PERIOD_PATTERN, MONTH_PATTERN, MIN_ROYALTY_RATE, MAX_ROYALTY_RATE
from ledger.errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class ValidationError:
    """검증 오류"""
    field: str
    message: str
    value: Any = None


def digits_only(value: Any) -> str:
    """숫자 외 문자 제거 ("978-0-12-345678-9" → "9780123456789")"""
    if value is None:
        return ""
    return re.sub(r"[^0-9]", "", str(value))


def _parse_decimal(value: Any) -> Optional[Decimal]:
    # 순환 import 방지
    from ledger.services.royalty import to_decimal
    try:
        return to_decimal(value)
    except InvalidInputError:
        return None


def _exceeds_max_amount(amount: Decimal) -> bool:
    from ledger.services.royalty import exceeds_max_amount
    return exceeds_max_amount(amount)


def parse_int(value: Any) -> Optional[int]:
    """정수 변환 (bool, 소수, 숫자 아닌 문자열은 None)"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else None
    text = str(value).strip()
    if not re.fullmatch(r"[+-]?[0-9]+", text):
        return None
    return int(text)


class BookValidator:
    """
    도서 정보 검증기

    ISBN은 숫자만 남긴 뒤 자릿수만 확인 (체크섬, ISBN-10의 X는 보지 않음)
    """

    MAX_TITLE_LENGTH = 500
    MIN_PUBLICATION_YEAR = 1000

    def validate_isbn13(self, isbn: Any) -> Optional[ValidationError]:
        """ISBN-13 검증 (비어 있으면 통과)"""
        if isbn in (None, ""):
            return None
        if len(digits_only(isbn)) != 13:
            return ValidationError("isbn13", "ISBN-13 must be exactly 13 digits", isbn)
        return None

    def validate_isbn10(self, isbn: Any) -> Optional[ValidationError]:
        """ISBN-10 검증 (비어 있으면 통과)"""
        if isbn in (None, ""):
            return None
        if len(digits_only(isbn)) != 10:
            return ValidationError("isbn10", "ISBN-10 must be exactly 10 characters", isbn)
        return None

    def validate_title(self, title: Any) -> Optional[ValidationError]:
        """제목 검증"""
        if not title or not str(title).strip():
            return ValidationError("title", "Title is required")

        title = str(title).strip()
        if len(title) > self.MAX_TITLE_LENGTH:
            return ValidationError(
                "title",
                f"Title must be at most {self.MAX_TITLE_LENGTH} characters",
                title[:100] + "..."
            )
        return None

    def validate_authors(self, authors: Any) -> Optional[ValidationError]:
        """작가 1명 이상"""
        names = [str(a).strip() for a in (authors or []) if a and str(a).strip()]
        if not names:
            return ValidationError("authors", "At least one author is required")
        return None

    def validate_royalty_rate(self, rate: Any) -> Optional[ValidationError]:
        """인세율 0~100 (비어 있으면 기본값 사용)"""
        if rate in (None, ""):
            return None
        rate_dec = _parse_decimal(rate)
        if rate_dec is None or rate_dec < MIN_ROYALTY_RATE or rate_dec > MAX_ROYALTY_RATE:
            return ValidationError(
                "default_royalty_rate", "Royalty rate must be between 0 and 100", rate
            )
        return None

    def validate_publication(self, month: Any, year: Any) -> List[ValidationError]:
        """
        출간월/연도 검증

        - 연도: 1000 ~ 올해+1
        - 월: "01" ~ "12"
        - 연도가 있으면 월 필수
        """
        errors = []

        year_value = None
        if year not in (None, ""):
            year_value = parse_int(year)
            max_year = date.today().year + 1
            if year_value is None or not (self.MIN_PUBLICATION_YEAR <= year_value <= max_year):
                errors.append(ValidationError(
                    "publication_year", "Please enter a valid publication year", year
                ))

        if month not in (None, ""):
            if not MONTH_PATTERN.match(str(month)):
                errors.append(ValidationError(
                    "publication_month", "Publication month must be between 01 and 12", month
                ))
        elif year_value is not None:
            errors.append(ValidationError(
                "publication_month",
                "Publication month is required when publication year is provided",
            ))

        return errors

    def validate_series_order(self, order: Any) -> Optional[ValidationError]:
        """시리즈 순서 1 이상"""
        if order in (None, ""):
            return None
        value = parse_int(order)
        if value is None or value < 1:
            return ValidationError("series_order", "Series order must be a positive number", order)
        return None

    def validate(self, book_data: Dict, partial: bool = False) -> List[ValidationError]:
        """
        도서 데이터 전체 검증

        Args:
            book_data: 도서 데이터 딕셔너리
            partial: True면 전달된 필드만 검증 (수정, 출간월/연도 조합 제외)

        Returns:
            ValidationError 리스트 (빈 리스트면 유효)
        """
        errors = []

        def present(key):
            return not partial or key in book_data

        if present("title"):
            err = self.validate_title(book_data.get("title"))
            if err:
                errors.append(err)

        if present("authors"):
            err = self.validate_authors(book_data.get("authors"))
            if err:
                errors.append(err)

        for err in (
            self.validate_isbn13(book_data.get("isbn13")),
            self.validate_isbn10(book_data.get("isbn10")),
            self.validate_royalty_rate(book_data.get("default_royalty_rate")),
            self.validate_series_order(book_data.get("series_order")),
        ):
            if err:
                errors.append(err)

        # 수정(partial)은 기존 값과 합친 뒤 호출 측에서 validate_publication 호출
        if not partial:
            errors.extend(self.validate_publication(
                book_data.get("publication_month"), book_data.get("publication_year")
            ))

        return errors


class SaleValidator:
    """
    판매 기록 검증기

    도서 존재 여부는 호출 측에서 조회한 book 객체(없으면 None)로 판단한다.
    """

    def __init__(self, year_min: Optional[int] = None, year_max: Optional[int] = None):
        self.year_min = year_min if year_min is not None else settings.sales_year_min
        self.year_max = year_max if year_max is not None else settings.sales_year_max

    def validate_period(self, period: Any) -> Optional[ValidationError]:
        """MM-YYYY, 월 01~12, 연도 범위"""
        if period in (None, ""):
            return ValidationError("period", "Please select a month")

        match = PERIOD_PATTERN.match(str(period).strip())
        if not match:
            return ValidationError(
                "period", "Month must match MM-YYYY (01-12 and 4-digit year)", period
            )

        year = int(match.group(2))
        if not (self.year_min <= year <= self.year_max):
            return ValidationError(
                "period", f"Year must be between {self.year_min} and {self.year_max}", period
            )
        return None

    def validate_quantity(self, quantity: Any) -> Optional[ValidationError]:
        """양의 정수"""
        value = parse_int(quantity)
        if value is None or value <= 0:
            return ValidationError("quantity", "Quantity must be a positive integer", quantity)
        return None

    def validate_amount(self, value: Any, field_name: str, label: str) -> Optional[ValidationError]:
        """금액: 숫자, 0 이상, 10^10 미만"""
        if value in (None, ""):
            return ValidationError(field_name, f"{label} is required")

        amount = _parse_decimal(value)
        if amount is None:
            return ValidationError(field_name, f"{label} must be a number", value)
        if amount < 0:
            return ValidationError(field_name, f"{label} must not be negative", value)
        if _exceeds_max_amount(amount):
            return ValidationError(field_name, f"{label} is too large", value)
        return None

    def validate_book(self, book: Any) -> List[ValidationError]:
        """
        참조 도서 검증

        ISBN이 있으면 숫자만 남긴 길이가 13 / 10이어야 한다.
        """
        if book is None:
            return [ValidationError("book_id", "Book not found")]

        errors = []
        isbn13 = getattr(book, "isbn13", None)
        isbn10 = getattr(book, "isbn10", None)
        if isbn13 and len(digits_only(isbn13)) != 13:
            errors.append(ValidationError("isbn13", "Book ISBN-13 must have 13 digits", isbn13))
        if isbn10 and len(digits_only(isbn10)) != 10:
            errors.append(ValidationError("isbn10", "Book ISBN-10 must have 10 digits", isbn10))
        return errors

    def validate(self, sale_data: Dict, book: Any) -> List[ValidationError]:
        """
        판매 데이터 전체 검증

        Args:
            sale_data: period, quantity, publisher_revenue, author_royalty(선택)
            book: 참조 도서 (없으면 None)

        Returns:
            ValidationError 리스트 (빈 리스트면 유효)
        """
        errors = self.validate_book(book)

        for err in (
            self.validate_period(sale_data.get("period")),
            self.validate_quantity(sale_data.get("quantity")),
            self.validate_amount(
                sale_data.get("publisher_revenue"), "publisher_revenue", "Publisher revenue"
            ),
        ):
            if err:
                errors.append(err)

        # 인세는 생략 가능 (생략 시 계산)
        if sale_data.get("author_royalty") not in (None, ""):
            err = self.validate_amount(
                sale_data.get("author_royalty"), "author_royalty", "Author royalty"
            )
            if err:
                errors.append(err)

        return errors
