"""
입력 스키마
===========
목록 조회 파라미터, 판매/도서 입력 모델 (pydantic)

조회 파라미터는 여기서 형식만 정리하고,
업무 규칙 검증은 ledger.utils.validators가 담당한다.
"""
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ledger.constants import PERIOD_PATTERN, DEFAULT_SALE_SORT, DEFAULT_BOOK_SORT


def _optional_period(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not PERIOD_PATTERN.match(value):
        raise ValueError("Month must match MM-YYYY (01-12 and 4-digit year)")
    return value


class SalesQuery(BaseModel):
    """판매 목록 조회 조건"""
    search: Optional[str] = None
    sort_by: str = DEFAULT_SALE_SORT
    sort_dir: Literal["asc", "desc"] = "desc"
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    page: int = 1
    page_size: Optional[int] = None
    show_all: bool = False

    @field_validator("date_from", "date_to")
    @classmethod
    def check_period(cls, v):
        return _optional_period(v)


class BookQuery(BaseModel):
    """도서 목록 조회 조건"""
    search: Optional[str] = None
    sort_by: str = DEFAULT_BOOK_SORT
    sort_dir: Literal["asc", "desc"] = "asc"
    page: int = 1
    page_size: Optional[int] = None
    show_all: bool = False


class SaleInput(BaseModel):
    """판매 등록/수정 요청 본문 (수정 시 전달된 필드만 반영)"""
    book_id: Optional[int] = None
    period: Optional[str] = None
    quantity: Optional[int] = None
    publisher_revenue: Optional[Decimal] = None
    author_royalty: Optional[Decimal] = None
    paid: Optional[bool] = None
    revert_royalty: bool = False


class BookInput(BaseModel):
    """도서 등록/수정 요청 본문"""
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    isbn13: Optional[str] = None
    isbn10: Optional[str] = None
    publication_month: Optional[str] = None
    publication_year: Optional[int] = None
    default_royalty_rate: Optional[Decimal] = None
    series_id: Optional[int] = None
    series_order: Optional[int] = None
    new_series_name: Optional[str] = None


class MarkPaidInput(BaseModel):
    """작가 그룹 일괄 지급 요청"""
    author_ids: List[int] = Field(default_factory=list)


class BulkTextInput(BaseModel):
    """대량 붙여넣기 원문"""
    text: str = ""


class SeriesInput(BaseModel):
    """시리즈 생성 요청"""
    name: str = ""
    description: Optional[str] = None
