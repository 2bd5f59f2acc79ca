"""
목록 조회 공통 로직
===================
검색 필터, 기간 필터, 안정 정렬, 오프셋 페이지네이션, 화면 테이블 상태

판매 목록(sales), 도서 목록(books), 작가 지급 그룹(author_payments)이 공유한다.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from ledger.config import settings
from ledger.constants import PERIOD_PATTERN

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """페이지 결과 (items, total, page, page_size)"""
    items: List[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 1
        return math.ceil(self.total / self.page_size)

    @property
    def start_record(self) -> int:
        """표시 범위 시작 (1부터, 결과 없으면 0)"""
        if self.total == 0:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_record(self) -> int:
        return min(self.page * self.page_size, self.total)

    def to_dict(self, serialize: Optional[Callable[[T], Any]] = None) -> dict:
        return {
            "items": [serialize(item) if serialize else item for item in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


def clamp_page(page: Optional[int]) -> int:
    """페이지 번호 1 이상"""
    if not page or page < 1:
        return 1
    return int(page)


def clamp_page_size(page_size: Optional[int], default: Optional[int] = None) -> int:
    """페이지 크기 1 ~ max_page_size"""
    if page_size is None:
        page_size = default if default is not None else settings.default_page_size
    return max(1, min(int(page_size), settings.max_page_size))


def paginate(
    items: Sequence[T],
    page: Optional[int] = 1,
    page_size: Optional[int] = None,
    show_all: bool = False,
    default_page_size: Optional[int] = None,
) -> Page[T]:
    """
    오프셋 페이지네이션

    page p, 크기 s → items[(p-1)*s : p*s]
    show_all이면 자르지 않고 전체 반환 (page=1, page_size=total)
    """
    total = len(items)

    if show_all:
        return Page(items=list(items), total=total, page=1, page_size=max(total, 1))

    page = clamp_page(page)
    size = clamp_page_size(page_size, default_page_size)
    start = (page - 1) * size
    return Page(items=list(items[start:start + size]), total=total, page=page, page_size=size)


def _sort_value(value: Any) -> Any:
    # 문자열은 대소문자 무시 비교
    if isinstance(value, str):
        return value.casefold()
    return value


def stable_sort(
    items: Iterable[T],
    key: Callable[[T], Any],
    descending: bool = False,
) -> List[T]:
    """
    안정 정렬 (None 값은 방향과 무관하게 항상 마지막)

    sorted()의 reverse=True는 동일 키의 상대 순서를 유지한다.
    """
    present = []
    missing = []
    for item in items:
        if key(item) is None:
            missing.append(item)
        else:
            present.append(item)

    present = sorted(present, key=lambda item: _sort_value(key(item)), reverse=descending)
    return present + missing


def period_key(period: Optional[str]) -> Optional[str]:
    """
    MM-YYYY → YYYY-MM (기간 비교용)

    형식이 맞지 않으면 None
    """
    if not period:
        return None
    match = PERIOD_PATTERN.match(period.strip())
    if not match:
        return None
    month, year = match.groups()
    return f"{year}-{month}"


def filter_by_search(
    items: Iterable[T],
    search: Optional[str],
    fields: Callable[[T], Iterable[Optional[str]]],
) -> List[T]:
    """대소문자 무시 부분 문자열 검색 (fields 중 하나라도 포함하면 통과)"""
    items = list(items)
    term = (search or "").strip().casefold()
    if not term:
        return items

    return [
        item for item in items
        if any(term in (value or "").casefold() for value in fields(item))
    ]


def filter_by_period_range(
    items: Iterable[T],
    date_from: Optional[str],
    date_to: Optional[str],
    get_period: Callable[[T], str],
) -> List[T]:
    """
    기간 범위 필터 (양끝 포함)

    MM-YYYY 문자열을 그대로 비교하면 연도 경계에서 순서가 틀어지므로
    YYYY-MM 키로 바꿔서 비교한다.
    """
    lower = period_key(date_from)
    upper = period_key(date_to)
    result = []
    for item in items:
        key = period_key(get_period(item))
        if key is None:
            continue
        if lower and key < lower:
            continue
        if upper and key > upper:
            continue
        result.append(item)
    return result


@dataclass
class TableState:
    """
    목록 화면 상태

    정렬/필터/페이지 크기가 바뀌면 항상 1페이지로 돌아간다.
    """
    sort_by: str = "period"
    sort_dir: str = "desc"
    search: str = ""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.default_page_size)
    show_all: bool = False

    def set_sort(self, column: str):
        """같은 컬럼이면 방향 전환, 다른 컬럼이면 오름차순"""
        if column == self.sort_by:
            self.sort_dir = "desc" if self.sort_dir == "asc" else "asc"
        else:
            self.sort_by = column
            self.sort_dir = "asc"
        self.page = 1

    def set_search(self, search: str):
        self.search = search or ""
        self.page = 1

    def set_date_range(self, date_from: Optional[str], date_to: Optional[str]):
        self.date_from = date_from or None
        self.date_to = date_to or None
        self.page = 1

    def set_page_size(self, page_size: int):
        self.page_size = clamp_page_size(page_size)
        self.show_all = False
        self.page = 1

    def set_show_all(self, show_all: bool):
        self.show_all = bool(show_all)
        self.page = 1

    def go_to_page(self, page: int, total: int):
        """범위 밖 페이지는 1 ~ 마지막 페이지로 보정"""
        last = max(1, math.ceil(total / self.page_size)) if total else 1
        self.page = max(1, min(int(page), last))

    def to_query(self) -> dict:
        return {
            "search": self.search or None,
            "sort_by": self.sort_by,
            "sort_dir": self.sort_dir,
            "date_from": self.date_from,
            "date_to": self.date_to,
            "page": self.page,
            "page_size": self.page_size,
            "show_all": self.show_all,
        }
