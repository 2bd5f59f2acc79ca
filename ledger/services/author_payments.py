"""
작가 지급 서비스
================
미지급 판매를 작가 조합별로 묶고, 그룹 단위로 일괄 지급 처리

그룹 키는 도서 작가 ID를 정렬한 튜플이다.
공저 도서의 판매는 각 작가로 나뉘지 않고 (A, B) 조합 그룹 하나로 모인다.

사용법:
    groups = group_unpaid_by_author(engine)
    updated = mark_group_paid(engine, groups[0].author_ids)
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.engine import Engine

from ledger.config import settings
from ledger.models import Book, Sale, book_authors
from ledger.services.listing import Page, paginate, stable_sort
from ledger.services.royalty import round_money
from ledger.services.sales import SaleView, load_sale_views
from ledger.services.transaction_manager import atomic_operation
from ledger.utils.formatters import format_currency

logger = logging.getLogger(__name__)


@dataclass
class AuthorGroup:
    """작가(조합)별 미지급 판매 묶음"""
    author_ids: Tuple[int, ...]
    authors: List[str]
    sales: List[SaleView] = field(default_factory=list)
    unpaid_total: Decimal = Decimal("0.00")

    @property
    def display_name(self) -> str:
        return ", ".join(sorted(self.authors))

    @property
    def sale_count(self) -> int:
        return len(self.sales)

    @property
    def unpaid_display(self) -> str:
        return format_currency(self.unpaid_total)

    def to_dict(self) -> dict:
        return {
            "author_ids": list(self.author_ids),
            "authors": self.display_name,
            "sale_count": self.sale_count,
            "unpaid_total": str(self.unpaid_total),
            "unpaid_display": self.unpaid_display,
            "sales": [s.to_dict() for s in self.sales],
        }


def build_author_groups(sales: Iterable[SaleView]) -> List[AuthorGroup]:
    """
    판매 목록 → 작가 조합 그룹 (미지급만)

    - 지급 완료 판매는 제외, 판매가 없는 그룹은 만들지 않음
    - unpaid_total은 합계 후 한 번만 반올림
    - 그룹 정렬: 표시 이름 오름차순 (대소문자 구분)
    - 그룹 내 판매: 최신 기간 먼저
    """
    buckets: Dict[Tuple[int, ...], AuthorGroup] = {}
    totals: Dict[Tuple[int, ...], Decimal] = {}

    for sale in sales:
        if sale.paid:
            continue
        key = tuple(sorted(sale.author_ids))
        group = buckets.get(key)
        if group is None:
            group = AuthorGroup(author_ids=key, authors=sorted(sale.authors))
            buckets[key] = group
            totals[key] = Decimal("0")
        group.sales.append(sale)
        totals[key] += sale.author_royalty

    groups = []
    for key, group in buckets.items():
        group.unpaid_total = round_money(totals[key])
        group.sales = stable_sort(group.sales, lambda s: s.period_sort_key, descending=True)
        groups.append(group)

    groups.sort(key=lambda g: g.display_name)
    return groups


def group_unpaid_by_author(engine: Engine) -> List[AuthorGroup]:
    """DB의 미지급 판매를 작가 조합별로 그룹화"""
    groups = build_author_groups(v for v in load_sale_views(engine) if not v.paid)
    logger.debug(f"미지급 작가 그룹: {len(groups)}개")
    return groups


def get_author_payment_page(
    engine: Engine,
    page: Optional[int] = 1,
    page_size: Optional[int] = None,
) -> Page[AuthorGroup]:
    """작가 지급 화면 (그룹 단위 페이지, 기본 10개)"""
    groups = group_unpaid_by_author(engine)
    return paginate(groups, page, page_size, default_page_size=settings.payments_page_size)


def _books_with_author_set(author_ids: Sequence[int]):
    """
    작가 집합이 정확히 author_ids와 같은 도서 ID 서브쿼리

    작가 수가 같고, 그 중 author_ids에 속한 작가 수도 같은 도서만 해당.
    빈 집합이면 작가가 없는 도서.
    """
    wanted = sorted(set(author_ids))

    stmt = (
        select(Book.id)
        .select_from(Book)
        .outerjoin(book_authors, book_authors.c.book_id == Book.id)
        .group_by(Book.id)
        .having(func.count(book_authors.c.author_id) == len(wanted))
    )
    if wanted:
        matched = func.sum(case((book_authors.c.author_id.in_(wanted), 1), else_=0))
        stmt = stmt.having(matched == len(wanted))
    return stmt


def mark_group_paid(engine: Engine, author_ids: Sequence[int]) -> int:
    """
    작가 조합의 미지급 판매를 한 트랜잭션으로 모두 지급 처리

    Args:
        author_ids: 작가 ID 목록 (순서 무관)

    Returns:
        변경된 판매 건수 (해당 없으면 0, 오류 아님)
    """
    key = tuple(sorted(set(author_ids)))

    with atomic_operation(engine) as conn:
        result = conn.execute(
            update(Sale.__table__)
            .where(
                Sale.__table__.c.paid == False,  # noqa: E712
                Sale.__table__.c.book_id.in_(_books_with_author_set(key)),
            )
            .values(paid=True)
        )
        updated = result.rowcount or 0

    logger.info(f"작가 그룹 지급 처리: authors={list(key)}, {updated}건")
    return updated
