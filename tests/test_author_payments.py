"""
author_payments.py 테스트
=========================
작가 조합 그룹화, 미지급 합계, 그룹 단위 일괄 지급
"""
import pytest
import sys
import tempfile
from decimal import Decimal
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from ledger.database import get_engine_for_db, init_db
from ledger.services.author_payments import (
    build_author_groups,
    get_author_payment_page,
    group_unpaid_by_author,
    mark_group_paid,
)
from ledger.services.books import create_book
from ledger.services.sales import SaleView, add_sale, list_sales, toggle_paid_status


def _view(sale_id, author_ids, authors, period, royalty, paid=False):
    return SaleView(
        id=sale_id,
        book_id=1,
        title="t",
        authors=authors,
        author_ids=author_ids,
        period=period,
        quantity=1,
        publisher_revenue=Decimal("0"),
        author_royalty=Decimal(royalty),
        royalty_overridden=False,
        paid=paid,
    )


class TestBuildAuthorGroups:
    """그룹화 (DB 없이)"""

    def test_paid_sales_excluded(self):
        groups = build_author_groups([
            _view(1, (1,), ["Ann"], "01-2026", "10.00", paid=True),
        ])
        assert groups == []

    def test_coauthored_sales_form_one_group(self):
        """공저 판매는 작가별로 나뉘지 않음"""
        groups = build_author_groups([
            _view(1, (1,), ["Ann"], "01-2026", "10.00"),
            _view(2, (1, 2), ["Ann", "Bob"], "01-2026", "5.00"),
        ])
        assert [g.author_ids for g in groups] == [(1,), (1, 2)]
        assert [g.display_name for g in groups] == ["Ann", "Ann, Bob"]
        assert groups[1].unpaid_total == Decimal("5.00")

    def test_key_ignores_author_order(self):
        groups = build_author_groups([
            _view(1, (2, 1), ["Bob", "Ann"], "01-2026", "1.00"),
            _view(2, (1, 2), ["Ann", "Bob"], "02-2026", "2.00"),
        ])
        assert len(groups) == 1
        assert groups[0].unpaid_total == Decimal("3.00")

    def test_total_equals_sum_of_sales(self):
        groups = build_author_groups([
            _view(1, (1,), ["Ann"], "01-2026", "0.01"),
            _view(2, (1,), ["Ann"], "02-2026", "0.01"),
            _view(3, (1,), ["Ann"], "03-2026", "33.33"),
        ])
        group = groups[0]
        assert group.unpaid_total == sum(s.author_royalty for s in group.sales)
        assert group.unpaid_total == Decimal("33.35")
        assert group.unpaid_display == "$33.35"

    def test_sales_newest_period_first(self):
        groups = build_author_groups([
            _view(1, (1,), ["Ann"], "12-2025", "1"),
            _view(2, (1,), ["Ann"], "01-2026", "1"),
            _view(3, (1,), ["Ann"], "11-2025", "1"),
        ])
        assert [s.id for s in groups[0].sales] == [2, 1, 3]

    def test_groups_sorted_by_display_name(self):
        groups = build_author_groups([
            _view(1, (3,), ["Zed"], "01-2026", "1"),
            _view(2, (2,), ["Bob"], "01-2026", "1"),
            _view(3, (1,), ["Ann"], "01-2026", "1"),
        ])
        assert [g.display_name for g in groups] == ["Ann", "Bob", "Zed"]


class TestAuthorPaymentsDb:
    """DB 그룹 조회 + 일괄 지급"""

    def setup_method(self):
        self.temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
        self.db_path = self.temp_db.name
        self.engine = get_engine_for_db(self.db_path)
        init_db(bind=self.engine)

        self.ann_book, _ = create_book(self.engine, {"title": "Solo", "authors": ["Ann"]})
        self.bob_book, _ = create_book(self.engine, {"title": "Other", "authors": ["Bob"]})
        self.joint_book, _ = create_book(self.engine, {"title": "Joint", "authors": ["Bob", "Ann"]})
        self.ann_id = self.ann_book.author_ids[0]
        self.bob_id = self.bob_book.author_ids[0]

        def sale(book, period, revenue):
            view, errors = add_sale(self.engine, {
                "book_id": book.id,
                "period": period,
                "quantity": 1,
                "publisher_revenue": revenue,
            })
            assert errors == []
            return view

        # 기본 인세율 50%
        sale(self.ann_book, "01-2026", "100")      # 50.00
        sale(self.ann_book, "02-2026", "10.01")    # 5.01
        paid = sale(self.ann_book, "03-2026", "40")
        toggle_paid_status(self.engine, paid.id)
        sale(self.bob_book, "01-2026", "40")       # 20.00
        sale(self.joint_book, "01-2026", "60")     # 30.00

    def teardown_method(self):
        self.engine.dispose()
        try:
            self.temp_db.close()
            Path(self.db_path).unlink(missing_ok=True)
        except PermissionError:
            pass

    def test_groups(self):
        groups = group_unpaid_by_author(self.engine)
        assert [g.display_name for g in groups] == ["Ann", "Ann, Bob", "Bob"]
        assert [g.unpaid_total for g in groups] == [
            Decimal("55.01"), Decimal("30.00"), Decimal("20.00")
        ]
        assert groups[1].author_ids == tuple(sorted((self.ann_id, self.bob_id)))

    def test_mark_group_paid_exact_set(self):
        """단독 작가 그룹 지급은 공저 도서 판매를 건드리지 않음"""
        assert mark_group_paid(self.engine, [self.ann_id]) == 2

        groups = group_unpaid_by_author(self.engine)
        assert [g.display_name for g in groups] == ["Ann, Bob", "Bob"]

    def test_mark_group_paid_idempotent(self):
        assert mark_group_paid(self.engine, [self.ann_id]) == 2
        assert mark_group_paid(self.engine, [self.ann_id]) == 0

    def test_mark_joint_group_any_order(self):
        assert mark_group_paid(self.engine, [self.bob_id, self.ann_id]) == 1
        unpaid = [s for s in list_sales(self.engine, {"show_all": True}).items if not s.paid]
        assert {s.title for s in unpaid} == {"Solo", "Other"}

    def test_unknown_authors(self):
        assert mark_group_paid(self.engine, [9999]) == 0

    def test_payment_page_default_size(self):
        page = get_author_payment_page(self.engine)
        assert page.page_size == 10
        assert page.total == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
