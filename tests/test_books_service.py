"""
books.py 테스트
===============
도서 등록/수정/삭제, ISBN 중복, 시리즈 자동 삭제, 목록, 상세 합계
"""
import pytest
import sys
import tempfile
from decimal import Decimal
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from ledger.constants import BOOK_HAS_SALES
from ledger.database import get_engine_for_db, init_db
from ledger.errors import ConflictError, InvalidInputError, NotFoundError
from ledger.services.books import (
    create_book,
    create_series,
    delete_book,
    get_book_detail,
    list_books,
    list_series,
    load_book_lookup,
    update_book,
)
from ledger.services.sales import add_sale, delete_sale, toggle_paid_status


class TestBooksService:

    def setup_method(self):
        self.temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
        self.db_path = self.temp_db.name
        self.engine = get_engine_for_db(self.db_path)
        init_db(bind=self.engine)

    def teardown_method(self):
        self.engine.dispose()
        try:
            self.temp_db.close()
            Path(self.db_path).unlink(missing_ok=True)
        except PermissionError:
            pass

    def _create(self, **overrides):
        data = {"title": "The Hobbit", "authors": ["J.R.R. Tolkien"]}
        data.update(overrides)
        book, errors = create_book(self.engine, data)
        assert errors == []
        return book

    # ─── 등록 ───

    def test_create_defaults(self):
        book = self._create(isbn13="978-0-261-10221-7")
        assert book.id is not None
        assert book.isbn13 == "9780261102217"
        assert book.default_royalty_rate == Decimal("50.00")
        assert book.authors == ["J.R.R. Tolkien"]

    def test_create_validation_errors(self):
        book, errors = create_book(self.engine, {"title": "", "authors": []})
        assert book is None
        assert {e.field for e in errors} == {"title", "authors"}

    def test_authors_from_comma_string_reused(self):
        first = self._create(title="A", authors="Ann, Bob")
        second = self._create(title="B", authors=["Bob", "Ann"])
        assert first.authors == ["Ann", "Bob"]
        assert first.author_ids == second.author_ids

    def test_month_normalized(self):
        book = self._create(publication_month="3", publication_year=2021)
        assert book.publication_month == "03"
        assert book.publication_display == "Mar 2021"

    def test_year_without_month(self):
        _, errors = create_book(self.engine, {
            "title": "X", "authors": ["A"], "publication_year": 2021,
        })
        assert errors[0].field == "publication_month"

    def test_duplicate_isbn(self):
        self._create(isbn13="9780261102217")
        with pytest.raises(ConflictError) as exc:
            create_book(self.engine, {"title": "Copy", "authors": ["A"], "isbn13": "9780261102217"})
        assert exc.value.message == "A book with this ISBN-13 already exists"

    # ─── 수정 ───

    def test_partial_update(self):
        book = self._create(default_royalty_rate=20)
        updated, errors = update_book(self.engine, book.id, {"title": "There and Back Again"})
        assert errors == []
        assert updated.title == "There and Back Again"
        assert updated.default_royalty_rate == Decimal("20.00")

    def test_update_year_only_uses_existing_month(self):
        book = self._create(publication_month="09", publication_year=1937)
        updated, errors = update_book(self.engine, book.id, {"publication_year": 1951})
        assert errors == []
        assert updated.publication_year == 1951

    def test_update_duplicate_isbn(self):
        self._create(title="A", isbn10="0261102214")
        other = self._create(title="B")
        with pytest.raises(ConflictError):
            update_book(self.engine, other.id, {"isbn10": "0261102214"})

    def test_update_missing(self):
        with pytest.raises(NotFoundError):
            update_book(self.engine, 9999, {"title": "x"})

    # ─── 시리즈 ───

    def test_new_series_and_auto_delete(self):
        """마지막 도서가 시리즈를 떠나면 시리즈 삭제"""
        book = self._create(new_series_name="Middle-earth", series_order=1)
        assert book.series_name == "Middle-earth"
        assert [s.name for s in list_series(self.engine)] == ["Middle-earth"]

        updated, _ = update_book(self.engine, book.id, {"series_id": None})
        assert updated.series_id is None
        assert list_series(self.engine) == []

    def test_series_kept_while_books_remain(self):
        series = create_series(self.engine, "Saga")
        first = self._create(title="One", series_id=series.id)
        self._create(title="Two", series_id=series.id)
        delete_book(self.engine, first.id)
        assert [(s.name, s.book_count) for s in list_series(self.engine)] == [("Saga", 1)]

    def test_create_series_rules(self):
        with pytest.raises(InvalidInputError):
            create_series(self.engine, "  ")
        create_series(self.engine, "Saga")
        with pytest.raises(ConflictError):
            create_series(self.engine, "Saga")

    def test_unknown_series(self):
        with pytest.raises(NotFoundError):
            create_book(self.engine, {"title": "X", "authors": ["A"], "series_id": 42})

    # ─── 삭제 ───

    def test_delete_with_sales_conflict(self):
        book = self._create()
        sale, _ = add_sale(self.engine, {
            "book_id": book.id, "period": "01-2026", "quantity": 1, "publisher_revenue": "10",
        })
        with pytest.raises(ConflictError) as exc:
            delete_book(self.engine, book.id)
        assert exc.value.message == BOOK_HAS_SALES

        delete_sale(self.engine, sale.id)
        delete_book(self.engine, book.id)
        with pytest.raises(NotFoundError):
            get_book_detail(self.engine, book.id)

    def test_delete_missing(self):
        with pytest.raises(NotFoundError):
            delete_book(self.engine, 9999)

    # ─── 조회 ───

    def test_detail_totals(self):
        book = self._create(default_royalty_rate=10)
        sales = [
            add_sale(self.engine, {
                "book_id": book.id, "period": "01-2026", "quantity": 2, "publisher_revenue": revenue,
            })[0]
            for revenue in ("100", "50")
        ]
        toggle_paid_status(self.engine, sales[0].id)

        detail = get_book_detail(self.engine, book.id)
        assert detail.total_sales == 4
        assert detail.total_publisher_revenue == Decimal("150.00")
        assert detail.paid_author_royalty == Decimal("10.00")
        assert detail.unpaid_author_royalty == Decimal("5.00")
        assert detail.total_author_royalty == Decimal("15.00")

    def test_list_search_and_sort(self):
        self._create(title="emma", authors=["Jane Austen"], isbn13="9780141439587")
        self._create(title="Dune", authors=["Frank Herbert"])
        self._create(title="Beowulf", authors=["Unknown"])

        page = list_books(self.engine)
        assert [b.title for b in page.items] == ["Beowulf", "Dune", "emma"]

        page = list_books(self.engine, {"sort_by": "title", "sort_dir": "desc"})
        assert page.items[0].title == "emma"

        assert [b.title for b in list_books(self.engine, {"search": "HERBERT"}).items] == ["Dune"]
        assert [b.title for b in list_books(self.engine, {"search": "978-0141"}).items] == ["emma"]

    def test_list_unknown_sort_falls_back_to_title(self):
        self._create(title="B")
        self._create(title="A")
        page = list_books(self.engine, {"sort_by": "nope"})
        assert [b.title for b in page.items] == ["A", "B"]

    def test_missing_publication_sorts_last(self):
        self._create(title="Undated")
        self._create(title="Old", publication_month="01", publication_year=1900)
        page = list_books(self.engine, {"sort_by": "publication"})
        assert [b.title for b in page.items] == ["Old", "Undated"]

    def test_lookup_by_either_isbn(self):
        book = self._create(isbn13="9780261102217", isbn10="0261102214")
        lookup = load_book_lookup(self.engine)
        assert lookup.get("978-0-261-10221-7").id == book.id
        assert lookup.get("0261102214").id == book.id
        assert lookup.get("0000000000") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
