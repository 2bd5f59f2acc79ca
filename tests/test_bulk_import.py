"""
bulk_import.py 테스트
=====================
붙여넣기 텍스트 파싱 (규칙 순서, 줄 번호), ISBN 도서 매칭
"""
import pytest
import sys
from decimal import Decimal
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from ledger.constants import BULK_MESSAGES
from ledger.services.bulk_import import (
    BookLookup,
    LookupBook,
    match_parsed_rows,
    parse_bulk_text,
    parse_line,
    submit_parsed_rows,
)


class TestParseLine:
    """한 줄 파싱 - 처음 걸린 규칙의 사유만"""

    def test_valid_line(self):
        row, bad = parse_line("01-2025,9780123456789,10,250.00", 1)
        assert bad is None
        assert row.period == "01-2025"
        assert row.isbn == "9780123456789"
        assert row.quantity == 10
        assert row.publisher_revenue == Decimal("250.00")
        assert (row.month, row.year) == ("01", "2025")

    def test_fields_trimmed_and_isbn_dashes_removed(self):
        row, _ = parse_line(" 01-2025 , 978-0-12-345678-9 , 3 , 9.5 ", 1)
        assert row.isbn == "9780123456789"
        assert row.publisher_revenue == Decimal("9.50")

    def test_isbn10(self):
        row, _ = parse_line("01-2025,0123456789,1,1", 1)
        assert row.isbn == "0123456789"

    def test_period_checked_before_isbn(self):
        """월 13 + 짧은 ISBN → 월 형식 사유"""
        _, bad = parse_line("13-2025,123,5,10", 4)
        assert bad.reason == BULK_MESSAGES["period"]
        assert bad.line == 4

    @pytest.mark.parametrize("line,key", [
        ("01-2025,9780123456789,10", "field_count"),
        ("01-2025,9780123456789,10,250,extra", "field_count"),
        ("1-2025,9780123456789,10,250", "period"),
        ("01-2025,12345,10,250", "isbn"),
        ("01-2025,9780123456789,0,250", "quantity"),
        ("01-2025,9780123456789,2.5,250", "quantity"),
        ("01-2025,9780123456789,ten,250", "quantity"),
        ("01-2025,9780123456789,10,abc", "revenue"),
        ("01-2025,9780123456789,10,-1", "revenue_negative"),
        ("01-2025,9780123456789,10,1e30", "revenue_too_large"),
        ("01-2025,9780123456789,10,10000000000", "revenue_too_large"),
        ("01-2025,9780123456789,10,9999999999.995", "revenue_too_large"),
        ("01-2025,9780123456789,٣,250", "quantity"),
        ("01-2025,٩٧٨٠١٢٣٤٥٦٧٨٩,10,250", "isbn"),
        ("01-٢٠٢٥,9780123456789,10,250", "period"),
        ("01-2025,9780123456789,10,٣", "revenue"),
    ])
    def test_rules(self, line, key):
        _, bad = parse_line(line, 1)
        assert bad.reason == BULK_MESSAGES[key]

    def test_year_range_checked_last(self):
        _, bad = parse_line("01-1999,9780123456789,10,250", 1)
        assert bad.reason == "Year must be between 2000 and 2100"
        _, bad = parse_line("01-1999,9780123456789,10,-5", 1)
        assert bad.reason == BULK_MESSAGES["revenue_negative"]

    def test_revenue_leading_number(self):
        """앞부분 숫자만 읽음"""
        row, _ = parse_line("01-2025,9780123456789,1,12.5abc", 1)
        assert row.publisher_revenue == Decimal("12.50")

    def test_largest_revenue(self):
        row, bad = parse_line("01-2025,9780123456789,1,9999999999.99", 1)
        assert bad is None
        assert row.publisher_revenue == Decimal("9999999999.99")


class TestParseBulkText:

    def test_blank_lines_skipped_and_numbered_from_one(self):
        text = "\n01-2025,9780123456789,1,10\n\n   \nbad line\r\n02-2025,0123456789,2,20\n"
        result = parse_bulk_text(text)
        assert [r.line for r in result.valid] == [2, 6]
        assert len(result.invalid) == 1
        assert result.invalid[0].line == 5
        assert result.invalid[0].reason == BULK_MESSAGES["field_count"]

    def test_oversized_revenue_only_rejects_its_line(self):
        result = parse_bulk_text("01-2025,9780123456789,1,1e30\n01-2025,9780123456789,1,10")
        assert [r.line for r in result.valid] == [2]
        assert result.valid[0].publisher_revenue == Decimal("10.00")
        assert len(result.invalid) == 1
        assert result.invalid[0].line == 1
        assert result.invalid[0].reason == BULK_MESSAGES["revenue_too_large"]

    def test_empty_text(self):
        result = parse_bulk_text("")
        assert result.valid == []
        assert result.invalid == []


class TestMatchRows:
    """ISBN → 도서 매칭"""

    def setup_method(self):
        self.lookup = BookLookup([
            LookupBook(
                id=7,
                title="Ledger Book",
                authors=["Ann"],
                default_royalty_rate=Decimal("25"),
                isbn13="9780123456789",
                isbn10="0123456789",
            ),
        ])

    def test_royalty_computed_from_book_rate(self):
        rows = parse_bulk_text("01-2025,9780123456789,10,250.00").valid
        pending = submit_parsed_rows(rows, self.lookup)
        assert len(pending) == 1
        item = pending[0]
        assert item.book_id == 7
        assert item.author_royalty == Decimal("62.50")
        assert item.royalty_overridden is False
        assert item.title == "Ledger Book"

    def test_both_isbns_match_same_book(self):
        rows = parse_bulk_text("01-2025,9780123456789,1,10\n01-2025,0-12-345678-9,1,10").valid
        assert [p.book_id for p in submit_parsed_rows(rows, self.lookup)] == [7, 7]

    def test_unmatched_dropped(self):
        rows = parse_bulk_text("01-2025,9780123456789,1,10\n01-2025,9789999999999,1,10").valid
        pending, unmatched = match_parsed_rows(rows, self.lookup)
        assert len(pending) == 1
        assert len(unmatched) == 1
        assert unmatched[0].message == "ISBN 9789999999999 (Line 2)"
        assert len(submit_parsed_rows(rows, self.lookup)) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
