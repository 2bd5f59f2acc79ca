"""비즈니스 상수 - 매직넘버 중앙 관리"""
import re
from decimal import Decimal

# 금액 (통화 단위 소수 2자리, 반올림은 ROUND_HALF_UP)
TWO_PLACES = Decimal("0.01")
# 금액 상한 (Numeric(12, 2) 컬럼: 정수부 10자리)
MAX_AMOUNT = Decimal("10000000000")
HUNDRED = Decimal("100")
ROYALTY_TOLERANCE = Decimal("0.01")  # 계산값과 입력값 비교 허용 오차

# 인세율 범위 (%)
MIN_ROYALTY_RATE = Decimal("0")
MAX_ROYALTY_RATE = Decimal("100")

# 판매 기간 (MM-YYYY)
PERIOD_PATTERN = re.compile(r"^(0[1-9]|1[0-2])-([0-9]{4})$")
# 출간월 (MM)
MONTH_PATTERN = re.compile(r"^(0[1-9]|1[0-2])$")

MONTH_ABBR = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# 출간일 없는 도서 정렬 키 (항상 마지막)
MISSING_PUBLICATION_SORT_KEY = "9999-99"

# 목록 기본 정렬 컬럼 (알 수 없는 컬럼 요청 시에도 사용)
DEFAULT_SALE_SORT = "period"
DEFAULT_BOOK_SORT = "title"

# ─────────────────────────────────────────────
# 대량 붙여넣기 입력 검증 메시지 (화면 노출용)
# ─────────────────────────────────────────────
BULK_FIELD_COUNT = 4
BULK_MESSAGES = {
    "field_count": "Expected 4 comma-separated fields",
    "period": "Month must match MM-YYYY (01-12 and 4-digit year)",
    "isbn": "ISBN must have 10 or 13 digits",
    "quantity": "Quantity must be a positive integer",
    "revenue": "PublisherRevenue must be a number",
    "revenue_negative": "PublisherRevenue must not be negative",
    "revenue_too_large": "PublisherRevenue is too large",
    "year_range": "Year must be between {min} and {max}",
}

# 도서 삭제/조회 메시지
BOOK_NOT_FOUND = "Book not found"
SALE_NOT_FOUND = "Sale not found"
BOOK_HAS_SALES = (
    "Cannot delete book with existing sales records. "
    "Please delete or reassign sales records first."
)
