"""화면 표시용 포맷 함수"""
from decimal import Decimal
from typing import Optional

from ledger.constants import MONTH_ABBR, PERIOD_PATTERN, TWO_PLACES


def format_currency(amount: Optional[Decimal]) -> str:
    """
    금액 표시 (USD)

    예:
        Decimal("1499.5") → "$1,499.50"
        Decimal("-3")     → "-$3.00"
    """
    if amount is None:
        return ""
    value = Decimal(amount).quantize(TWO_PLACES)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_period(period: Optional[str]) -> str:
    """
    판매 기간 표시

    예:
        "01-2026" → "Jan 2026"
        형식이 다르면 원문 그대로
    """
    if not period:
        return ""
    match = PERIOD_PATTERN.match(period)
    if not match:
        return period
    month, year = match.groups()
    return f"{MONTH_ABBR[int(month) - 1]} {year}"


def format_publication(month: Optional[str], year: Optional[int]) -> str:
    """출간일 표시 ("Mar 2021", 연도만 있으면 "2021")"""
    if not year:
        return ""
    if month and month.isdigit() and 1 <= int(month) <= 12:
        return f"{MONTH_ABBR[int(month) - 1]} {year}"
    return str(year)


def status_label(paid: bool) -> str:
    """지급 상태 라벨"""
    return "Paid" if paid else "Pending"
