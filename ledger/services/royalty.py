"""
인세 계산 서비스
================
판매 수익 × 인세율 → 작가 인세 (소수 2자리 반올림)

사용법:
    compute_royalty(Decimal("250.00"), Decimal("25"))  # Decimal("62.50")

    editor = RoyaltyEditor(rate=Decimal("50"), revenue=Decimal("100"))
    editor.set_royalty("45")   # 수동 입력 → overridden=True
    editor.set_revenue("200")  # 수동 입력 상태에서는 인세 그대로
    editor.revert()            # 계산값 100.00 복원, overridden=False
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ledger.constants import (
    TWO_PLACES,
    MAX_AMOUNT,
    HUNDRED,
    ROYALTY_TOLERANCE,
    MIN_ROYALTY_RATE,
    MAX_ROYALTY_RATE,
)
from ledger.errors import InvalidInputError

logger = logging.getLogger(__name__)


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    숫자 입력을 Decimal로 변환

    float는 문자열을 거쳐 변환 (0.1 → Decimal("0.1")).
    bool, 빈 문자열, ASCII 외 숫자, NaN/Infinity는 거부.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{field_name} must be a number")

    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text or not text.isascii():
            raise InvalidInputError(f"{field_name} must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidInputError(f"{field_name} must be a number", detail=text)

    if not result.is_finite():
        raise InvalidInputError(f"{field_name} must be a number", detail=str(value))
    return result


def round_money(value: Decimal) -> Decimal:
    """소수 2자리 반올림 (ROUND_HALF_UP)

    자릿수가 Decimal 정밀도를 넘는 값 (예: 1e30)은 InvalidInputError
    """
    try:
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError("Amount is too large", detail=str(value))


def exceeds_max_amount(value: Decimal) -> bool:
    """반올림 후 금액이 컬럼 범위(MAX_AMOUNT 미만)를 벗어나는지"""
    return value >= MAX_AMOUNT or round_money(value) >= MAX_AMOUNT


def compute_royalty(revenue: Any, rate_percent: Any) -> Decimal:
    """
    작가 인세 계산

    Args:
        revenue: 출판사 수익 (0 이상)
        rate_percent: 인세율 % (0~100)

    Returns:
        round(revenue * rate / 100, 2)

    Raises:
        InvalidInputError: 음수 수익, 범위 밖 인세율, 숫자가 아닌 값
    """
    revenue_dec = to_decimal(revenue, "revenue")
    rate_dec = to_decimal(rate_percent, "rate")

    if revenue_dec < 0:
        raise InvalidInputError("Revenue must not be negative", detail=str(revenue_dec))
    if rate_dec < MIN_ROYALTY_RATE or rate_dec > MAX_ROYALTY_RATE:
        raise InvalidInputError("Royalty rate must be between 0 and 100", detail=str(rate_dec))

    return round_money(revenue_dec * rate_dec / HUNDRED)


def differs_from_computed(royalty: Decimal, computed: Decimal) -> bool:
    """입력 인세가 계산값과 다른지 (허용 오차 0.01 초과)"""
    return abs(royalty - computed) > ROYALTY_TOLERANCE


class RoyaltyEditor:
    """
    판매 입력/수정 화면의 인세 필드 상태

    - 수동 입력이 아닌 동안에는 수익/도서(인세율) 변경 시 항상 재계산
    - 수동 입력 상태에서 수익/도서가 바뀌면 기존 인세와 플래그를 그대로 둔다
      (사용자가 직접 맞춘 값으로 취급)
    - revert()는 현재 수익/인세율로 재계산하고 플래그 해제
    """

    def __init__(
        self,
        rate: Any,
        revenue: Any = Decimal("0"),
        royalty: Optional[Any] = None,
        overridden: bool = False,
    ):
        self.rate = to_decimal(rate, "rate")
        self.revenue = to_decimal(revenue, "revenue")
        self.overridden = bool(overridden)

        if royalty is None:
            self.royalty = self.computed
            self.overridden = False
        else:
            self.royalty = round_money(to_decimal(royalty, "royalty"))

    def __repr__(self):
        return (
            f"<RoyaltyEditor(revenue={self.revenue}, rate={self.rate}, "
            f"royalty={self.royalty}, overridden={self.overridden})>"
        )

    @property
    def computed(self) -> Decimal:
        """현재 수익/인세율 기준 계산 인세"""
        return compute_royalty(self.revenue, self.rate)

    def set_revenue(self, revenue: Any) -> Decimal:
        """수익 변경"""
        self.revenue = to_decimal(revenue, "revenue")
        if not self.overridden:
            self.royalty = self.computed
        return self.royalty

    def set_rate(self, rate: Any) -> Decimal:
        """인세율 변경 (판매의 도서를 다른 도서로 바꾼 경우)"""
        self.rate = to_decimal(rate, "rate")
        if not self.overridden:
            self.royalty = self.computed
        return self.royalty

    def set_royalty(self, value: Any) -> Decimal:
        """
        인세 직접 입력

        빈 값이면 계산값으로 되돌리고,
        그 외에는 값을 저장하고 계산값과 다를 때만 overridden=True
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return self.revert()

        royalty = round_money(to_decimal(value, "royalty"))
        if royalty < 0:
            raise InvalidInputError("Author royalty must not be negative", detail=str(royalty))

        self.royalty = royalty
        self.overridden = differs_from_computed(royalty, self.computed)
        return self.royalty

    def revert(self) -> Decimal:
        """계산값 복원 + 수동 입력 플래그 해제"""
        self.royalty = self.computed
        self.overridden = False
        logger.debug(f"인세 계산값 복원: {self.royalty}")
        return self.royalty
