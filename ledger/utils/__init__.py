"""유틸리티 모듈"""
from .retry import RetryConfig, retry_on_exception
from .validators import (
    BookValidator,
    SaleValidator,
    ValidationError,
    digits_only,
)
from .formatters import (
    format_currency,
    format_period,
    format_publication,
    status_label,
)

__all__ = [
    "RetryConfig",
    "retry_on_exception",
    "BookValidator",
    "SaleValidator",
    "ValidationError",
    "digits_only",
    "format_currency",
    "format_period",
    "format_publication",
    "status_label",
]
