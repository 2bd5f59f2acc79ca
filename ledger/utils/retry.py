"""
재시도 로직 모듈
================
메타데이터 조회(Open Library) 시 네트워크 오류, Rate Limit 대응 지수 백오프

사용법:
    config = RetryConfig(max_attempts=3, base_delay=0.5)

    @retry_on_exception(config=config)
    def fetch(url):
        return session.get(url, timeout=15)
"""
import time
import random
import logging
import functools
from dataclasses import dataclass, field
from typing import Tuple, Type, Callable, Optional, Any

import requests

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """재시도 설정"""
    max_attempts: int = 3
    base_delay: float = 0.5  # 초
    max_delay: float = 8.0  # 최대 대기 시간 (초)
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = field(
        default_factory=lambda: (
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
            requests.exceptions.ChunkedEncodingError,
        )
    )
    retryable_status_codes: Tuple[int, ...] = (429, 500, 502, 503, 504)


DEFAULT_RETRY_CONFIG = RetryConfig()


def retry_on_exception(
    max_attempts: Optional[int] = None,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    재시도 데코레이터

    Args:
        max_attempts: 최대 시도 횟수 (None이면 config 값)
        config: RetryConfig 객체
        on_retry: 예외로 재시도할 때 호출할 콜백 (exception, attempt)
        sleep: 대기 함수 (테스트에서 교체)

    응답 객체(status_code 보유)가 재시도 대상 코드면 재요청하고,
    시도 횟수를 다 쓰면 마지막 응답을 그대로 돌려준다.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            cfg = config or DEFAULT_RETRY_CONFIG
            _max_attempts = max_attempts if max_attempts is not None else cfg.max_attempts
            _max_attempts = max(1, _max_attempts)

            result = None
            for attempt in range(1, _max_attempts + 1):
                try:
                    result = func(*args, **kwargs)
                except cfg.retryable_exceptions as e:
                    if attempt >= _max_attempts:
                        logger.error(f"최대 재시도 횟수 초과: {type(e).__name__}: {e}")
                        raise
                    delay = calculate_delay(attempt, cfg)
                    logger.warning(
                        f"오류 발생: {type(e).__name__}: {e}, "
                        f"{delay:.2f}초 후 재시도 ({attempt}/{_max_attempts})"
                    )
                    if on_retry:
                        on_retry(e, attempt)
                    sleep(delay)
                    continue

                status = getattr(result, "status_code", None)
                if status in cfg.retryable_status_codes and attempt < _max_attempts:
                    delay = calculate_delay(attempt, cfg)
                    logger.warning(
                        f"재시도 가능 상태 코드 {status}, "
                        f"{delay:.2f}초 후 재시도 ({attempt}/{_max_attempts})"
                    )
                    sleep(delay)
                    continue

                return result

            return result

        return wrapper
    return decorator


def calculate_delay(attempt: int, cfg: RetryConfig) -> float:
    """지수 백오프 대기 시간 계산 (±25% 지터)"""
    delay = cfg.base_delay * (cfg.exponential_base ** (attempt - 1))
    delay = min(delay, cfg.max_delay)

    if cfg.jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)

    return max(0.0, delay)
