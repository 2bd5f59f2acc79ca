"""애플리케이션 설정"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """환경변수 기반 설정"""

    # Database (미설정 시 프로젝트 루트의 publisher_ledger.db)
    database_url: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    # 목록 페이지네이션
    default_page_size: int = 20
    max_page_size: int = 100
    payments_page_size: int = 10  # 작가 그룹 단위

    # 인세
    default_royalty_rate: int = 50  # 도서 기본 인세율 (%)

    # 판매 기간 연도 범위
    sales_year_min: int = 2000
    sales_year_max: int = 2100

    # Open Library (도서 메타데이터 조회)
    openlibrary_base_url: str = "https://openlibrary.org"
    lookup_timeout: int = 15
    lookup_max_attempts: int = 3

    # CORS (쉼표 구분, 비어 있으면 전체 허용)
    allow_origins: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False


# 전역 설정 인스턴스
settings = Settings()
