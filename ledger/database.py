"""데이터베이스 연결 및 세션 관리

로컬 SQLite / PostgreSQL 자동 분기:
  - DATABASE_URL 환경변수가 있으면 그대로 사용
  - 없으면 settings.database_url (.env)
  - 둘 다 없으면 프로젝트 루트의 publisher_ledger.db
"""
import os
import logging
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base

_logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent


# ─── URL 결정 ───

def _resolve_database_url() -> str:
    """DATABASE_URL 결정: 환경변수 → settings → 로컬 SQLite 순"""

    # 1) 환경변수
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    # 2) ledger/config.py 설정
    try:
        from ledger.config import settings
        if settings.database_url:
            return settings.database_url
    except Exception:
        _logger.debug("설정 로드 실패, 로컬 SQLite 사용")

    # 3) 기본 로컬 SQLite
    db_path = ROOT / "publisher_ledger.db"
    return f"sqlite:///{db_path}"


def _is_sqlite(url: str) -> bool:
    """SQLite 여부 판별 (파일/메모리 모두)"""
    return url.startswith("sqlite:")


def _is_postgresql(url: str) -> bool:
    """PostgreSQL 여부 판별"""
    return url.startswith(("postgresql://", "postgres://", "postgresql+"))


def _create_engine_for_url(url: str):
    """URL에 따라 적절한 엔진 생성"""
    if _is_sqlite(url):
        eng = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
            pool_pre_ping=True,
        )
        # SQLite 외래키 + WAL 모드 + busy_timeout
        @event.listens_for(eng, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            # 드라이버 자체 BEGIN 처리 끄기 (SAVEPOINT가 바깥 트랜잭션 안에서 동작하도록)
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
            except Exception:
                _logger.debug("WAL 모드 전환 실패 (DB 잠금), 기존 journal 모드 유지")
            cursor.close()

        @event.listens_for(eng, "begin")
        def _do_begin(conn):
            conn.exec_driver_sql("BEGIN")
        return eng
    elif _is_postgresql(url):
        _logger.info("PostgreSQL 엔진으로 연결합니다.")
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )
    else:
        _logger.info("기타 엔진으로 연결합니다: %s", url.split(":", 1)[0])
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
        )


def get_engine_for_db(db_path: str = None):
    """스크립트/테스트용 엔진 헬퍼

    - db_path가 None이면 전역 URL 로직 사용
    - db_path가 경로면 로컬 SQLite 엔진 생성
    - db_path가 URL이면 해당 URL로 엔진 생성
    """
    if db_path is None:
        return _create_engine_for_url(_resolve_database_url())
    # URL 형식인지 확인
    if db_path.startswith(("sqlite:", "postgresql://", "postgres://", "postgresql+")):
        return _create_engine_for_url(db_path)
    # 파일 경로 → SQLite URL 변환
    return _create_engine_for_url(f"sqlite:///{db_path}")


# ─── 모듈 레벨 전역 엔진 ───

_database_url = _resolve_database_url()
engine = _create_engine_for_url(_database_url)

_db_type = "PostgreSQL" if _is_postgresql(_database_url) else (
    "로컬 SQLite" if _is_sqlite(_database_url) else "기타"
)
_logger.info("DB 엔진 생성: %s", _db_type)

# 베이스 클래스
Base = declarative_base()


def init_db(bind=None):
    """데이터베이스 초기화 (테이블 생성)"""
    # 모델 등록 (metadata 채우기)
    import ledger.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
