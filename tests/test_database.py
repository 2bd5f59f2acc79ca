"""
database.py 테스트
==================
DATABASE_URL 결정 순서, URL/경로별 엔진 생성
"""
import pytest
import sys
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from ledger import database
from ledger.config import settings


class TestResolveDatabaseUrl:

    def test_env_var_first(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://ledger@db/ledger")
        monkeypatch.setattr(settings, "database_url", "sqlite:///other.db")
        assert database._resolve_database_url() == "postgresql://ledger@db/ledger"

    def test_settings_when_env_missing(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr(settings, "database_url", "sqlite:///configured.db")
        assert database._resolve_database_url() == "sqlite:///configured.db"

    def test_local_sqlite_when_unset(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr(settings, "database_url", None)
        url = database._resolve_database_url()
        assert url == f"sqlite:///{database.ROOT / 'publisher_ledger.db'}"


class TestGetEngineForDb:

    def test_path_becomes_sqlite(self, tmp_path):
        engine = database.get_engine_for_db(str(tmp_path / "ledger.db"))
        try:
            assert engine.url.get_backend_name() == "sqlite"
            assert engine.url.database == str(tmp_path / "ledger.db")
        finally:
            engine.dispose()

    def test_foreign_keys_enabled(self, tmp_path):
        engine = database.get_engine_for_db(str(tmp_path / "ledger.db"))
        try:
            with engine.connect() as conn:
                assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        finally:
            engine.dispose()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
