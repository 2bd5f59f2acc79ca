"""
transaction_manager.py 테스트
=============================
atomic_operation 커밋/롤백, SAVEPOINT 부분 롤백
"""
import pytest
import sys
import tempfile
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ledger.database import get_engine_for_db, init_db
from ledger.errors import InvalidInputError
from ledger.models import Author, Series
from ledger.services.transaction_manager import (
    atomic_operation,
    atomic_session,
)


class TestTransactionManager:

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

    def _author_count(self):
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(Author.__table__)).scalar()

    # ─── atomic_operation ───

    def test_commit(self):
        with atomic_operation(self.engine) as conn:
            conn.execute(Author.__table__.insert().values(name="Ann"))
        assert self._author_count() == 1

    def test_rollback_on_error(self):
        with pytest.raises(RuntimeError):
            with atomic_operation(self.engine) as conn:
                conn.execute(Author.__table__.insert().values(name="Ann"))
                raise RuntimeError("boom")
        assert self._author_count() == 0

    def test_session_rollback_on_domain_error(self):
        with pytest.raises(InvalidInputError):
            with atomic_session(self.engine) as session:
                session.add(Series(name="Saga"))
                session.flush()
                raise InvalidInputError("stop")

        with atomic_session(self.engine) as session:
            assert session.scalars(select(Series)).all() == []

    # ─── SAVEPOINT ───

    def test_nested_failure_keeps_outer_rows(self):
        """실패한 SAVEPOINT만 되돌리고 바깥 트랜잭션은 계속"""
        with atomic_operation(self.engine) as conn:
            conn.execute(Author.__table__.insert().values(name="Ann"))
            with pytest.raises(IntegrityError):
                with conn.begin_nested():
                    conn.execute(Author.__table__.insert().values(name="Ann"))
            conn.execute(Author.__table__.insert().values(name="Bob"))
        assert self._author_count() == 2

    def test_outer_rollback_discards_released_savepoints(self):
        with pytest.raises(RuntimeError):
            with atomic_operation(self.engine) as conn:
                with conn.begin_nested():
                    conn.execute(Author.__table__.insert().values(name="Ann"))
                raise RuntimeError("boom")
        assert self._author_count() == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
