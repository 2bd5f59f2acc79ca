"""
트랜잭션 관리 모듈
==================
원자적 작업 보장 (커넥션 트랜잭션 / ORM 세션)

사용법:
    with atomic_operation(engine) as conn:
        conn.execute(update(sales_table).values(paid=True))

    with atomic_session(engine) as session:
        session.add(book)

    # 항목별 SAVEPOINT: 실패한 항목만 되돌리고 나머지는 함께 커밋
    with atomic_operation(engine) as conn:
        for item in items:
            with conn.begin_nested():
                conn.execute(insert(sales_table).values(...))
"""
import logging
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def atomic_operation(engine: Engine):
    """
    원자적 작업을 보장하는 컨텍스트 매니저

    성공 시 자동 커밋, 실패 시 자동 롤백

    Args:
        engine: SQLAlchemy 엔진

    Yields:
        Connection: 데이터베이스 연결

    Raises:
        SQLAlchemyError: 데이터베이스 오류 시 (롤백 후)
    """
    conn = engine.connect()
    trans = conn.begin()

    try:
        yield conn
        trans.commit()
        logger.debug("트랜잭션 커밋 완료")
    except IntegrityError as e:
        trans.rollback()
        logger.warning(f"무결성 오류로 롤백: {e}")
        raise
    except SQLAlchemyError as e:
        trans.rollback()
        logger.error(f"DB 오류로 롤백: {e}")
        raise
    except Exception as e:
        trans.rollback()
        logger.info(f"작업 오류로 롤백: {type(e).__name__}: {e}")
        raise
    finally:
        conn.close()


@contextmanager
def atomic_session(engine: Engine):
    """
    ORM 세션 버전의 atomic_operation

    블록 안의 모든 변경은 하나의 트랜잭션으로 커밋/롤백된다.
    커밋 후에도 객체 속성을 읽을 수 있도록 expire_on_commit=False.
    """
    session = Session(bind=engine, expire_on_commit=False)

    try:
        yield session
        session.commit()
        logger.debug("세션 커밋 완료")
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"무결성 오류로 롤백: {e}")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"DB 오류로 롤백: {e}")
        raise
    except Exception as e:
        session.rollback()
        logger.info(f"작업 오류로 롤백: {type(e).__name__}: {e}")
        raise
    finally:
        session.close()

