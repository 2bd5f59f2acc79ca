"""
Publisher Ledger API 서버
=========================
도서 / 판매 기록 / 작가 인세 지급 관리 HTTP 엔드포인트

실행:
    python -m ledger.main
    uvicorn ledger.main:app --port 8000
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ledger import database
from ledger.config import settings
from ledger.routes import get_engine, router

logging.basicConfig(
    level=settings.log_level,
    format='[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """시작 시 테이블 생성, 종료 시 커넥션 풀 정리"""
    database.init_db()
    logger.info(f"원장 DB 준비 완료 ({database.engine.url.get_backend_name()})")
    yield
    database.engine.dispose()
    logger.info("원장 서버 종료")


app = FastAPI(
    title="Publisher Ledger",
    description="도서 / 판매 기록 / 작가 인세 지급 관리",
    version=VERSION,
    lifespan=lifespan,
)

# ALLOW_ORIGINS 미설정 시 전체 허용 (이 경우 credentials 불가)
origins = [o.strip() for o in (settings.allow_origins or "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def root():
    return {"message": "Publisher Ledger", "version": VERSION, "docs": "/docs"}


@app.get("/health")
def health_check(engine: Engine = Depends(get_engine)):
    """DB 연결까지 확인 (실패 시 503)"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"헬스 체크 DB 오류: {type(e).__name__}: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("ledger.main:app", host="0.0.0.0", port=8000)
