"""
HTTP API 라우터
===============
actions 결과(OperationResult)를 JSON 응답으로 변환하는 얇은 계층

실패 코드 → HTTP 상태:
    VALIDATION / INVALID_INPUT → 400
    NOT_FOUND → 404, CONFLICT → 409
    EXTERNAL_LOOKUP → 502, STORAGE → 500
    PARTIAL(대량 저장 일부 실패) → 207
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from ledger import actions, database
from ledger.errors import OperationResult
from ledger.schemas import BookInput, BulkTextInput, MarkPaidInput, SaleInput, SeriesInput
from ledger.services.listing import Page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

STATUS_BY_CODE = {
    "VALIDATION": 400,
    "INVALID_INPUT": 400,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "EXTERNAL_LOOKUP": 502,
    "STORAGE": 500,
    "PARTIAL": 207,
}


def get_engine() -> Engine:
    """엔진 의존성 (테스트에서 dependency_overrides로 교체)"""
    return database.engine


def _serialize(value: Any) -> Any:
    if isinstance(value, Page):
        return value.to_dict(_serialize)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return jsonable_encoder(value, custom_encoder={Decimal: str})


def _respond(result: OperationResult, status_code: int = 200) -> JSONResponse:
    if result.success:
        return JSONResponse(status_code=status_code, content={"success": True, "value": _serialize(result.value)})

    body = result.to_dict()
    if result.value is not None:
        body["value"] = _serialize(result.value)
    return JSONResponse(status_code=STATUS_BY_CODE.get(result.code, 400), content=body)


def _payload(model) -> dict:
    """요청 본문 중 실제로 전달된 필드만"""
    return model.model_dump(exclude_unset=True)


# ─── 판매 ───

@router.get("/sales")
def list_sales(
    search: Optional[str] = None,
    sort_by: str = "period",
    sort_dir: str = "desc",
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    show_all: bool = False,
    engine: Engine = Depends(get_engine),
):
    query = {
        "search": search,
        "sort_by": sort_by,
        "sort_dir": sort_dir,
        "date_from": date_from,
        "date_to": date_to,
        "page": page,
        "page_size": page_size,
        "show_all": show_all,
    }
    return _respond(actions.list_sales(query, engine=engine))


@router.post("/sales")
def add_sale(body: SaleInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.add_sale(_payload(body), engine=engine), status_code=201)


@router.post("/sales/bulk/preview")
def preview_bulk(body: BulkTextInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.preview_bulk_sales(body.text, engine=engine))


@router.post("/sales/bulk/submit")
def submit_bulk(body: BulkTextInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.import_bulk_text(body.text, engine=engine))


@router.get("/sales/{sale_id}")
def get_sale(sale_id: int, engine: Engine = Depends(get_engine)):
    return _respond(actions.get_sale(sale_id, engine=engine))


@router.patch("/sales/{sale_id}")
def update_sale(sale_id: int, body: SaleInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.update_sale(sale_id, _payload(body), engine=engine))


@router.delete("/sales/{sale_id}")
def delete_sale(sale_id: int, engine: Engine = Depends(get_engine)):
    return _respond(actions.delete_sale(sale_id, engine=engine))


@router.post("/sales/{sale_id}/toggle-paid")
def toggle_paid(sale_id: int, engine: Engine = Depends(get_engine)):
    return _respond(actions.toggle_paid_status(sale_id, engine=engine))


# ─── 작가 지급 ───

@router.get("/payments")
def author_payments(
    page: int = 1,
    page_size: Optional[int] = None,
    engine: Engine = Depends(get_engine),
):
    return _respond(actions.get_author_payments(page, page_size, engine=engine))


@router.post("/payments/mark-paid")
def mark_paid(body: MarkPaidInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.mark_author_paid(body.author_ids, engine=engine))


# ─── 도서 ───

@router.get("/books")
def list_books(
    search: Optional[str] = None,
    sort_by: str = "title",
    sort_dir: str = "asc",
    page: int = 1,
    page_size: Optional[int] = None,
    show_all: bool = False,
    engine: Engine = Depends(get_engine),
):
    query = {
        "search": search,
        "sort_by": sort_by,
        "sort_dir": sort_dir,
        "page": page,
        "page_size": page_size,
        "show_all": show_all,
    }
    return _respond(actions.list_books(query, engine=engine))


@router.post("/books")
def create_book(body: BookInput, engine: Engine = Depends(get_engine)):
    data = _payload(body)
    return _respond(actions.create_book(data, engine=engine), status_code=201)


@router.get("/books/lookup/{isbn}")
def lookup_isbn(isbn: str):
    return _respond(actions.lookup_book_by_isbn(isbn))


@router.get("/books/{book_id}")
def get_book(book_id: int, engine: Engine = Depends(get_engine)):
    return _respond(actions.get_book(book_id, engine=engine))


@router.patch("/books/{book_id}")
def update_book(book_id: int, body: BookInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.update_book(book_id, _payload(body), engine=engine))


@router.delete("/books/{book_id}")
def delete_book(book_id: int, engine: Engine = Depends(get_engine)):
    return _respond(actions.delete_book(book_id, engine=engine))


@router.get("/series")
def list_series(engine: Engine = Depends(get_engine)):
    return _respond(actions.list_series(engine=engine))


@router.post("/series")
def create_series(body: SeriesInput, engine: Engine = Depends(get_engine)):
    return _respond(actions.create_series(body.name, body.description, engine=engine), status_code=201)
