"""
JSON API for Personal Ledger

Thin HTTP layer over the orchestrator flows. Every handler:
1. Parses the request into a ledger model
2. Hands it to a flow together with a fresh correlation id
3. Returns the model; errors are mapped to `{error}` by the handlers below

ERROR MAPPING:
- ValidationError, malformed body or query → 400
- NotFoundError → 404
- any other StorageError → 500 with the store message passed through
- anything unexpected → 500, audited as a system error
"""

import datetime as dt
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException

from ledger.audit import create_correlation_id, get_logger
from ledger.config import get_settings
from ledger.models import (
    Account,
    Category,
    CategoryDraft,
    LedgerView,
    NetWorthEstimate,
    Note,
    NoteDraft,
    RootTransaction,
    StatsQuery,
)
from ledger.orchestrator import AppComponents, create_app_components
from ledger.services.storage import NotFoundError, StorageError
from ledger.validation import ValidationError

from app.presentation import EntryType, category_type_for, top_categories
from app.schemas import CategoryBody, StatsResponse, TransactionBody, WriteResponse


logger = get_logger(__name__)


@lru_cache()
def get_components() -> AppComponents:
    """Process-wide flows over the configured database (overridable in tests)."""
    return create_app_components()


def request_correlation_id() -> UUID:
    return create_correlation_id()


def parse_id_list(raw: Optional[str]) -> list[int]:
    """Parse `1,2,3` into ids; empty or missing means no filter."""
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"account_ids must be comma-separated integers: {raw}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().app.seed_demo_data:
        from app.seed import seed

        await seed(get_components())
    yield


app = FastAPI(title="Personal Ledger", version="1.0.0", lifespan=lifespan)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": message or "Invalid request"})


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(StorageError)
async def handle_storage_error(request: Request, exc: StorageError):
    logger.error("store_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    provider = request.app.dependency_overrides.get(get_components, get_components)
    await provider().audit_logger.log_error(
        error_type=type(exc).__name__,
        error_message=str(exc),
        details={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})


# =============================================================================
# ROUTES
# =============================================================================

@app.get("/", response_class=PlainTextResponse)
async def health():
    return "Personal ledger backend is up"


@app.get("/api/accounts", response_model=list[Account])
async def list_accounts(components: AppComponents = Depends(get_components)):
    return await components.reports.accounts()


@app.get("/api/accounts/{account_id}/ledger", response_model=LedgerView)
async def account_ledger(
    account_id: int,
    limit: Optional[int] = Query(None, ge=1),
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    return await components.reports.ledger(account_id, limit=limit, correlation_id=correlation_id)


@app.get("/api/categories", response_model=list[Category])
async def list_categories(
    type: Optional[EntryType] = None,
    components: AppComponents = Depends(get_components),
):
    category_type = category_type_for(type) if type is not None else None
    return await components.categories.list(category_type)


@app.post("/api/categories", response_model=WriteResponse)
async def create_category(
    body: CategoryBody,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    category = await components.categories.create(
        CategoryDraft(name=body.name, type=category_type_for(body.type)),
        correlation_id=correlation_id,
    )
    return WriteResponse(id=category.id)


@app.delete("/api/categories/{category_id}", response_model=WriteResponse)
async def delete_category(
    category_id: int,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    if not await components.categories.delete(category_id, correlation_id=correlation_id):
        raise NotFoundError(f"Category not found: {category_id}")
    return WriteResponse(id=category_id)


@app.get("/api/transactions", response_model=list[RootTransaction])
async def list_transactions(
    account_id: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=1),
    components: AppComponents = Depends(get_components),
):
    if limit is None:
        limit = get_settings().ledger.default_list_limit
    return await components.transactions.list(account_id=account_id, limit=limit)


@app.get("/api/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: int,
    components: AppComponents = Depends(get_components),
):
    transaction = await components.transactions.get(transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction not found: {transaction_id}")
    return transaction


@app.post("/api/transactions", response_model=WriteResponse)
async def create_transaction(
    body: TransactionBody,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    root = await components.transactions.create(body.to_draft(), correlation_id=correlation_id)
    return WriteResponse(id=root.id)


@app.put("/api/transactions/{transaction_id}", response_model=WriteResponse)
async def update_transaction(
    transaction_id: int,
    body: TransactionBody,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    await components.transactions.update(
        transaction_id, body.to_draft(), correlation_id=correlation_id
    )
    return WriteResponse(id=transaction_id)


@app.delete("/api/transactions/{transaction_id}", response_model=WriteResponse)
async def delete_transaction(
    transaction_id: int,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    if not await components.transactions.delete(transaction_id, correlation_id=correlation_id):
        raise NotFoundError(f"Transaction not found: {transaction_id}")
    return WriteResponse(id=transaction_id)


@app.get("/api/stats", response_model=StatsResponse)
async def stats(
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
    account_ids: Optional[str] = None,
    components: AppComponents = Depends(get_components),
):
    query = StatsQuery(start=start, end=end, account_ids=parse_id_list(account_ids))
    result = await components.reports.stats(query)
    return StatsResponse(
        **dict(result),
        top_categories=top_categories(result.categories, get_settings().app.category_top_n),
    )


@app.get("/api/net-worth", response_model=NetWorthEstimate)
async def net_worth(
    account_ids: Optional[str] = None,
    components: AppComponents = Depends(get_components),
):
    return await components.reports.net_worth(parse_id_list(account_ids))


@app.get("/api/notes", response_model=list[Note])
async def list_notes(components: AppComponents = Depends(get_components)):
    return await components.notes.list()


@app.post("/api/notes", response_model=WriteResponse)
async def create_note(
    body: NoteDraft,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    note_id = await components.notes.create(body, correlation_id=correlation_id)
    return WriteResponse(id=note_id)


@app.put("/api/notes/{note_id}", response_model=WriteResponse)
async def update_note(
    note_id: int,
    body: NoteDraft,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    if not await components.notes.update(note_id, body, correlation_id=correlation_id):
        raise NotFoundError(f"Note not found: {note_id}")
    return WriteResponse(id=note_id)


@app.delete("/api/notes/{note_id}", response_model=WriteResponse)
async def delete_note(
    note_id: int,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(request_correlation_id),
):
    if not await components.notes.delete(note_id, correlation_id=correlation_id):
        raise NotFoundError(f"Note not found: {note_id}")
    return WriteResponse(id=note_id)
