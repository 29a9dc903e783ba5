"""mt_ledger REST API. Every endpoint requires JWT authentication.

The acting person is always the authenticated principal; no endpoint takes
a person id from the client.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.database import get_db_session
from src.mt_common.date_ranges import resolve_period
from src.mt_common.enums import Direction, Permission
from src.mt_common.money import money_to_display
from src.mt_common.response import ApiResponse, success_response
from src.mt_gateway.auth.dependencies import Principal, require_permission
from src.mt_ledger.application.schemas import (
    BalanceResponse,
    CategoryTotalItem,
    CreateTransactionRequest,
    MonthlyTotalItem,
    ReverseTransactionRequest,
    SummaryResponse,
    TransactionItem,
    TransactionResponse,
)
from src.mt_ledger.application.service import LedgerService

router = APIRouter(prefix="/transactions", tags=["transactions"])

_service = LedgerService()

Reader = Annotated[Principal, Depends(require_permission(Permission.LEDGER_READ_OWN))]
Writer = Annotated[Principal, Depends(require_permission(Permission.LEDGER_WRITE_OWN))]
Session = Annotated[AsyncSession, Depends(get_db_session)]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def create_transaction(
    body: CreateTransactionRequest,
    principal: Writer,
    db: Session,
    request: Request,
) -> ApiResponse:
    balance, tx = await _service.apply(
        db,
        principal.person_id,
        body.amount,
        body.direction,  # type: ignore[arg-type]  # filled by the schema validator
        body.description,
        category=body.category,
        kind=body.kind,
        occurred_at=body.occurred_at,
    )
    return success_response(
        TransactionResponse.from_result(balance, tx), "Transaction recorded", request
    )


@router.get("", response_model=ApiResponse)
async def list_transactions(
    principal: Reader,
    db: Session,
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    start: datetime | None = Query(None, description="Occurred at or after (ISO 8601)"),
    end: datetime | None = Query(None, description="Occurred at or before (ISO 8601)"),
    include_reversed: bool = Query(True),
) -> ApiResponse:
    data = await _service.list_transactions(
        db, principal.person_id, cursor, limit, start, end, include_reversed
    )
    return success_response(data, request=request)


@router.get("/balance", response_model=ApiResponse)
async def get_balance(principal: Reader, db: Session, request: Request) -> ApiResponse:
    balance = await _service.get_balance(db, principal.person_id)
    data = BalanceResponse(
        person_id=principal.person_id,
        balance=balance,
        balance_display=money_to_display(balance),
    )
    return success_response(data, request=request)


@router.get("/summary", response_model=ApiResponse)
async def get_summary(
    principal: Reader,
    db: Session,
    request: Request,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    year: int | None = Query(None, ge=1970, le=9999),
    month: int | None = Query(None, ge=1, le=12),
) -> ApiResponse:
    period_start, period_end = resolve_period(start, end, year, month)
    summary = await _service.summary(db, principal.person_id, period_start, period_end)
    return success_response(SummaryResponse.from_domain(summary), request=request)


@router.get("/categories", response_model=ApiResponse)
async def list_categories(principal: Reader, db: Session, request: Request) -> ApiResponse:
    categories = await _service.categories(db, principal.person_id)
    return success_response({"categories": categories}, request=request)


@router.get("/categories/breakdown", response_model=ApiResponse)
async def category_breakdown(
    principal: Reader,
    db: Session,
    request: Request,
    year: int | None = Query(None, ge=1970, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    direction: Direction = Query(Direction.DEBIT),
) -> ApiResponse:
    start, end = resolve_period(None, None, year, month)
    totals = await _service.category_breakdown(
        db, principal.person_id, start, end, direction
    )
    return success_response([CategoryTotalItem.from_domain(t) for t in totals], request=request)


@router.get("/reports/monthly", response_model=ApiResponse)
async def monthly_report(
    principal: Reader,
    db: Session,
    request: Request,
    year: int = Query(..., ge=1970, le=9999),
) -> ApiResponse:
    months = await _service.monthly_report(db, principal.person_id, year)
    return success_response([MonthlyTotalItem.from_domain(m) for m in months], request=request)


@router.get("/{transaction_id}", response_model=ApiResponse)
async def get_transaction(
    transaction_id: int, principal: Reader, db: Session, request: Request
) -> ApiResponse:
    tx = await _service.get_transaction(db, principal.person_id, transaction_id)
    return success_response(TransactionItem.from_domain(tx), request=request)


@router.post("/{transaction_id}/reverse", response_model=ApiResponse)
async def reverse_transaction(
    transaction_id: int,
    principal: Writer,
    db: Session,
    request: Request,
    body: ReverseTransactionRequest | None = None,
) -> ApiResponse:
    balance, tx = await _service.reverse(
        db, principal.person_id, transaction_id, body.reason if body else None
    )
    return success_response(
        TransactionResponse.from_result(balance, tx), "Transaction reversed", request
    )
