# src/tk_settlement/api/admin_router.py
"""Operator endpoints: reconciliation queue, manual re-capture, on-demand sweeps."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.tk_common.response import ApiResponse, success_response
from src.tk_gateway.auth.dependencies import require_admin
from src.tk_gateway.container import get_lifecycle, get_settlement
from src.tk_offer.application.lifecycle import OfferLifecycleManager
from src.tk_offer.application.schemas import SweepResponse
from src.tk_settlement.application.schemas import (
    ReconciliationQueueResponse,
    RetryCaptureResponse,
    TransactionResponse,
)
from src.tk_settlement.engine.engine import SettlementEngine

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/reconciliation")
async def list_reconciliation_queue(
    engine: Annotated[SettlementEngine, Depends(get_settlement)],
    request: Request,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    txns = await engine.list_reconciliation_queue(limit)
    data = ReconciliationQueueResponse(items=[TransactionResponse.from_domain(t) for t in txns])
    return success_response(data.model_dump(mode="json"), request)


@router.post("/offers/{offer_id}/capture")
async def retry_capture(
    offer_id: str,
    engine: Annotated[SettlementEngine, Depends(get_settlement)],
    request: Request,
) -> ApiResponse:
    offer = await engine.retry_capture(offer_id)
    data = RetryCaptureResponse(offer_id=offer.id, hold_state=offer.hold_state)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/sweeps/expiry")
async def run_expiry_sweep(
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
) -> ApiResponse:
    result = await lifecycle.expire_sweep()
    return success_response(SweepResponse.from_result(result).model_dump(), request)


@router.post("/sweeps/reconcile")
async def run_reconcile_sweep(
    engine: Annotated[SettlementEngine, Depends(get_settlement)],
    request: Request,
) -> ApiResponse:
    result = await engine.reconcile_sweep()
    return success_response(SweepResponse.from_result(result).model_dump(), request)
