# src/tk_settlement/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.tk_common.response import ApiResponse, success_response
from src.tk_gateway.auth.dependencies import get_current_user_id
from src.tk_gateway.container import get_settlement
from src.tk_settlement.application.schemas import (
    AcceptOfferRequest,
    AcceptOfferResponse,
    TransactionResponse,
)
from src.tk_settlement.engine.engine import SettlementEngine

router = APIRouter(tags=["settlement"])


@router.post("/offers/{offer_id}/accept")
async def accept_offer(
    offer_id: str,
    req: AcceptOfferRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    engine: Annotated[SettlementEngine, Depends(get_settlement)],
    request: Request,
) -> ApiResponse:
    result = await engine.accept_offer(
        offer_id,
        user_id,
        req.section,
        req.row,
        req.seats,
        req.delivery_method,
        req.delivery_details,
    )
    return success_response(AcceptOfferResponse.from_result(result).model_dump(mode="json"), request)


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    engine: Annotated[SettlementEngine, Depends(get_settlement)],
    request: Request,
) -> ApiResponse:
    txn = await engine.get_transaction(transaction_id, user_id)
    return success_response(TransactionResponse.from_domain(txn).model_dump(mode="json"), request)
