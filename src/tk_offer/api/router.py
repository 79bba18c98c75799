# src/tk_offer/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.tk_common.enums import OfferSort
from src.tk_common.response import ApiResponse, success_response
from src.tk_gateway.auth.dependencies import get_current_user_id
from src.tk_gateway.container import get_lifecycle
from src.tk_offer.application.lifecycle import OfferLifecycleManager
from src.tk_offer.application.schemas import (
    CreateOfferRequest,
    EventOfferItem,
    EventOffersResponse,
    OfferListResponse,
    OfferResponse,
)

router = APIRouter(tags=["offers"])


@router.post("/offers", status_code=201)
async def create_offer(
    req: CreateOfferRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
) -> ApiResponse:
    offer = await lifecycle.create_offer(
        user_id, req.event_id, req.sections, req.max_price_cents, req.quantity
    )
    return success_response(OfferResponse.from_domain(offer).model_dump(mode="json"), request)


@router.get("/offers")
async def list_my_offers(
    user_id: Annotated[str, Depends(get_current_user_id)],
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (offer ID)"),
) -> ApiResponse:
    offers, next_cursor = await lifecycle.list_my_offers(user_id, limit, cursor)
    data = OfferListResponse(
        items=[OfferResponse.from_domain(o) for o in offers],
        next_cursor=next_cursor,
        has_more=next_cursor is not None,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/offers/{offer_id}")
async def get_offer(
    offer_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
) -> ApiResponse:
    offer = await lifecycle.get_offer(offer_id, user_id)
    return success_response(OfferResponse.from_domain(offer).model_dump(mode="json"), request)


@router.post("/offers/{offer_id}/cancel")
async def cancel_offer(
    offer_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
) -> ApiResponse:
    offer = await lifecycle.cancel_offer(offer_id, user_id)
    return success_response(OfferResponse.from_domain(offer).model_dump(mode="json"), request)


@router.get("/events/{event_id}/offers")
async def list_event_offers(
    event_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    lifecycle: Annotated[OfferLifecycleManager, Depends(get_lifecycle)],
    request: Request,
    sections: str | None = Query(None, description="Comma-separated section filter"),
    min_price_cents: int | None = Query(None, ge=0, description="Minimum unit price"),
    sort_by: OfferSort = Query(OfferSort.MAX_PRICE, description="maxPrice or createdAt"),
) -> ApiResponse:
    section_list = sections.split(",") if sections else None
    offers = await lifecycle.list_event_offers(
        event_id, user_id, section_list, min_price_cents, sort_by.value
    )
    data = EventOffersResponse(offers=[EventOfferItem.from_domain(o) for o in offers])
    return success_response(data.model_dump(mode="json"), request)
