# src/tk_listing/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.tk_common.response import ApiResponse, success_response
from src.tk_gateway.auth.dependencies import get_current_user_id
from src.tk_gateway.container import get_bulk_intake
from src.tk_listing.application.schemas import BulkUploadRequest, BulkUploadResponse
from src.tk_listing.application.service import BulkIntakeService

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("/bulk")
async def bulk_upload(
    req: BulkUploadRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[BulkIntakeService, Depends(get_bulk_intake)],
    request: Request,
) -> ApiResponse:
    result = await service.bulk_create_listings(user_id, req.listings)
    return success_response(BulkUploadResponse.from_result(result).model_dump(mode="json"), request)
