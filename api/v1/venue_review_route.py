from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, Request

from core.response_envelope import document_response
from schemas.venue_review import VenueReviewBase, VenueReviewUpdate
from security.auth import verify_any_token
from security.principal import AuthPrincipal
from services.venue_review_service import (
    create_review_for_principal,
    delete_review_for_principal,
    list_reviews_for_venue,
    update_review_for_principal,
)

router = APIRouter(prefix="/venues/{venue_id}/reviews", tags=["Venue Reviews"])


@router.get("")
@document_response(message="Reviews fetched successfully", success_example=[])
async def list_venue_reviews(
    request: Request,
    venue_id: str = Path(...),
    start: int = Query(default=0, ge=0),
    stop: int = Query(default=50, gt=0, le=200),
):
    return await list_reviews_for_venue(venue_id=venue_id, start=start, stop=stop)


@router.post("")
@document_response(message="Review created successfully", status_code=201)
async def create_venue_review(
    request: Request,
    payload: VenueReviewBase,
    venue_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    return await create_review_for_principal(venue_id=venue_id, principal=principal, payload=payload)


@router.patch("/{review_id}")
@document_response(message="Review updated successfully")
async def update_venue_review(
    request: Request,
    payload: VenueReviewUpdate,
    venue_id: str = Path(...),
    review_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    return await update_review_for_principal(
        venue_id=venue_id,
        review_id=review_id,
        principal=principal,
        payload=payload,
    )


@router.delete("/{review_id}")
@document_response(message="Review deleted successfully", success_example={"deleted": True})
async def delete_venue_review(
    request: Request,
    venue_id: str = Path(...),
    review_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    await delete_review_for_principal(venue_id=venue_id, review_id=review_id, principal=principal)
    return {"deleted": True}
