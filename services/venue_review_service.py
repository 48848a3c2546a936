from __future__ import annotations

import time

from pymongo.errors import DuplicateKeyError

from core.errors import AppException, ErrorCode, resource_not_found
from repositories import venue_review_repo
from repositories.venue_repo import update_venue_fields
from schemas.venue_review import VenueReviewBase, VenueReviewCreate, VenueReviewOut, VenueReviewUpdate
from security.principal import AuthPrincipal
from security.venue_access_check import require_active_principal, require_review_owner
from services.venue_service import require_venue, resolve_venue


def _review_conflict(venue_id: str) -> AppException:
    return AppException(
        status_code=409,
        code=ErrorCode.REVIEW_CONFLICT,
        message="You have already reviewed this venue",
        details={"venue_id": venue_id},
    )


async def refresh_venue_rating(venue_id: str) -> None:
    """Recomputes the venue's aggregate rating from its reviews."""
    summary = await venue_review_repo.review_rating_aggregation(venue_id)
    await update_venue_fields(
        venue_id,
        {
            "rating": round(summary["avg_rating"], 1),
            "total_reviews": summary["total"],
            "last_updated": int(time.time()),
        },
    )


async def list_reviews_for_venue(*, venue_id: str, start: int = 0, stop: int = 50) -> list[VenueReviewOut]:
    venue = await resolve_venue(venue_id)
    if venue is None:
        return []
    return await venue_review_repo.get_reviews_for_venue(venue_id=str(venue.id), start=start, stop=stop)


async def create_review_for_principal(
    *,
    venue_id: str,
    principal: AuthPrincipal,
    payload: VenueReviewBase,
) -> VenueReviewOut:
    user_id = require_active_principal(principal)
    venue = await require_venue(venue_id)
    stored_venue_id = str(venue.id)

    existing = await venue_review_repo.get_review_for_user(venue_id=stored_venue_id, user_id=user_id)
    if existing is not None:
        raise _review_conflict(stored_venue_id)

    try:
        review = await venue_review_repo.create_review(
            VenueReviewCreate(**payload.model_dump(), venue_id=stored_venue_id, user_id=user_id)
        )
    except DuplicateKeyError as exc:
        raise _review_conflict(stored_venue_id) from exc

    await refresh_venue_rating(stored_venue_id)
    return review


async def _require_review(*, venue_id: str, review_id: str) -> VenueReviewOut:
    venue = await resolve_venue(venue_id)
    review = await venue_review_repo.get_review_by_id(review_id)
    if venue is None or review is None or review.venue_id != str(venue.id):
        raise resource_not_found("Review", review_id)
    return review


async def update_review_for_principal(
    *,
    venue_id: str,
    review_id: str,
    principal: AuthPrincipal,
    payload: VenueReviewUpdate,
) -> VenueReviewOut:
    require_active_principal(principal)
    review = await _require_review(venue_id=venue_id, review_id=review_id)
    require_review_owner(principal=principal, review_user_id=review.user_id, action="update")

    update_dict = payload.model_dump(exclude_unset=True)
    update_dict["last_updated"] = int(time.time())
    updated = await venue_review_repo.update_review_fields(review_id, update_dict)
    if updated is None:
        raise resource_not_found("Review", review_id)

    if "rating" in update_dict:
        await refresh_venue_rating(review.venue_id)
    return updated


async def delete_review_for_principal(*, venue_id: str, review_id: str, principal: AuthPrincipal) -> bool:
    require_active_principal(principal)
    review = await _require_review(venue_id=venue_id, review_id=review_id)
    require_review_owner(principal=principal, review_user_id=review.user_id, action="delete")

    deleted = await venue_review_repo.delete_review(review_id)
    if deleted == 0:
        raise resource_not_found("Review", review_id)

    await refresh_venue_rating(review.venue_id)
    return True
