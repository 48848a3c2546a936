from __future__ import annotations

import pytest
from pymongo.errors import DuplicateKeyError

from core.errors import AppException, ErrorCode
from schemas.venue import VenueOut
from schemas.venue_review import VenueReviewBase, VenueReviewOut, VenueReviewUpdate
from security.principal import AuthPrincipal
from services import venue_review_service

VENUE_ID = "665f1c2e8b3e4a0012345678"
PLACE_ID = "ChIJplace"


def _principal(user_id: str = "user-1") -> AuthPrincipal:
    return AuthPrincipal(user_id=user_id, role="parent", jwt_token="jwt-1")


def _review(review_id: str = "review-1", *, user_id: str = "user-1", venue_id: str = VENUE_ID, rating: int = 4):
    return VenueReviewOut(id=review_id, venue_id=venue_id, user_id=user_id, rating=rating)


class _ReviewStore:
    def __init__(self, reviews: list[VenueReviewOut] | None = None, ratings: list[int] | None = None) -> None:
        self.reviews = {review.id: review for review in reviews or []}
        self.ratings = ratings or []
        self.create_error: Exception | None = None
        self.deleted: list[str] = []

    async def get_review_for_user(self, *, venue_id: str, user_id: str):
        return next(
            (r for r in self.reviews.values() if r.venue_id == venue_id and r.user_id == user_id),
            None,
        )

    async def create_review(self, payload):
        if self.create_error is not None:
            raise self.create_error
        review = VenueReviewOut(**payload.model_dump(), id="review-new")
        self.reviews[review.id] = review
        return review

    async def get_reviews_for_venue(self, *, venue_id: str, start: int = 0, stop: int = 50):
        return [r for r in self.reviews.values() if r.venue_id == venue_id][start:stop]

    async def get_review_by_id(self, review_id: str):
        return self.reviews.get(review_id)

    async def update_review_fields(self, review_id: str, update_dict: dict):
        current = self.reviews.get(review_id)
        if current is None:
            return None
        updated = current.model_copy(update=update_dict)
        self.reviews[review_id] = updated
        return updated

    async def delete_review(self, review_id: str) -> int:
        self.deleted.append(review_id)
        return 1 if self.reviews.pop(review_id, None) else 0

    async def review_rating_aggregation(self, venue_id: str) -> dict:
        if not self.ratings:
            return {"avg_rating": 0, "total": 0}
        return {"avg_rating": sum(self.ratings) / len(self.ratings), "total": len(self.ratings)}


@pytest.fixture
def venue_updates(monkeypatch: pytest.MonkeyPatch) -> list:
    updates: list = []

    async def _stub_resolve_venue(venue_id: str):
        if venue_id in (VENUE_ID, PLACE_ID):
            return VenueOut(id=VENUE_ID, name="Park", google_place_id=PLACE_ID, lat=1.0, lng=2.0)
        return None

    async def _stub_require_venue(venue_id: str):
        venue = await _stub_resolve_venue(venue_id)
        assert venue is not None
        return venue

    async def _stub_update_venue_fields(venue_id: str, fields: dict):
        updates.append((venue_id, fields))

    monkeypatch.setattr(venue_review_service, "resolve_venue", _stub_resolve_venue)
    monkeypatch.setattr(venue_review_service, "require_venue", _stub_require_venue)
    monkeypatch.setattr(venue_review_service, "update_venue_fields", _stub_update_venue_fields)
    return updates


@pytest.mark.asyncio
async def test_create_review_refreshes_venue_rating(monkeypatch: pytest.MonkeyPatch, venue_updates):
    store = _ReviewStore(ratings=[5, 4, 4])
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    review = await venue_review_service.create_review_for_principal(
        venue_id=VENUE_ID,
        principal=_principal(),
        payload=VenueReviewBase(rating=5, title="Great shade"),
    )

    assert review.user_id == "user-1"
    assert review.venue_id == VENUE_ID
    venue_id, fields = venue_updates[0]
    assert venue_id == VENUE_ID
    assert fields["rating"] == 4.3
    assert fields["total_reviews"] == 3


@pytest.mark.asyncio
async def test_second_review_by_same_user_conflicts(monkeypatch: pytest.MonkeyPatch, venue_updates):
    store = _ReviewStore([_review()])
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    with pytest.raises(AppException) as exc_info:
        await venue_review_service.create_review_for_principal(
            venue_id=VENUE_ID,
            principal=_principal(),
            payload=VenueReviewBase(rating=3),
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail["code"] == ErrorCode.REVIEW_CONFLICT.value
    assert venue_updates == []


@pytest.mark.asyncio
async def test_concurrent_duplicate_insert_conflicts(monkeypatch: pytest.MonkeyPatch, venue_updates):
    store = _ReviewStore()
    store.create_error = DuplicateKeyError("E11000 duplicate key")
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    with pytest.raises(AppException) as exc_info:
        await venue_review_service.create_review_for_principal(
            venue_id=VENUE_ID,
            principal=_principal(),
            payload=VenueReviewBase(rating=3),
        )

    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_update_review_by_owner_only_refreshes_when_rating_changes(
    monkeypatch: pytest.MonkeyPatch, venue_updates
):
    store = _ReviewStore([_review()], ratings=[4])
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    updated = await venue_review_service.update_review_for_principal(
        venue_id=VENUE_ID,
        review_id="review-1",
        principal=_principal(),
        payload=VenueReviewUpdate(comment="Busy on weekends"),
    )
    assert updated.comment == "Busy on weekends"
    assert venue_updates == []

    await venue_review_service.update_review_for_principal(
        venue_id=VENUE_ID,
        review_id="review-1",
        principal=_principal(),
        payload=VenueReviewUpdate(rating=2),
    )
    assert len(venue_updates) == 1


@pytest.mark.asyncio
async def test_update_review_by_other_user_is_denied(monkeypatch: pytest.MonkeyPatch, venue_updates):
    monkeypatch.setattr(venue_review_service, "venue_review_repo", _ReviewStore([_review(user_id="owner")]))

    with pytest.raises(AppException) as exc_info:
        await venue_review_service.update_review_for_principal(
            venue_id=VENUE_ID,
            review_id="review-1",
            principal=_principal("intruder"),
            payload=VenueReviewUpdate(rating=1),
        )

    assert exc_info.value.status_code == 403
    assert exc_info.value.detail["message"] == "You can only update your own reviews"


@pytest.mark.asyncio
async def test_review_from_another_venue_is_not_found(monkeypatch: pytest.MonkeyPatch, venue_updates):
    store = _ReviewStore([_review(venue_id="other-venue")])
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    with pytest.raises(AppException) as exc_info:
        await venue_review_service.delete_review_for_principal(
            venue_id=VENUE_ID,
            review_id="review-1",
            principal=_principal(),
        )

    assert exc_info.value.status_code == 404
    assert store.deleted == []


@pytest.mark.asyncio
async def test_delete_review_refreshes_rating(monkeypatch: pytest.MonkeyPatch, venue_updates):
    store = _ReviewStore([_review()])
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    deleted = await venue_review_service.delete_review_for_principal(
        venue_id=VENUE_ID,
        review_id="review-1",
        principal=_principal(),
    )

    assert deleted is True
    assert store.deleted == ["review-1"]
    assert venue_updates[0][1]["rating"] == 0
    assert venue_updates[0][1]["total_reviews"] == 0


def test_review_update_requires_a_field():
    with pytest.raises(ValueError):
        VenueReviewUpdate()


def test_review_rejects_child_age_over_eighteen():
    with pytest.raises(ValueError):
        VenueReviewBase(rating=4, age_of_children=[4, 19])


@pytest.mark.asyncio
async def test_place_id_resolves_to_stored_venue_for_every_review_path(
    monkeypatch: pytest.MonkeyPatch, venue_updates
):
    store = _ReviewStore()
    monkeypatch.setattr(venue_review_service, "venue_review_repo", store)

    created = await venue_review_service.create_review_for_principal(
        venue_id=PLACE_ID,
        principal=_principal(),
        payload=VenueReviewBase(rating=4),
    )
    listed = await venue_review_service.list_reviews_for_venue(venue_id=PLACE_ID)
    updated = await venue_review_service.update_review_for_principal(
        venue_id=PLACE_ID,
        review_id=created.id,
        principal=_principal(),
        payload=VenueReviewUpdate(rating=2),
    )
    deleted = await venue_review_service.delete_review_for_principal(
        venue_id=PLACE_ID,
        review_id=created.id,
        principal=_principal(),
    )

    assert created.venue_id == VENUE_ID
    assert [review.id for review in listed] == [created.id]
    assert updated.rating == 2
    assert deleted is True
    assert {venue_id for venue_id, _ in venue_updates} == {VENUE_ID}


@pytest.mark.asyncio
async def test_list_reviews_for_unknown_venue_is_empty(monkeypatch: pytest.MonkeyPatch, venue_updates):
    monkeypatch.setattr(venue_review_service, "venue_review_repo", _ReviewStore([_review()]))

    assert await venue_review_service.list_reviews_for_venue(venue_id="ChIJunknown") == []


def test_review_update_rejects_null_rating():
    with pytest.raises(ValueError):
        VenueReviewUpdate.model_validate({"rating": None})


def test_review_update_allows_clearing_text_fields():
    update = VenueReviewUpdate.model_validate({"title": None, "comment": None})

    assert update.model_dump(exclude_unset=True) == {"title": None, "comment": None}
