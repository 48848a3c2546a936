from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class VenueType(str, Enum):
    PARK = "park"
    LIBRARY = "library"
    MUSEUM = "museum"
    PLAYGROUND = "playground"
    COMMUNITY_CENTER = "community_center"
    INDOOR_PLAY = "indoor_play"
    SPORTS_FACILITY = "sports_facility"
    CAFE = "cafe"
    RESTAURANT = "restaurant"
    OTHER = "other"


class IndoorOutdoor(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    BOTH = "both"


class AgeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int = Field(ge=0, le=18)
    max: int = Field(ge=0, le=18)

    @model_validator(mode="after")
    def check_bounds_order(self) -> "AgeRange":
        if self.min > self.max:
            raise ValueError("Minimum age must be less than or equal to maximum age")
        return self

    def contains(self, other: "AgeRange") -> bool:
        return self.min <= other.min and self.max >= other.max


class OpenPeriod(BaseModel):
    open: str
    close: str


class VenueHours(BaseModel):
    monday: Optional[OpenPeriod] = None
    tuesday: Optional[OpenPeriod] = None
    wednesday: Optional[OpenPeriod] = None
    thursday: Optional[OpenPeriod] = None
    friday: Optional[OpenPeriod] = None
    saturday: Optional[OpenPeriod] = None
    sunday: Optional[OpenPeriod] = None


class VenueBase(BaseModel):
    name: str
    venue_type: VenueType = VenueType.OTHER
    google_place_id: Optional[str] = None
    formatted_address: Optional[str] = None
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    phone_number: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = ""
    rating: float = Field(default=0, ge=0, le=5)
    total_reviews: int = Field(default=0, ge=0)
    price_level: Optional[int] = Field(default=None, ge=0, le=4)
    amenities: list[str] = Field(default_factory=list)
    age_suitability: AgeRange = Field(default_factory=lambda: AgeRange(min=0, max=18))
    hours: Optional[VenueHours] = None
    photo_urls: list[str] = Field(default_factory=list)
    accessibility_features: list[str] = Field(default_factory=list)
    parking_available: bool = False
    indoor_outdoor: IndoorOutdoor = IndoorOutdoor.OUTDOOR


class VenueCreate(VenueBase):
    date_created: int = Field(default_factory=lambda: int(time.time()))
    last_updated: int = Field(default_factory=lambda: int(time.time()))


class VenueOut(VenueBase):
    id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("_id", "id"),
    )
    date_created: Optional[int] = None
    last_updated: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and isinstance(values.get("_id"), ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values

    model_config = ConfigDict(populate_by_name=True)


class VenueWithDetails(VenueOut):
    distance: float = 0.0
    is_favorite: bool = False
    user_has_visited: bool = False


class VenueDetailsOut(BaseModel):
    venue: VenueOut
    is_favorite: bool = False


class VenueSearchFilter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: int = Field(default=5000, ge=100, le=50000, description="Search radius in meters")
    venue_types: Optional[list[VenueType]] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    age_range: Optional[AgeRange] = None
    amenities: Optional[list[str]] = None
    indoor_outdoor: Optional[IndoorOutdoor] = None
    parking_required: bool = False
    accessibility_required: bool = False
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class VenueSearchResult(BaseModel):
    venues: list[VenueWithDetails]
    total: int
    has_more: bool = False


class ExternalPlace(BaseModel):
    """A nearby-search result from the places provider, normalized."""

    place_id: str
    name: str
    formatted_address: str = ""
    lat: float
    lng: float
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    types: list[str] = Field(default_factory=list)
    photo_references: list[str] = Field(default_factory=list)


class FavoriteOut(BaseModel):
    venue_id: str
    is_favorite: bool


class VenueVisitCreate(BaseModel):
    visit_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    playdate_id: Optional[str] = None


class VenueVisitOut(BaseModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    venue_id: str
    user_id: str
    visit_date: str
    playdate_id: Optional[str] = None
    date_created: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and isinstance(values.get("_id"), ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values

    model_config = ConfigDict(populate_by_name=True)
