from __future__ import annotations

import time
from typing import Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class VenueReviewBase(BaseModel):
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=200)
    comment: Optional[str] = Field(default=None, max_length=2000)
    visit_date: Optional[str] = None
    age_of_children: Optional[list[int]] = None

    @model_validator(mode="after")
    def check_children_ages(self) -> "VenueReviewBase":
        for age in self.age_of_children or []:
            if age < 0 or age > 18:
                raise ValueError("age_of_children values must be between 0 and 18")
        return self


class VenueReviewCreate(VenueReviewBase):
    venue_id: str
    user_id: str
    helpful_count: int = 0
    date_created: int = Field(default_factory=lambda: int(time.time()))
    last_updated: int = Field(default_factory=lambda: int(time.time()))


class VenueReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: Optional[int] = Field(default=None, ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=200)
    comment: Optional[str] = Field(default=None, max_length=2000)
    visit_date: Optional[str] = None
    age_of_children: Optional[list[int]] = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "VenueReviewUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        if "rating" in self.model_fields_set and self.rating is None:
            raise ValueError("rating cannot be null")
        for age in self.age_of_children or []:
            if age < 0 or age > 18:
                raise ValueError("age_of_children values must be between 0 and 18")
        return self


class VenueReviewOut(VenueReviewBase):
    id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("_id", "id"),
    )
    venue_id: str
    user_id: str
    helpful_count: int = 0
    date_created: Optional[int] = None
    last_updated: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and isinstance(values.get("_id"), ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values

    model_config = ConfigDict(populate_by_name=True)
