"""Pydantic models for hotel data, pricing and search criteria.

Hotel fields keep the remote service's wire names (`Id`, `Category`,
`Adress`, ...) so list, detail and search payloads validate directly.
"""

import json
import re
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from hotel_api.exceptions import SearchValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Provenance(str, Enum):
    """Where a hotel record's fields came from."""

    LIST_ONLY = "list"
    ENHANCED = "enhanced"
    DEGRADED = "degraded"        # detail fetch failed, list fields only
    MERGED = "merged"            # search result + previously fetched details
    SEARCH_ONLY = "search-only"


class HotelCategory(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    Id: int | None = None
    Title: str | None = None
    Star: int | None = None


class HotelCity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    Id: int | None = None
    Name: str | None = None
    Country: dict | str | None = None


class Pricing(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_price: float | None = None
    max_price: float | None = None
    currency: str | None = None
    available: bool = False
    token: str | None = None

    @property
    def has_price(self) -> bool:
        return self.min_price is not None


class Hotel(BaseModel):
    """A hotel in list form, detail form, or any merge of the two."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    Id: int
    Name: str | None = None
    Category: HotelCategory | None = None
    City: HotelCity | None = None
    ShortDescription: str | None = None
    Description: str | None = None
    Adress: str | None = None
    Localization: dict | str | None = None
    Facilities: list = Field(default_factory=list)
    Image: str | None = None
    Theme: list = Field(default_factory=list)

    # detail-only
    Email: str | None = None
    Phone: str | None = None
    Vues: list = Field(default_factory=list)
    Type: str | dict | None = None
    Album: list = Field(default_factory=list)
    Tag: list = Field(default_factory=list)
    Boarding: list = Field(default_factory=list)

    # search-only
    Token: str | None = None
    Recommended: int | float | None = None
    FreeChild: int | bool | None = None
    Source: str | None = None
    pricing: Pricing | None = None

    provenance: Provenance = Provenance.LIST_ONLY
    error: str | None = None

    @field_validator("Facilities", "Theme", "Vues", "Album", "Tag", "Boarding", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v

    @computed_field
    @property
    def enhanced(self) -> bool:
        return self.provenance is Provenance.ENHANCED

    @computed_field
    @property
    def has_full_details(self) -> bool:
        return self.provenance in (Provenance.ENHANCED, Provenance.MERGED)

    @computed_field
    @property
    def data_source(self) -> str:
        return self.provenance.value

    @property
    def star(self) -> int:
        return (self.Category.Star if self.Category else None) or 0

    @property
    def min_price(self) -> float | None:
        return self.pricing.min_price if self.pricing else None

    @property
    def images(self) -> list:
        if self.Album:
            return list(self.Album)
        return [self.Image] if self.Image else []


class RoomRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    adults: int = Field(ge=1)
    children: list[int] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _children_ages(cls, v):
        if v is None:
            return []
        # the storefront sends either ages or {"age": n} objects
        return [c.get("age") if isinstance(c, dict) else c for c in v]

    def to_api(self) -> dict:
        room = {"adult": self.adults}
        if self.children:
            room["child"] = list(self.children)
        return room


class SearchCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_in: str
    check_out: str
    rooms: list[RoomRequest] = Field(min_length=1)

    @field_validator("check_in", "check_out")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        if not DATE_RE.match(v):
            raise ValueError("must be in YYYY-MM-DD format")
        date.fromisoformat(v)
        return v

    @model_validator(mode="after")
    def _check_out_after_check_in(self):
        if date.fromisoformat(self.check_out) <= date.fromisoformat(self.check_in):
            raise ValueError("Check-out date must be after check-in date")
        return self

    @property
    def nights(self) -> int:
        delta = date.fromisoformat(self.check_out) - date.fromisoformat(self.check_in)
        return delta.days

    @property
    def total_guests(self) -> dict:
        return {
            "adults": sum(r.adults for r in self.rooms),
            "children": sum(len(r.children) for r in self.rooms),
        }

    def to_api_rooms(self) -> list[dict]:
        return [r.to_api() for r in self.rooms]

    def cache_key(self) -> str:
        return f"{self.check_in}:{self.check_out}:{json.dumps(self.to_api_rooms(), sort_keys=True)}"

    @classmethod
    def from_query(cls, check_in: str | None, check_out: str | None, rooms: str | list | None):
        """Build criteria from route parameters (`rooms` is a JSON array)."""
        if not check_in:
            raise SearchValidationError("checkIn is a required parameter")
        if not check_out:
            raise SearchValidationError("checkOut is a required parameter")
        if isinstance(rooms, str):
            try:
                rooms = json.loads(rooms)
            except json.JSONDecodeError as e:
                raise SearchValidationError(f"rooms must be a JSON array: {e}") from e
        if not rooms or not isinstance(rooms, list):
            raise SearchValidationError("rooms is a required parameter and must be a non-empty array")
        try:
            return cls(check_in=check_in, check_out=check_out, rooms=rooms)
        except PydanticValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'criteria'}: {err['msg']}" for err in e.errors()
            )
            raise SearchValidationError(details) from e


class Page(BaseModel):
    hotels: list[Hotel]
    page: int
    next_page: int | None = None
    has_next_page: bool = False
    total: int = 0


class SearchOutcome(BaseModel):
    hotels: list[Hotel]
    search_id: str | int | None = None
    count_results: int = 0
    nights: int = 1
    requested_hotels: int = 0
    searched_hotels: int = 0
    limit_applied: bool = False
    session_key: str | None = None
