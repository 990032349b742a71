"""Availability search, price aggregation and merge with hotel details."""

import json
import math

from pydantic import BaseModel, Field

from hotel_api.cache.memory_cache import get_search, set_search
from hotel_api.cache.session_store import payload_size, should_offload, stash_search
from hotel_api.clients.base import logger, retry_with_backoff
from hotel_api.config import OFFLOAD_THRESHOLD_MERGED, OFFLOAD_THRESHOLD_RAW
from hotel_api.exceptions import HotelApiError, SearchFailedError, SearchValidationError
from hotel_api.models.hotels import Hotel, Pricing, Provenance, SearchCriteria, SearchOutcome
from hotel_api.services.enrichment import fetch_hotel_detail, get_hotels_batch, list_hotels


def _as_price(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(str(value).strip())
    except ValueError:
        return None
    return price if math.isfinite(price) else None


def compute_price_range(boarding) -> tuple[float | None, float | None]:
    """(min, max) over every Boarding[].Pax[].Rooms[].Price.

    Non-numeric prices are skipped. Returns (None, None) when nothing
    numeric was found; 0 is a valid price.
    """
    prices = []
    for board in boarding or []:
        for pax in (board or {}).get("Pax") or []:
            for room in (pax or {}).get("Rooms") or []:
                price = _as_price((room or {}).get("Price"))
                if price is not None:
                    prices.append(price)
    if not prices:
        return None, None
    return min(prices), max(prices)


def build_pricing(search_result: dict) -> Pricing:
    min_price, max_price = compute_price_range((search_result.get("Price") or {}).get("Boarding"))
    return Pricing(
        min_price=min_price,
        max_price=max_price,
        currency=search_result.get("Currency"),
        available=min_price is not None,
        token=search_result.get("Token"),
    )


def _prefer(*values):
    for v in values:
        if v is not None and v != "" and v != []:
            return v
    return None


def merge_search_result(search_result: dict, detail=None) -> Hotel:
    """Combine one search result with the previously fetched detail record.

    Detail fields win over the thin hotel stub in the search result; Id,
    Token, pricing and search metadata always come from the search result.
    """
    stub = Hotel.model_validate(search_result.get("Hotel") or {})
    full = None
    if detail is not None:
        full = detail if isinstance(detail, Hotel) else Hotel.model_validate(detail)
    src = full or stub

    return Hotel(
        Id=stub.Id,
        Name=_prefer(src.Name, stub.Name),
        Category=src.Category or stub.Category,
        City=src.City or stub.City,
        Adress=_prefer(src.Adress, stub.Adress),
        Localization=_prefer(src.Localization, stub.Localization),
        ShortDescription=_prefer(src.ShortDescription, stub.ShortDescription),
        Description=_prefer(src.Description, src.ShortDescription, stub.ShortDescription),
        Image=_prefer(src.Image, stub.Image),
        Album=src.Album if full else [],
        Facilities=src.Facilities if full else [],
        Theme=_prefer(src.Theme, stub.Theme) or [],
        Tag=src.Tag if full else [],
        Email=src.Email if full else None,
        Phone=src.Phone if full else None,
        Vues=src.Vues if full else [],
        Type=src.Type if full else None,
        Boarding=src.Boarding if full else [],
        Token=search_result.get("Token"),
        Recommended=search_result.get("Recommended"),
        FreeChild=search_result.get("FreeChild"),
        Source=search_result.get("Source"),
        pricing=build_pricing(search_result),
        provenance=Provenance.MERGED if full else Provenance.SEARCH_ONLY,
    )


def merge_results(hotel_search: list, details_map: dict, listed=()) -> list[Hotel]:
    """Merged search results in server order, then listed hotels the search
    did not return (no pricing) so they are still displayed."""
    merged = []
    seen = set()
    for result in hotel_search or []:
        stub = (result or {}).get("Hotel") or {}
        if stub.get("Id") is None:
            logger.warning("Skipping search result without hotel Id")
            continue
        hotel = merge_search_result(result, details_map.get(stub["Id"]))
        merged.append(hotel)
        seen.add(hotel.Id)

    for record in listed:
        hotel = record if isinstance(record, Hotel) else Hotel.model_validate(record)
        if hotel.Id in seen:
            continue
        seen.add(hotel.Id)
        merged.append(hotel.model_copy(update={"provenance": Provenance.LIST_ONLY, "pricing": None}))
    return merged


# ── Filtering & sorting ──

class HotelFilters(BaseModel):
    categories: list[int] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    price_min: float | None = None
    price_max: float | None = None


def _theme_text(theme) -> str:
    if isinstance(theme, dict):
        return str(theme.get("Title") or theme.get("Name") or "")
    return str(theme)


def apply_filters(hotels, filters: HotelFilters | None) -> list[Hotel]:
    hotels = list(hotels)
    if filters is None:
        return hotels
    if filters.categories:
        hotels = [h for h in hotels if h.Category and h.Category.Star in filters.categories]
    if filters.services:
        wanted = [s.lower() for s in filters.services]
        hotels = [
            h for h in hotels
            if any(w in _theme_text(t).lower() for t in h.Theme for w in wanted)
        ]
    if filters.price_min is not None or filters.price_max is not None:
        lo = filters.price_min if filters.price_min is not None else -math.inf
        hi = filters.price_max if filters.price_max is not None else math.inf
        hotels = [h for h in hotels if h.min_price is not None and lo <= h.min_price <= hi]
    return hotels


def _is_priced(hotel: Hotel) -> bool:
    return hotel.pricing is not None and hotel.pricing.min_price is not None


def _name(hotel: Hotel) -> str:
    return (hotel.Name or "").casefold()


SORT_KEYS = {
    "recommended": lambda h: (not _is_priced(h), -h.star, _name(h)),
    "price-asc": lambda h: (not _is_priced(h), h.min_price if _is_priced(h) else 0.0, _name(h)),
    "price-desc": lambda h: (not _is_priced(h), -h.min_price if _is_priced(h) else 0.0, _name(h)),
    "rating": lambda h: (-h.star, _name(h)),
    "name-asc": _name,
}


def sort_hotels(hotels, sort_by: str = "recommended") -> list[Hotel]:
    key = SORT_KEYS.get(sort_by, SORT_KEYS["recommended"])
    return sorted(hotels, key=key)


# ── Search orchestration ──

def _error_code(error_message):
    """Return the first {Code, Description} entry of an ErrorMessage field."""
    if isinstance(error_message, dict) and error_message.get("Code"):
        return error_message
    if isinstance(error_message, list):
        for entry in error_message:
            if isinstance(entry, dict) and entry.get("Code"):
                return entry
    return None


async def _resolve_hotels(client, city_id=None, hotel_id=None, hotel_ids=None) -> list:
    """Hotel records whose ids will be priced."""
    if hotel_ids:
        details = await get_hotels_batch(client, list(hotel_ids))
        return [details.get(i) or {"Id": i} for i in hotel_ids]

    if hotel_id:
        try:
            return [await fetch_hotel_detail(client, hotel_id)]
        except HotelApiError as e:
            logger.warning("Failed to fetch hotel %s directly (%s), trying the city list", hotel_id, e)
        if city_id:
            for record in await list_hotels(client, city_id):
                if record.get("Id") == hotel_id:
                    return [record]
        return [{"Id": hotel_id}]

    if city_id:
        return await list_hotels(client, city_id)

    raise SearchValidationError("cityId, hotelId or hotelIds is required")


async def run_search(
    client,
    criteria: SearchCriteria,
    city_id=None,
    hotel_id=None,
    hotel_ids=None,
    filters: dict | None = None,
    store=None,
) -> SearchOutcome:
    listed = await _resolve_hotels(client, city_id=city_id, hotel_id=hotel_id, hotel_ids=hotel_ids)
    ids = [r["Id"] for r in listed if r and r.get("Id") is not None]
    if not ids:
        logger.info("No hotels to search")
        return SearchOutcome(hotels=[], nights=criteria.nights)

    cache_key = "|".join([
        ",".join(str(i) for i in ids),
        criteria.cache_key(),
        json.dumps(filters or {}, sort_keys=True),
    ])
    raw = get_search(cache_key)
    if raw is None:
        raw = await retry_with_backoff(
            lambda: client.search_hotel(
                criteria.check_in, criteria.check_out, ids, criteria.to_api_rooms(), filters
            ),
            description=f"search {criteria.check_in}-{criteria.check_out}",
            max_attempts=2,
        )
        error = _error_code(raw.get("errorMessage"))
        if error:
            raise SearchFailedError(error.get("Description") or "Search failed", code=error.get("Code"))
        set_search(cache_key, raw)

    session_key = None
    if store is not None and should_offload(payload_size(raw), OFFLOAD_THRESHOLD_RAW):
        session_key = stash_search(store, raw)
        logger.info("Raw search results moved to session storage (%s)", session_key)

    details_map = {r["Id"]: r for r in listed if r and r.get("Id") is not None}
    hotels = merge_results(raw.get("hotelSearch"), details_map, listed=listed)

    outcome = SearchOutcome(
        hotels=hotels,
        search_id=raw.get("searchId"),
        count_results=raw.get("countResults") or 0,
        nights=criteria.nights,
        requested_hotels=raw.get("requestedHotels", len(ids)),
        searched_hotels=raw.get("searchedHotels", len(ids)),
        limit_applied=raw.get("limitApplied", False),
    )

    if store is not None:
        merged_payload = outcome.model_dump(mode="json")
        if should_offload(payload_size(merged_payload), OFFLOAD_THRESHOLD_MERGED):
            session_key = stash_search(store, merged_payload)
            logger.info("Merged search results moved to session storage (%s)", session_key)

    return outcome.model_copy(update={"session_key": session_key})
