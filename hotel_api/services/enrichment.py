"""Hotel list enrichment: list once, then fetch details in paced batches.

Detail fetches are bounded to `batch_size` at a time with a short pause
between batches so the inventory service is never flooded. A hotel whose
detail fetch fails keeps its list fields and is marked DEGRADED.
"""

from hotel_api.cache.memory_cache import (
    get_hotel_detail,
    get_hotels_enhanced,
    get_hotels_list,
    hotels_list_key,
    set_hotel_detail,
    set_hotels_enhanced,
    set_hotels_list,
)
from hotel_api.clients.base import logger
from hotel_api.config import BATCH_DELAY, BATCH_SIZE
from hotel_api.models.hotels import Hotel, HotelCategory, HotelCity, Provenance
from hotel_api.utils.batching import batch_map


def _prefer(*values):
    """First value that is neither None nor an empty string."""
    for v in values:
        if v is not None and v != "":
            return v
    return None


def _as_hotel(record) -> Hotel:
    return record if isinstance(record, Hotel) else Hotel.model_validate(record)


def merge_hotel_data(listed, detail) -> Hotel:
    """Merge a list-form record with its detail-form record.

    Id and Name come from the list record. Category and City prefer the
    detail values. Fields only the list endpoint returns fall back to
    detail; detail-only fields come from detail. Returns a new Hotel.
    """
    listed = _as_hotel(listed)
    if detail is None:
        return listed.model_copy(update={"provenance": Provenance.LIST_ONLY})
    detail = _as_hotel(detail)

    lc = listed.Category or HotelCategory()
    dc = detail.Category or HotelCategory()
    lcity = listed.City or HotelCity()
    dcity = detail.City or HotelCity()

    return Hotel(
        Id=listed.Id,
        Name=_prefer(listed.Name, detail.Name),
        Category=HotelCategory(
            Id=_prefer(lc.Id, dc.Id),
            Title=_prefer(dc.Title, lc.Title),
            Star=_prefer(dc.Star, lc.Star),
        ),
        City=HotelCity(
            Id=_prefer(lcity.Id, dcity.Id),
            Name=_prefer(dcity.Name, lcity.Name),
            Country=_prefer(dcity.Country, lcity.Country),
        ),
        ShortDescription=_prefer(listed.ShortDescription, detail.ShortDescription),
        Description=_prefer(detail.Description, listed.ShortDescription),
        Adress=_prefer(listed.Adress, detail.Adress),
        Localization=_prefer(listed.Localization, detail.Localization),
        Facilities=listed.Facilities or detail.Facilities,
        Image=_prefer(listed.Image, detail.Image),
        Theme=detail.Theme or listed.Theme,
        Email=detail.Email,
        Phone=detail.Phone,
        Vues=detail.Vues,
        Type=detail.Type,
        Album=detail.Album,
        Tag=detail.Tag,
        Boarding=detail.Boarding,
        provenance=Provenance.ENHANCED,
    )


async def list_hotels(client, city_id=None) -> list[dict]:
    """Plain hotel list, cached per city."""
    key = hotels_list_key(city_id)
    cached = get_hotels_list(key)
    if cached is not None:
        return cached
    hotels = await client.list_hotel(city_id)
    set_hotels_list(key, hotels)
    return hotels


async def fetch_hotel_detail(client, hotel_id) -> dict:
    """Detail record for one hotel, cached for the detail staleness window."""
    cached = get_hotel_detail(hotel_id)
    if cached is not None:
        return cached
    detail = await client.get_hotel(hotel_id)
    set_hotel_detail(hotel_id, detail)
    return detail


async def list_hotel_enhanced(
    client,
    city_id=None,
    batch_size: int = BATCH_SIZE,
    delay: float = BATCH_DELAY,
    on_progress=None,
    on_batch_complete=None,
) -> list[Hotel]:
    cache_key = f"{hotels_list_key(city_id)}:enhanced"
    cached = get_hotels_enhanced(cache_key)
    if cached is not None:
        return cached

    listed = await list_hotels(client, city_id)
    if not listed:
        logger.info("No hotels found for %s", cache_key)
        return []

    logger.info("Found %d hotels. Starting batch processing...", len(listed))
    done = 0

    async def enhance(record) -> Hotel:
        hotel = _as_hotel(record)
        try:
            detail = await fetch_hotel_detail(client, hotel.Id)
            return merge_hotel_data(hotel, detail)
        except Exception as e:
            logger.warning("Error fetching details for hotel %s (%s): %s", hotel.Id, hotel.Name, e)
            return hotel.model_copy(update={"provenance": Provenance.DEGRADED, "error": str(e)})

    def batch_done(index, total, results):
        nonlocal done
        done += len(results)
        logger.info("Batch %d/%d completed (%d/%d processed)", index, total, done, len(listed))
        if on_progress is not None:
            on_progress(done, len(listed))
        if on_batch_complete is not None:
            on_batch_complete(index, total, results)

    results = await batch_map(listed, enhance, batch_size, delay, on_batch=batch_done)

    hotels = []
    for record, result in zip(listed, results):
        # a list record that does not validate cannot be shown at all
        if isinstance(result, BaseException):
            logger.warning("Skipping unreadable hotel record %s: %s", (record or {}).get("Id"), result)
            continue
        hotels.append(result)

    # only cache fully enhanced lists so degraded entries get another chance
    if len(hotels) == len(listed) and all(h.provenance is Provenance.ENHANCED for h in hotels):
        set_hotels_enhanced(cache_key, hotels)
    return hotels


async def get_hotels_batch(
    client,
    hotel_ids: list,
    batch_size: int = BATCH_SIZE,
    delay: float = BATCH_DELAY,
) -> dict:
    """Map of hotel id -> detail record for the fetches that succeeded."""
    if not hotel_ids:
        return {}

    async def fetch(hotel_id):
        return await fetch_hotel_detail(client, hotel_id)

    results = await batch_map(hotel_ids, fetch, batch_size, delay)
    details = {}
    for hotel_id, result in zip(hotel_ids, results):
        if isinstance(result, BaseException):
            logger.warning("Failed to fetch hotel %s: %s", hotel_id, result)
        elif result:
            details[hotel_id] = result
    logger.info("Fetched %d/%d hotels successfully", len(details), len(hotel_ids))
    return details
