"""TTL-based in-memory caches using cachetools."""

from cachetools import TTLCache

from hotel_api.config import (
    CACHE_TTL_REFERENCE,
    CACHE_TTL_HOTELS_LIST,
    CACHE_TTL_HOTEL_DETAIL,
    CACHE_TTL_HOTELS_ENHANCED,
    CACHE_TTL_SEARCH,
    CACHE_MAX_REFERENCE,
    CACHE_MAX_HOTELS_LIST,
    CACHE_MAX_HOTEL_DETAIL,
    CACHE_MAX_HOTELS_ENHANCED,
    CACHE_MAX_SEARCH,
)

reference_cache = TTLCache(maxsize=CACHE_MAX_REFERENCE, ttl=CACHE_TTL_REFERENCE)
hotels_list_cache = TTLCache(maxsize=CACHE_MAX_HOTELS_LIST, ttl=CACHE_TTL_HOTELS_LIST)
hotel_detail_cache = TTLCache(maxsize=CACHE_MAX_HOTEL_DETAIL, ttl=CACHE_TTL_HOTEL_DETAIL)
hotels_enhanced_cache = TTLCache(maxsize=CACHE_MAX_HOTELS_ENHANCED, ttl=CACHE_TTL_HOTELS_ENHANCED)
search_cache = TTLCache(maxsize=CACHE_MAX_SEARCH, ttl=CACHE_TTL_SEARCH)

_ALL_CACHES = {
    "reference": reference_cache,
    "hotels_list": hotels_list_cache,
    "hotel_detail": hotel_detail_cache,
    "hotels_enhanced": hotels_enhanced_cache,
    "search": search_cache,
}


def hotels_list_key(city_id) -> str:
    return f"hotels_city_{city_id}" if city_id else "hotels_all"


def get_reference(key: str):
    return reference_cache.get(key)


def set_reference(key: str, value):
    reference_cache[key] = value


def get_hotels_list(key: str):
    return hotels_list_cache.get(key)


def set_hotels_list(key: str, value):
    hotels_list_cache[key] = value


def get_hotel_detail(hotel_id):
    return hotel_detail_cache.get(hotel_id)


def set_hotel_detail(hotel_id, value):
    hotel_detail_cache[hotel_id] = value


def get_hotels_enhanced(key: str):
    return hotels_enhanced_cache.get(key)


def set_hotels_enhanced(key: str, value):
    hotels_enhanced_cache[key] = value


def get_search(key: str):
    return search_cache.get(key)


def set_search(key: str, value):
    search_cache[key] = value


def clear_all():
    for cache in _ALL_CACHES.values():
        cache.clear()


def cache_stats() -> dict:
    return {
        name: {"size": len(cache), "maxsize": cache.maxsize, "ttl": cache.ttl}
        for name, cache in _ALL_CACHES.items()
    }
