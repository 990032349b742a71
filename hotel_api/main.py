"""FastAPI hotel search service backed by the iPro Booking inventory API."""

import asyncio
import logging
import os
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from hotel_api.cache.memory_cache import cache_stats, get_reference, set_reference
from hotel_api.cache.session_store import FavoriteHotels, MemoryStore, load_search
from hotel_api.clients.base import retry_with_backoff
from hotel_api.clients.ipro_client import IproBookingClient
from hotel_api.config import HOST, PORT
from hotel_api.exceptions import ApiRequestError, HotelNotFoundError, ValidationError
from hotel_api.models.hotels import Hotel, SearchCriteria
from hotel_api.services.enrichment import fetch_hotel_detail, list_hotel_enhanced, list_hotels
from hotel_api.services.pager import Pager, page_size_for_width
from hotel_api.services.search import HotelFilters, apply_filters, run_search, sort_hotels

logger = logging.getLogger("api")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s [%(name)s] %(levelname)s: %(message)s'))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

# Endpoint health tracking
_endpoint_stats = {
    "reference": {"success": 0, "failure": 0, "empty": 0, "last_success": 0},
    "hotels_list": {"success": 0, "failure": 0, "empty": 0, "last_success": 0},
    "hotel_detail": {"success": 0, "failure": 0, "empty": 0, "last_success": 0},
    "hotels_search": {"success": 0, "failure": 0, "empty": 0, "last_success": 0},
}

# Active request counter for graceful shutdown
_active_requests = 0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open/close the shared inventory client with the app."""
    client = getattr(app.state, "client", None) or IproBookingClient()
    app.state.client = client
    logger.info("Inventory client ready (%s)", client.base_url)
    yield
    logger.info("Shutting down: draining active requests...")
    for _ in range(20):  # 20 * 0.5s = 10s max wait
        if _active_requests == 0:
            break
        await asyncio.sleep(0.5)
    if _active_requests > 0:
        logger.warning("Shutting down with %d active requests still in progress", _active_requests)
    await client.aclose()
    app.state.client = None


app = FastAPI(title="Hotel Search API", lifespan=lifespan)
app.state.store = MemoryStore()

ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


def _record(name: str, ok: bool):
    stats = _endpoint_stats[name]
    if ok:
        stats["success"] += 1
        stats["last_success"] = _time.time()
    else:
        stats["empty"] += 1


def _failure(name: str, request_id: str, e: Exception, **empty) -> dict:
    _endpoint_stats[name]["failure"] += 1
    logger.error("[%s] %s error: %s", request_id, name, e)
    retryable = e.retryable if isinstance(e, ApiRequestError) else False
    return {**empty, "error": f"{name} failed: {e}", "retryable": retryable}


def _page_response(hotels: list[Hotel], page: int, page_size: int | None, width: int | None) -> dict:
    pager = Pager(hotels, page_size or page_size_for_width(width))
    result = pager.page(page).model_dump(mode="json")
    result["pageCount"] = pager.page_count
    result["pageSize"] = pager.page_size
    return result


# ── Health check ──
@app.get("/health")
async def health():
    now = _time.time()
    endpoint_health = {}
    for name, stats in _endpoint_stats.items():
        total = stats["success"] + stats["failure"] + stats["empty"]
        success_rate = round(stats["success"] / total * 100, 1) if total > 0 else None
        last_success_ago = round(now - stats["last_success"]) if stats["last_success"] > 0 else None
        endpoint_health[name] = {
            "total_requests": total,
            "success_rate": success_rate,
            "last_success_seconds_ago": last_success_ago,
        }
    return {
        "status": "ok",
        "client_ready": getattr(app.state, "client", None) is not None,
        "endpoints": endpoint_health,
        "caches": cache_stats(),
    }


# ── Hotel list (plain) ──
@app.get("/api/hotels")
async def api_hotels(request: Request, cityId: int | None = Query(None)):
    global _active_requests
    request_id = request.headers.get("x-request-id", "no-id")
    _active_requests += 1
    try:
        logger.info("[%s] hotels cityId=%s", request_id, cityId)
        hotels = await retry_with_backoff(
            lambda: list_hotels(request.app.state.client, cityId), description="hotels", max_attempts=3
        )
        _record("hotels_list", bool(hotels))
        return {"hotels": hotels}
    except Exception as e:
        return _failure("hotels_list", request_id, e, hotels=[])
    finally:
        _active_requests -= 1


# ── Enhanced hotel list for one city ──
@app.get("/api/hotels/city/{city_id}")
async def api_hotels_by_city(
    request: Request,
    city_id: int,
    page: int = Query(0, ge=0),
    pageSize: int | None = Query(None, ge=1, le=50),
    width: int | None = Query(None, ge=0),
    sort: str = Query("recommended"),
    stars: list[int] = Query([]),
    services: list[str] = Query([]),
):
    global _active_requests
    request_id = request.headers.get("x-request-id", "no-id")
    _active_requests += 1
    try:
        logger.info("[%s] hotels/city %s page=%s", request_id, city_id, page)
        hotels = await retry_with_backoff(
            lambda: list_hotel_enhanced(request.app.state.client, city_id),
            description=f"hotels/city {city_id}",
            max_attempts=2,
        )
        _record("hotels_list", bool(hotels))
        hotels = sort_hotels(apply_filters(hotels, HotelFilters(categories=stars, services=services)), sort)
        return _page_response(hotels, page, pageSize, width)
    except Exception as e:
        return _failure("hotels_list", request_id, e, hotels=[], page=page, hasNextPage=False)
    finally:
        _active_requests -= 1


# ── Availability search with pricing ──
@app.get("/api/hotels/search")
async def api_hotels_search(
    request: Request,
    checkIn: str | None = Query(None, description="Check-in date YYYY-MM-DD"),
    checkOut: str | None = Query(None, description="Check-out date YYYY-MM-DD"),
    rooms: str | None = Query(None, description='JSON array, e.g. [{"adults":2,"children":[]}]'),
    hotelIds: str | None = Query(None, description="Comma-separated hotel IDs"),
    cityId: int | None = Query(None),
    hotelId: int | None = Query(None),
    page: int = Query(0, ge=0),
    pageSize: int | None = Query(None, ge=1, le=50),
    width: int | None = Query(None, ge=0),
    sort: str = Query("recommended"),
    stars: list[int] = Query([]),
    services: list[str] = Query([]),
    priceMin: float | None = Query(None),
    priceMax: float | None = Query(None),
):
    global _active_requests
    request_id = request.headers.get("x-request-id", "no-id")
    _active_requests += 1
    try:
        logger.info("[%s] hotels/search %s-%s", request_id, checkIn, checkOut)
        try:
            criteria = SearchCriteria.from_query(checkIn, checkOut, rooms)
            ids = [int(h) for h in hotelIds.split(",") if h.strip()] if hotelIds else None
        except ValueError as e:
            raise HTTPException(400, str(e))

        try:
            outcome = await run_search(
                request.app.state.client,
                criteria,
                city_id=cityId,
                hotel_id=hotelId,
                hotel_ids=ids,
                store=request.app.state.store,
            )
        except ValidationError as e:
            raise HTTPException(400, str(e))

        _record("hotels_search", bool(outcome.hotels))
        filters = HotelFilters(categories=stars, services=services, price_min=priceMin, price_max=priceMax)
        hotels = sort_hotels(apply_filters(outcome.hotels, filters), sort)
        result = _page_response(hotels, page, pageSize, width)
        result.update({
            "searchId": outcome.search_id,
            "countResults": outcome.count_results,
            "nights": outcome.nights,
            "guests": criteria.total_guests,
            "limitApplied": outcome.limit_applied,
            "sessionKey": outcome.session_key,
        })
        return result
    except HTTPException:
        raise
    except Exception as e:
        return _failure("hotels_search", request_id, e, hotels=[], page=page, hasNextPage=False)
    finally:
        _active_requests -= 1


# ── Hotel detail ──
@app.get("/api/hotels/{hotel_id}")
async def api_hotel_detail(request: Request, hotel_id: int):
    global _active_requests
    request_id = request.headers.get("x-request-id", "no-id")
    _active_requests += 1
    try:
        detail = await retry_with_backoff(
            lambda: fetch_hotel_detail(request.app.state.client, hotel_id),
            description=f"hotel {hotel_id}",
            max_attempts=2,
        )
        _record("hotel_detail", True)
        return {"hotel": detail}
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except HotelNotFoundError as e:
        _record("hotel_detail", False)
        raise HTTPException(404, str(e))
    except Exception as e:
        return _failure("hotel_detail", request_id, e, hotel=None)
    finally:
        _active_requests -= 1


# ── Offloaded search results ──
@app.get("/api/searches/current")
async def api_current_search(request: Request):
    result = load_search(request.app.state.store)
    if result is None:
        raise HTTPException(404, "No current search")
    return result


@app.get("/api/searches/{key}")
async def api_search_by_key(request: Request, key: str):
    result = load_search(request.app.state.store, key)
    if result is None:
        raise HTTPException(404, f"Search '{key}' not found")
    return result


# ── Favorites ──
@app.get("/api/favorites")
async def api_favorites(request: Request):
    return {"favorites": FavoriteHotels(request.app.state.store).ids()}


@app.post("/api/favorites/{hotel_id}")
async def api_add_favorite(request: Request, hotel_id: int):
    return {"favorites": FavoriteHotels(request.app.state.store).add(hotel_id)}


@app.delete("/api/favorites/{hotel_id}")
async def api_remove_favorite(request: Request, hotel_id: int):
    return {"favorites": FavoriteHotels(request.app.state.store).remove(hotel_id)}


# ── Reference lists ──
_REFERENCE_ENDPOINTS = {
    "countries": "list_country",
    "cities": "list_city",
    "categories": "list_categorie",
    "tags": "list_tag",
    "boardings": "list_boarding",
    "currencies": "list_currency",
}


@app.get("/api/{kind}", include_in_schema=False)
async def api_reference(request: Request, kind: str):
    if kind not in _REFERENCE_ENDPOINTS:
        raise HTTPException(404, f"Unknown list '{kind}'")
    request_id = request.headers.get("x-request-id", "no-id")
    cached = get_reference(kind)
    if cached is not None:
        return {kind: cached}
    method = getattr(request.app.state.client, _REFERENCE_ENDPOINTS[kind])
    try:
        result = await retry_with_backoff(method, description=kind)
    except Exception as e:
        return _failure("reference", request_id, e, **{kind: []})
    _record("reference", bool(result))
    set_reference(kind, result)
    return {kind: result}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hotel_api.main:app", host=HOST, port=PORT, reload=False)
