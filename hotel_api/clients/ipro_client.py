"""Client for the iPro Booking hotel inventory API.

Every call is a POST of a JSON envelope carrying the credential pair plus
an endpoint-specific payload. The client validates what it can locally,
logs each request/response, and raises ApiRequestError on transport
failures. It never retries; callers decide that.
"""

import json
import time

import httpx

from hotel_api.clients.base import logger
from hotel_api.config import (
    IPRO_BASE_URL,
    IPRO_LOGIN,
    IPRO_PASSWORD,
    MAX_HOTELS_PER_SEARCH,
    TIMEOUT_DEFAULT,
    TIMEOUT_SEARCH,
)
from hotel_api.exceptions import (
    ApiRequestError,
    HotelIdRequiredError,
    HotelNotFoundError,
    SearchValidationError,
)
from hotel_api.models.hotels import DATE_RE

STATUS_MESSAGES = {
    401: "Unauthorized access - check credentials",
    404: "Resource not found",
    500: "Internal server error",
}


def describe_status(status: int | None) -> str:
    """Log-only classification of an HTTP failure."""
    if status is None:
        return "Network error: no response from server"
    return STATUS_MESSAGES.get(status, "API request failed")


def _room_payload(room) -> dict:
    if hasattr(room, "to_api"):
        room = room.to_api()
    adult = room.get("adult") or room.get("Adult") or room.get("adults") or 2
    payload = {"Adult": adult}
    for key in ("child", "Child", "children"):
        children = room.get(key)
        if isinstance(children, list) and children:
            payload["Child"] = list(children)
            break
    return payload


def build_search_body(check_in: str, check_out: str, hotels: list, rooms: list, filters: dict | None = None) -> dict:
    """Validate search parameters and build the `SearchDetails` payload.

    Raises SearchValidationError without touching the network.
    """
    if not check_in:
        raise SearchValidationError("checkIn is a required parameter")
    if not check_out:
        raise SearchValidationError("checkOut is a required parameter")
    if not isinstance(hotels, list) or not hotels:
        raise SearchValidationError("hotels is a required parameter and must be a non-empty array")
    if not isinstance(rooms, list) or not rooms:
        raise SearchValidationError("rooms is a required parameter and must be a non-empty array")
    for field, value in (("checkIn", check_in), ("checkOut", check_out)):
        if not isinstance(value, str) or not DATE_RE.match(value):
            raise SearchValidationError(f"{field} must be in YYYY-MM-DD format")

    filters = filters or {}
    return {
        "SearchDetails": {
            "BookingDetails": {
                "CheckIn": check_in,
                "CheckOut": check_out,
                "Hotels": hotels[:MAX_HOTELS_PER_SEARCH],
            },
            "Filters": {
                "Keywords": filters.get("keywords") or "",
                "Category": filters.get("category") or [],
                "OnlyAvailable": bool(filters.get("onlyAvailable", False)),
                "Tags": filters.get("tags") or [],
            },
            "Rooms": [_room_payload(r) for r in rooms],
        }
    }


class IproBookingClient:
    """Async client, one method per remote endpoint."""

    def __init__(
        self,
        base_url: str = IPRO_BASE_URL,
        login: str = IPRO_LOGIN,
        password: str = IPRO_PASSWORD,
        timeout: float = TIMEOUT_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._credentials = {"Login": login, "Password": password}
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    def _body(self, payload: dict | None = None) -> dict:
        return {"Credential": self._credentials, **(payload or {})}

    async def _post(self, endpoint: str, payload: dict | None = None, timeout: float | None = None) -> dict:
        body = self._body(payload)
        logger.info("API Request: POST %s", endpoint)
        started = time.monotonic()
        kwargs = {"timeout": timeout} if timeout is not None else {}
        try:
            resp = await self._http.post(f"/{endpoint}", json=body, **kwargs)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("%s: request timeout - server took too long to respond", endpoint)
            raise ApiRequestError(f"{endpoint} timed out", is_timeout=True) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            data = _safe_json(e.response)
            logger.error("API Error: %s %s (%s)", endpoint, status, describe_status(status))
            raise ApiRequestError(f"{endpoint} failed with HTTP {status}", status=status, data=data) from e
        except httpx.RequestError as e:
            logger.error("%s: %s (%s)", endpoint, describe_status(None), e)
            raise ApiRequestError(f"{endpoint} failed: {e}", is_network_error=True) from e

        elapsed = (time.monotonic() - started) * 1000
        logger.info("API Response: %s %s in %.0fms", endpoint, resp.status_code, elapsed)
        data = _safe_json(resp)
        if not isinstance(data, dict):
            raise ApiRequestError(f"{endpoint} returned a non-JSON body", status=resp.status_code)
        return data

    # ── Reference lists ──

    async def list_country(self) -> list:
        data = await self._post("ListCountry")
        return data.get("ListCountry") or []

    async def list_city(self) -> list:
        data = await self._post("ListCity")
        return data.get("ListCity") or []

    async def list_categorie(self) -> list:
        data = await self._post("ListCategorie")
        return data.get("ListCategorie") or []

    async def list_tag(self) -> list:
        data = await self._post("ListTag")
        return data.get("ListTag") or []

    async def list_boarding(self) -> list:
        data = await self._post("ListBoarding")
        return data.get("ListBoarding") or []

    async def list_currency(self) -> dict:
        data = await self._post("ListCurrency")
        return {
            "currencies": data.get("ListCurrency") or [],
            "countResults": data.get("CountResults") or 0,
            "errorMessage": data.get("ErrorMessage") or [],
            "timing": data.get("Timing"),
        }

    # ── Hotels ──

    async def list_hotel(self, city_id=None) -> list:
        payload = {"City": city_id} if city_id else None
        data = await self._post("ListHotel", payload)
        return data.get("ListHotel") or []

    async def get_hotel_detail(self, hotel_id) -> dict:
        if not hotel_id:
            raise HotelIdRequiredError("Hotel ID is required")
        data = await self._post("HotelDetail", {"Hotel": hotel_id})
        return {
            "hotelDetail": data.get("HotelDetail"),
            "errorMessage": data.get("ErrorMessage") or [],
            "timing": data.get("Timing"),
        }

    async def get_hotel(self, hotel_id) -> dict:
        """Detail record only; raises HotelNotFoundError when the service has none."""
        result = await self.get_hotel_detail(hotel_id)
        if not result["hotelDetail"]:
            raise HotelNotFoundError(hotel_id)
        return result["hotelDetail"]

    async def search_hotel(
        self,
        check_in: str,
        check_out: str,
        hotels: list,
        rooms: list,
        filters: dict | None = None,
    ) -> dict:
        body = build_search_body(check_in, check_out, hotels, rooms, filters)
        searched = body["SearchDetails"]["BookingDetails"]["Hotels"]
        if len(hotels) > MAX_HOTELS_PER_SEARCH:
            logger.warning(
                "Hotel search limited to %d hotels (requested: %d)", MAX_HOTELS_PER_SEARCH, len(hotels)
            )
        logger.info(
            "Searching %d hotels, request size %.2f KB",
            len(searched),
            len(json.dumps(body)) / 1024,
        )

        data = await self._post("HotelSearch", body, timeout=TIMEOUT_SEARCH)
        results = data.get("HotelSearch") or []
        logger.info("Search returned %d results", len(results))
        return {
            "hotelSearch": results,
            "countResults": data.get("CountResults") or 0,
            "errorMessage": data.get("ErrorMessage"),
            "searchId": data.get("SearchId"),
            "timing": data.get("Timing"),
            "limitApplied": len(hotels) > MAX_HOTELS_PER_SEARCH,
            "requestedHotels": len(hotels),
            "searchedHotels": len(searched),
        }


def _safe_json(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return None
