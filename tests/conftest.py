import json

import httpx
import pytest

from hotel_api.cache import memory_cache
from hotel_api.clients.ipro_client import IproBookingClient


def hotel_record(hotel_id: int, name: str | None = None, star: int = 3, city_id: int = 10, **extra) -> dict:
    """List-form hotel as returned by /ListHotel."""
    record = {
        "Id": hotel_id,
        "Name": name or f"Hotel {hotel_id:02d}",
        "Category": {"Id": star, "Title": f"{star} étoiles", "Star": star},
        "City": {"Id": city_id, "Name": "Hammamet", "Country": {"Id": 1, "Name": "Tunisie"}},
        "ShortDescription": f"Short description {hotel_id}",
        "Adress": f"{hotel_id} Avenue de la Plage",
        "Localization": {"Latitude": "36.4", "Longitude": "10.6"},
        "Facilities": ["Wifi", "Piscine"],
        "Image": f"https://img.example/{hotel_id}.jpg",
        "Theme": ["Plage", "Famille"],
    }
    record.update(extra)
    return record


def detail_record(hotel_id: int, star: int = 3, **extra) -> dict:
    """Detail-form hotel as returned by /HotelDetail."""
    record = {
        "Id": hotel_id,
        "Name": f"Hotel {hotel_id:02d}",
        "Category": {"Id": star, "Title": f"{star} stars", "Star": star},
        "City": {"Id": 10, "Name": "Hammamet", "Country": "Tunisie"},
        "Email": f"contact{hotel_id}@hotel.example",
        "Phone": "+216 72 000 000",
        "Vues": ["Mer"],
        "Type": "Hotel",
        "Album": [f"https://img.example/{hotel_id}-1.jpg", f"https://img.example/{hotel_id}-2.jpg"],
        "Tag": ["All inclusive"],
        "Boarding": [{"Id": 1, "Name": "Demi pension"}],
        "Description": f"Long description {hotel_id}",
    }
    record.update(extra)
    return record


def search_result(hotel_id: int, prices=("100", "50"), currency: str = "TND", **extra) -> dict:
    """One /HotelSearch entry with prices spread over boardings/pax/rooms."""
    result = {
        "Hotel": {"Id": hotel_id, "Name": f"Stub {hotel_id}", "Category": {"Star": 1}},
        "Price": {
            "Boarding": [
                {"Id": 1, "Pax": [{"Rooms": [{"Price": p} for p in prices]}]},
            ]
        },
        "Currency": currency,
        "Token": f"tok-{hotel_id}",
        "Recommended": 0,
        "FreeChild": 0,
        "Source": "ipro",
    }
    result.update(extra)
    return result


class FakeInventory:
    """Stands in for the remote inventory service."""

    def __init__(self):
        self.hotels = []
        self.details = {}
        self.search_results = []
        self.search_envelope = {}
        self.fail_detail = set()
        self.status = {}
        self.calls = []
        self.lists = {
            "ListCountry": [{"Id": 1, "Name": "Tunisie"}],
            "ListCity": [{"Id": 10, "Name": "Hammamet"}],
            "ListCategorie": [{"Id": 3, "Title": "3 étoiles", "Star": 3}],
            "ListTag": [{"Id": 1, "Title": "Plage"}],
            "ListBoarding": [{"Id": 1, "Name": "Demi pension"}],
            "ListCurrency": [{"Id": 1, "Code": "TND"}],
        }

    def endpoints(self) -> list[str]:
        return [endpoint for endpoint, _ in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        self.calls.append((endpoint, body))

        if endpoint in self.status:
            return httpx.Response(self.status[endpoint], json={"Message": "forced"})

        if endpoint == "ListHotel":
            city = body.get("City")
            hotels = [h for h in self.hotels if city is None or h["City"]["Id"] == city]
            return httpx.Response(200, json={"ListHotel": hotels})

        if endpoint == "HotelDetail":
            hotel_id = body["Hotel"]
            if hotel_id in self.fail_detail:
                return httpx.Response(500, json={"Message": "detail failed"})
            return httpx.Response(200, json={
                "HotelDetail": self.details.get(hotel_id),
                "ErrorMessage": [],
                "Timing": {"Total": 12},
            })

        if endpoint == "HotelSearch":
            ids = body["SearchDetails"]["BookingDetails"]["Hotels"]
            results = [r for r in self.search_results if r["Hotel"]["Id"] in ids]
            envelope = {
                "HotelSearch": results,
                "CountResults": len(results),
                "SearchId": "S-42",
                "Timing": {"Total": 250},
            }
            envelope.update(self.search_envelope)
            return httpx.Response(200, json=envelope)

        if endpoint == "ListCurrency":
            return httpx.Response(200, json={"ListCurrency": self.lists["ListCurrency"], "CountResults": 1})

        return httpx.Response(200, json={endpoint: self.lists.get(endpoint, [])})


@pytest.fixture(autouse=True)
def clear_caches():
    memory_cache.clear_all()
    yield
    memory_cache.clear_all()


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def client(inventory):
    return IproBookingClient(
        login="agency",
        password="secret",
        transport=httpx.MockTransport(inventory.handler),
    )


@pytest.fixture
def create_city(inventory):
    """Factory fixture: populate the fake inventory with a city's hotels."""

    def _factory(count: int, city_id: int = 10, star_of=lambda i: (i % 5) + 1):
        inventory.hotels = [hotel_record(i, star=star_of(i), city_id=city_id) for i in range(1, count + 1)]
        inventory.details = {i: detail_record(i, star=star_of(i)) for i in range(1, count + 1)}
        return inventory.hotels

    return _factory
