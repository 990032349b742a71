import pytest

from hotel_api.models.hotels import Hotel
from hotel_api.services.pager import Pager, page_size_for_width


def make_hotels(count):
    return [Hotel(Id=i, Name=f"Hotel {i:02d}") for i in range(1, count + 1)]


@pytest.mark.parametrize(
    "length, size, expected_pages",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (20, 10, 2), (23, 6, 4), (5, 1, 5)],
)
def test_pages_cover_the_list_exactly_once(length, size, expected_pages):
    hotels = make_hotels(length)
    pager = Pager(hotels, size)

    assert pager.page_count == expected_pages
    collected = []
    for k in range(pager.page_count):
        page = pager.page(k)
        assert len(page.hotels) <= size
        assert page.has_next_page == (k < expected_pages - 1)
        collected.extend(page.hotels)
    assert collected == hotels


def test_page_is_pure():
    pager = Pager(make_hotels(25), 10)
    first = pager.page(0)
    pager.fetch_next_page()
    assert pager.page(0) == first
    assert first.next_page == 1
    assert first.total == 25


def test_last_page():
    page = Pager(make_hotels(25), 10).page(2)
    assert [h.Id for h in page.hotels] == [21, 22, 23, 24, 25]
    assert page.has_next_page is False
    assert page.next_page is None


def test_empty_list_first_page():
    page = Pager([], 10).page(0)
    assert page.hotels == []
    assert page.has_next_page is False


def test_page_beyond_end_is_empty():
    assert Pager(make_hotels(3), 10).page(4).hotels == []


def test_rejects_bad_arguments():
    with pytest.raises(ValueError):
        Pager(make_hotels(3), 0)
    with pytest.raises(ValueError):
        Pager(make_hotels(3), 10).page(-1)


def test_load_more_until_exhausted():
    pager = Pager(make_hotels(23), 10)
    assert len(pager.displayed) == 10
    assert pager.has_next_page

    assert pager.fetch_next_page().page == 1
    assert pager.fetch_next_page().page == 2
    assert pager.fetch_next_page() is None
    assert pager.loaded_pages == 3
    assert [h.Id for h in pager.displayed] == list(range(1, 24))
    assert pager.has_next_page is False


def test_sentinel_and_button_reach_the_same_state():
    hotels = make_hotels(30)
    by_button = Pager(hotels, 10)
    by_scroll = Pager(hotels, 10)

    by_button.fetch_next_page()
    assert by_scroll.on_sentinel(False) is None
    by_scroll.on_sentinel(True)

    assert by_button.displayed == by_scroll.displayed
    assert by_button.loaded_pages == by_scroll.loaded_pages == 2


def test_reset():
    pager = Pager(make_hotels(30), 10)
    pager.fetch_next_page()
    pager.reset()
    assert pager.loaded_pages == 1
    assert len(pager.displayed) == 10


def test_source_list_is_not_affected():
    hotels = make_hotels(12)
    pager = Pager(hotels, 5)
    hotels.clear()
    assert len(pager) == 12


@pytest.mark.parametrize("width, size", [(None, 10), (1280, 10), (768, 10), (767, 6), (375, 6)])
def test_page_size_for_width(width, size):
    assert page_size_for_width(width) == size
