"""Tests for the radio-browser directory client."""

import httpx
import pytest

from omniradio.directory import Category, StationDirectory, filter_by_name
from omniradio.errors import DirectoryError

BASE_URL = "https://radio.test/json"


def make_directory(handler) -> StationDirectory:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StationDirectory({"base_url": BASE_URL}, client=client)


def station_record(uuid: str, name: str, **extra) -> dict:
    record = {
        "stationuuid": uuid,
        "name": name,
        "url": f"http://streams.test/{uuid}",
        "url_resolved": "",
        "favicon": "",
        "country": "Finland",
        "language": "finnish",
        "tags": "",
    }
    record.update(extra)
    return record


class TestCategories:
    @pytest.mark.asyncio
    async def test_countries_sorted_by_station_count(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/json/countries"
            return httpx.Response(200, json=[
                {"name": "Finland", "iso_3166_1": "FI", "stationcount": 120},
                {"name": "", "stationcount": 999},
                {"name": "Germany", "iso_3166_1": "DE", "stationcount": 4000},
            ])

        async with make_directory(handler) as directory:
            countries = await directory.countries()

        assert countries == [
            Category(name="Germany", station_count=4000, code="DE"),
            Category(name="Finland", station_count=120, code="FI"),
        ]

    @pytest.mark.asyncio
    async def test_genres_come_from_tags(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[{"name": "jazz", "stationcount": 3}])

        async with make_directory(handler) as directory:
            genres = await directory.genres()

        assert paths == ["/json/tags"]
        assert genres[0].name == "jazz"
        assert genres[0].code is None

    @pytest.mark.asyncio
    async def test_malformed_station_count_reads_as_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[
                {"name": "Finnish", "stationcount": "many"},
                {"name": "English", "stationcount": "12"},
            ])

        async with make_directory(handler) as directory:
            languages = await directory.languages()

        assert languages == [Category(name="English", station_count=12), Category(name="Finnish")]


class TestStations:
    @pytest.mark.asyncio
    async def test_stations_by_country_quotes_name(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/json/stations/bycountry/United Kingdom"
            return httpx.Response(200, json=[station_record("u1", "BBC Radio 1")])

        async with make_directory(handler) as directory:
            stations = await directory.stations_by_country("United Kingdom")

        assert [s.id for s in stations] == ["u1"]

    @pytest.mark.asyncio
    async def test_unplayable_records_are_skipped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[
                station_record("ok", "Playable"),
                station_record("nourl", "No URL", url=""),
                station_record("", "No id"),
            ])

        async with make_directory(handler) as directory:
            stations = await directory.stations_by_genre("rock")

        assert [s.name for s in stations] == ["Playable"]

    @pytest.mark.asyncio
    async def test_malformed_numbers_read_as_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[
                station_record("a", "Odd", bitrate="128kbps", votes=None),
                station_record("b", "Fine", bitrate="64", votes=7),
            ])

        async with make_directory(handler) as directory:
            stations = await directory.stations_by_genre("rock")

        assert [(s.bitrate, s.votes) for s in stations] == [(0, 0), (64, 7)]

    @pytest.mark.asyncio
    async def test_top_voted_and_language_paths(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[])

        async with make_directory(handler) as directory:
            await directory.top_voted(100)
            await directory.stations_by_language("finnish")

        assert paths == ["/json/stations/topvote/100", "/json/stations/bylanguage/finnish"]

    @pytest.mark.asyncio
    async def test_blank_search_does_not_hit_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_directory(handler) as directory:
            assert await directory.search("   ") == []

    @pytest.mark.asyncio
    async def test_search_by_name(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/json/stations/byname/yle"
            return httpx.Response(200, json=[station_record("y1", "YLE Radio Suomi")])

        async with make_directory(handler) as directory:
            stations = await directory.search(" yle ")

        assert stations[0].name == "YLE Radio Suomi"


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with make_directory(handler) as directory:
            with pytest.raises(DirectoryError, match="503"):
                await directory.countries()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_directory(handler) as directory:
            with pytest.raises(DirectoryError):
                await directory.top_voted()

    @pytest.mark.asyncio
    async def test_non_list_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "nope"})

        async with make_directory(handler) as directory:
            with pytest.raises(DirectoryError, match="Expected a list"):
                await directory.languages()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        async with make_directory(handler) as directory:
            with pytest.raises(DirectoryError, match="Invalid JSON"):
                await directory.languages()


def test_filter_by_name():
    items = [Category("Finland"), Category("France"), Category("Germany")]
    assert filter_by_name(items, "FR") == [Category("France")]
    assert filter_by_name(items, "an") == [Category("Finland"), Category("France"), Category("Germany")]
    assert filter_by_name(items, "") == items
