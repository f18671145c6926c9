"""Station directory client for the public radio-browser API."""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger

from omniradio.errors import DirectoryError
from omniradio.player import Station, to_count

DEFAULT_BASE_URL = "https://de1.api.radio-browser.info/json"
DEFAULT_USER_AGENT = "omniradio/0.1"


@dataclass(frozen=True)
class Category:
    """A country, language or genre (tag) with its station count."""
    name: str
    station_count: int = 0
    code: Optional[str] = None  # ISO 3166-1 for countries

    @classmethod
    def from_api(cls, item: dict) -> "Category":
        return cls(
            name=(item.get("name") or "").strip(),
            station_count=to_count(item.get("stationcount")),
            code=item.get("iso_3166_1") or None,
        )


T = TypeVar("T", Category, Station)


def filter_by_name(items: Iterable[T], query: str) -> List[T]:
    """Case-insensitive substring match on name. Empty query keeps everything."""
    query = (query or "").strip().lower()
    if not query:
        return list(items)
    return [item for item in items if query in item.name.lower()]


class StationDirectory:
    """Read-only async client for radio-browser.

    No pagination: every call returns the full list the server sends.
    """

    def __init__(self, config: Optional[dict] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or {}
        self.base_url = (self.config.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=float(self.config.get("timeout", 10)),
            headers={"User-Agent": self.config.get("user_agent") or DEFAULT_USER_AGENT},
            follow_redirects=True,
        )

    async def __aenter__(self) -> "StationDirectory":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get_list(self, path: str) -> List[Any]:
        url = f"{self.base_url}/{path}"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise DirectoryError(f"HTTP error! Status: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise DirectoryError(f"Error fetching data from {url}: {e}") from e
        except ValueError as e:
            raise DirectoryError(f"Invalid JSON from {url}") from e

        if not isinstance(data, list):
            raise DirectoryError(f"Expected a list from {url}, got {type(data).__name__}")
        return data

    async def _categories(self, path: str) -> List[Category]:
        items = [Category.from_api(item) for item in await self._get_list(path)]
        items = [c for c in items if c.name]  # Remove items with empty names
        return sorted(items, key=lambda c: c.station_count, reverse=True)

    async def _stations(self, path: str) -> List[Station]:
        stations = []
        for item in await self._get_list(path):
            station = Station.from_api(item)
            if station:
                stations.append(station)
        logger.debug(f"Fetched {len(stations)} stations from {path}")
        return stations

    async def countries(self) -> List[Category]:
        return await self._categories("countries")

    async def languages(self) -> List[Category]:
        return await self._categories("languages")

    async def genres(self) -> List[Category]:
        return await self._categories("tags")

    async def stations_by_country(self, country: str) -> List[Station]:
        return await self._stations(f"stations/bycountry/{quote(country, safe='')}")

    async def stations_by_language(self, language: str) -> List[Station]:
        return await self._stations(f"stations/bylanguage/{quote(language, safe='')}")

    async def stations_by_genre(self, genre: str) -> List[Station]:
        return await self._stations(f"stations/bytag/{quote(genre, safe='')}")

    async def top_voted(self, limit: int = 100) -> List[Station]:
        return await self._stations(f"stations/topvote/{int(limit)}")

    async def search(self, query: str) -> List[Station]:
        """Stations whose name contains query."""
        query = query.strip()
        if not query:
            return []
        return await self._stations(f"stations/byname/{quote(query, safe='')}")
