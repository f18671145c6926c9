"""Favorite and recently played stations, stored as JSON in the config dir."""

import json
from pathlib import Path
from typing import List

from loguru import logger

from omniradio.player import Station

FAVORITES_FILE = "favorites.json"
RECENTS_FILE = "recents.json"
DEFAULT_RECENTS_LIMIT = 100


class StationLibrary:
    """Local favorites and recents lists."""

    def __init__(self, config_dir: Path, recents_limit: int = DEFAULT_RECENTS_LIMIT):
        self.config_dir = Path(config_dir)
        self.recents_limit = recents_limit

    def _load(self, filename: str) -> List[Station]:
        path = self.config_dir / filename
        if not path.exists():
            return []
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return [Station.from_dict(item) for item in data]
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading {filename}: {e}")
            return []

    def _save(self, filename: str, stations: List[Station]) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.config_dir / filename
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump([s.to_dict() for s in stations], f, indent=2, ensure_ascii=False)
        tmp.replace(path)

    # Favorites

    def favorites(self) -> List[Station]:
        return self._load(FAVORITES_FILE)

    def is_favorite(self, station: Station) -> bool:
        return any(s.id == station.id for s in self.favorites())

    def add_favorite(self, station: Station) -> None:
        favorites = self.favorites()
        if not any(s.id == station.id for s in favorites):
            favorites.append(station)
            self._save(FAVORITES_FILE, favorites)

    def remove_favorite(self, station: Station) -> None:
        favorites = self.favorites()
        kept = [s for s in favorites if s.id != station.id]
        if len(kept) != len(favorites):
            self._save(FAVORITES_FILE, kept)

    def toggle_favorite(self, station: Station) -> bool:
        """Flip favorite state. Returns True if the station is now a favorite."""
        if self.is_favorite(station):
            self.remove_favorite(station)
            return False
        self.add_favorite(station)
        return True

    # Recents

    def recents(self) -> List[Station]:
        return self._load(RECENTS_FILE)

    def add_recent(self, station: Station) -> None:
        """Put station at the top, dropping older copies and the overflow."""
        recents = [station] + [s for s in self.recents() if s.id != station.id]
        self._save(RECENTS_FILE, recents[: self.recents_limit])

    def clear_recents(self) -> None:
        self._save(RECENTS_FILE, [])
