"""Station records and the audio backend interface the session drives."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple


def to_count(value: Any) -> int:
    """Parse a numeric API field, treating missing or malformed values as 0."""
    try:
        return int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True)
class Station:
    """Represents a station from the radio directory."""
    id: str  # radio-browser stationuuid
    name: str
    url: str  # stream URL
    country: str = ""
    language: str = ""
    icon: Optional[str] = None  # favicon URL
    tags: Tuple[str, ...] = field(default_factory=tuple)
    codec: str = ""
    bitrate: int = 0  # kbps
    votes: int = 0
    homepage: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> Optional["Station"]:
        """Build a station from a radio-browser record.

        Returns None for records that cannot be played (no id or no URL).
        """
        station_id = (item.get("stationuuid") or "").strip()
        url = (item.get("url_resolved") or item.get("url") or "").strip()
        if not station_id or not url:
            return None

        tags = tuple(t.strip() for t in (item.get("tags") or "").split(",") if t.strip())
        return cls(
            id=station_id,
            name=(item.get("name") or "").strip() or "Unknown",
            url=url,
            country=item.get("country") or "",
            language=item.get("language") or "",
            icon=item.get("favicon") or None,
            tags=tags,
            codec=item.get("codec") or "",
            bitrate=to_count(item.get("bitrate")),
            votes=to_count(item.get("votes")),
            homepage=item.get("homepage") or None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Station":
        """Rebuild a station saved with to_dict()."""
        data = dict(data)
        data["tags"] = tuple(data.get("tags") or ())
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["tags"] = list(self.tags)
        return data


class StreamStatus(str, Enum):
    """Status reports a stream handle sends back to its owner."""
    READY = "ready"          # loaded and not buffering
    BUFFERING = "buffering"  # waiting for network data
    ERROR = "error"          # stream died or could not be decoded


StatusCallback = Callable[[StreamStatus], None]


class PlaybackPhase(str, Enum):
    """The session's relationship to its current station."""
    IDLE = "idle"
    CONNECTING = "connecting"
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"


# Phases in which the session holds a stream handle
HANDLE_PHASES = frozenset({PlaybackPhase.CONNECTING, PlaybackPhase.PLAYING, PlaybackPhase.PAUSED})


@dataclass(frozen=True)
class SessionState:
    """Snapshot of what screens render."""
    current_station: Optional[Station] = None
    phase: PlaybackPhase = PlaybackPhase.IDLE
    is_buffering: bool = False

    @property
    def is_playing(self) -> bool:
        return self.phase == PlaybackPhase.PLAYING


class StreamHandle(ABC):
    """A live audio stream bound to one station URL.

    Handles are created by an AudioBackend and owned by exactly one
    PlaybackSession. The status callback may be invoked from any thread.
    """

    @abstractmethod
    async def load(self) -> None:
        """Start streaming. Raises StreamUnavailable on failure."""
        pass

    @abstractmethod
    async def pause(self) -> None:
        """Suspend playback, keeping the stream open."""
        pass

    @abstractmethod
    async def resume(self) -> None:
        """Continue a paused stream."""
        pass

    @abstractmethod
    async def release(self) -> None:
        """Free the native resources held by this handle."""
        pass


class AudioBackend(ABC):
    """Factory for stream handles plus device audio-mode setup."""

    name: str = "base"

    @abstractmethod
    async def configure_audio_mode(self) -> None:
        """Prepare audio output for background playback.

        Raises AudioConfigurationFailed if the device refuses.
        """
        pass

    @abstractmethod
    def open_stream(self, station: Station, on_status: StatusCallback) -> StreamHandle:
        """Allocate a handle for a station. Raises StreamUnavailable on failure."""
        pass
