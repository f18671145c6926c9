"""Shared fixtures: a fake audio backend and a few stations."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from omniradio.errors import AudioConfigurationFailed, StreamUnavailable
from omniradio.events import SessionEventBus
from omniradio.player import (
    AudioBackend,
    SessionState,
    StatusCallback,
    Station,
    StreamHandle,
    StreamStatus,
)
from omniradio.session import PlaybackSession


class FakeStream(StreamHandle):
    """In-memory stream handle that records what the session did to it."""

    def __init__(self, backend: FakeBackend, station: Station, on_status: StatusCallback) -> None:
        self.backend = backend
        self.station = station
        self.on_status = on_status
        self.loaded = False
        self.paused = False
        self.released = False

    async def load(self) -> None:
        if self.station.id in self.backend.fail_load:
            raise StreamUnavailable(f"cannot open {self.station.url}")
        if self.backend.load_gate is not None:
            await self.backend.load_gate.wait()
        self.loaded = True
        if self.backend.auto_ready:
            self.on_status(StreamStatus.READY)

    async def pause(self) -> None:
        if self.backend.pause_gate is not None:
            await self.backend.pause_gate.wait()
        self.paused = True
        self.backend.log.append(f"pause:{self.station.id}")

    async def resume(self) -> None:
        self.paused = False

    async def release(self) -> None:
        self.released = True
        self.backend.log.append(f"release:{self.station.id}")
        self.backend.live.remove(self)
        if self.backend.fail_release:
            raise RuntimeError("unload failed")


class FakeBackend(AudioBackend):
    name = "fake"

    def __init__(self) -> None:
        self.created: list[FakeStream] = []
        self.live: list[FakeStream] = []
        self.max_live = 0
        self.configure_calls = 0
        self.fail_config = False
        self.fail_release = False
        self.fail_load: set[str] = set()
        self.auto_ready = True
        self.load_gate: Optional[asyncio.Event] = None
        self.pause_gate: Optional[asyncio.Event] = None
        self.log: list[str] = []  # pause/release calls, in order

    async def configure_audio_mode(self) -> None:
        self.configure_calls += 1
        await asyncio.sleep(0)
        if self.fail_config:
            raise AudioConfigurationFailed("audio session refused")

    def open_stream(self, station: Station, on_status: StatusCallback) -> StreamHandle:
        stream = FakeStream(self, station, on_status)
        self.created.append(stream)
        self.live.append(stream)
        self.max_live = max(self.max_live, len(self.live))
        return stream


class RecordingBus(SessionEventBus):
    """Event bus that remembers every state (and whether a handle existed)."""

    def __init__(self) -> None:
        super().__init__()
        self.session: Optional[PlaybackSession] = None
        self.states: list[tuple[SessionState, bool]] = []
        self.notices = []

    def emit_state(self, state: SessionState) -> None:
        self.states.append((state, self.session.active_handle is not None))
        super().emit_state(state)

    def emit_notice(self, notice) -> None:
        self.notices.append(notice)
        super().emit_notice(notice)

    @property
    def phases(self):
        return [state.phase for state, _ in self.states]


async def settle() -> None:
    """Let callbacks scheduled with call_soon_threadsafe run."""
    for _ in range(10):
        await asyncio.sleep(0)


def make_station(station_id: str, name: Optional[str] = None) -> Station:
    return Station(
        id=station_id,
        name=name or f"Radio {station_id}",
        url=f"http://streams.test/{station_id}.mp3",
        country="Finland",
        language="finnish",
    )


@pytest.fixture
def stations() -> list[Station]:
    return [make_station("a"), make_station("b"), make_station("c")]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def session(backend: FakeBackend, bus: RecordingBus) -> PlaybackSession:
    session = PlaybackSession(backend, bus, ready_timeout=5)
    bus.session = session
    return session
