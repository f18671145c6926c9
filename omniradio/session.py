"""Playback session: owns the single active stream for the whole app.

Screens call select(), toggle_play_pause() and switch(); they render
whatever the session publishes on its event bus. All methods must be
called from the same event loop.

Transitions (release old handle, open and load new one) never overlap:
while one is in flight further select()/switch() calls are dropped rather
than queued. Status reports from stream handles can arrive on foreign
threads; they are marshalled onto the loop and tagged with the handle
generation so that reports from a superseded handle are ignored.
"""

import asyncio
from enum import Enum
from functools import partial
from typing import Optional, Sequence, Set, Tuple, Union

from loguru import logger

from omniradio.errors import AUDIO_SETTINGS_FAILED, END_OF_LIST, STATION_UNPLAYABLE, Notice
from omniradio.events import SessionEventBus
from omniradio.player import (
    AudioBackend,
    PlaybackPhase,
    SessionState,
    Station,
    StreamHandle,
    StreamStatus,
)

DEFAULT_READY_TIMEOUT = 15.0


class Direction(str, Enum):
    NEXT = "next"
    PREV = "prev"


class Outcome(str, Enum):
    """What a session command ended up doing."""
    CONNECTING = "connecting"
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"
    DROPPED = "dropped"  # another transition was in flight
    BOUNDARY_REACHED = "boundary_reached"
    IGNORED = "ignored"  # nothing to act on


class PlaybackSession:
    """Mediates between the station the user wants and the stream that plays."""

    def __init__(
        self,
        backend: AudioBackend,
        events: Optional[SessionEventBus] = None,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
    ):
        self.backend = backend
        self.events = events or SessionEventBus()
        self.ready_timeout = ready_timeout

        self.current_station: Optional[Station] = None
        self.phase = PlaybackPhase.IDLE
        self.is_buffering = False
        self.station_list: Tuple[Station, ...] = ()

        self._handle: Optional[StreamHandle] = None
        self._generation = 0  # Bumped whenever the handle is superseded
        self._transition_in_flight = False
        self._closed = False
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._watchdog: Optional[asyncio.TimerHandle] = None
        self._failure_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return SessionState(
            current_station=self.current_station,
            phase=self.phase,
            is_buffering=self.is_buffering,
        )

    @property
    def active_handle(self) -> Optional[StreamHandle]:
        return self._handle

    @property
    def transition_in_flight(self) -> bool:
        return self._transition_in_flight

    # -- commands ---------------------------------------------------------

    async def select(self, station: Station, stations: Sequence[Station]) -> Outcome:
        """Play a station, making stations the new navigation context.

        Selecting the station that is already playing (or paused) toggles
        pause instead of reconnecting.
        """
        if self._closed:
            return Outcome.IGNORED
        if self._transition_in_flight:
            logger.debug(f"Duplicate play request dropped for station: {station.name}")
            return Outcome.DROPPED

        self._loop = asyncio.get_running_loop()
        self.station_list = tuple(stations)

        if self._is_current(station):
            if self.phase in (PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
                return await self.toggle_play_pause()
            if self.phase == PlaybackPhase.CONNECTING:
                logger.debug(f"Already connecting to {station.name}, request dropped")
                return Outcome.DROPPED

        self._transition_in_flight = True
        try:
            return await self._transition(station)
        finally:
            self._transition_in_flight = False

    async def toggle_play_pause(self) -> Outcome:
        """Pause a playing stream or resume a paused one."""
        async with self._lock:
            handle = self._handle
            if handle is None or self.phase not in (PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
                return Outcome.IGNORED

            try:
                if self.phase == PlaybackPhase.PLAYING:
                    logger.info(f"Pausing {self.current_station.name}")
                    await handle.pause()
                    self.phase = PlaybackPhase.PAUSED
                else:
                    logger.info(f"Resuming {self.current_station.name}")
                    await handle.resume()
                    self.phase = PlaybackPhase.PLAYING
            except Exception as e:
                logger.error(f"Error toggling playback: {e}")
                await self._release_handle()
                return self._fail(STATION_UNPLAYABLE)

            self._publish()
            return Outcome(self.phase.value)

    async def switch(
        self, direction: Union[Direction, str], stations: Sequence[Station]
    ) -> Outcome:
        """Move to the adjacent station in stations. Never wraps around."""
        direction = Direction(direction)
        if self._closed:
            return Outcome.IGNORED
        if self._transition_in_flight:
            logger.debug("Station switch in progress, dropping switch request")
            return Outcome.DROPPED

        stations = list(stations)
        index = self._index_of(self.current_station, stations)
        step = 1 if direction == Direction.NEXT else -1
        # A current station missing from stations has index -1, so next
        # starts from the first entry and prev runs off the front.
        new_index = index + step

        if not 0 <= new_index < len(stations):
            logger.info("Reached the end of the station list")
            self._notify(END_OF_LIST)
            return Outcome.BOUNDARY_REACHED

        new_station = stations[new_index]
        logger.info(f"Switching to station: {new_station.name}")
        return await self.select(new_station, stations)

    async def close(self) -> None:
        """Release the stream and go back to idle for good.

        A transition still waiting on the audio mode or the lock gives up
        instead of opening a stream, and later commands are ignored.
        """
        self._closed = True
        async with self._lock:
            self._cancel_watchdog()
            await self._release_handle()
            self.current_station = None
            self.phase = PlaybackPhase.IDLE
            self.is_buffering = False
            self._publish()
        for task in list(self._failure_tasks):
            task.cancel()

    # -- transition ---------------------------------------------------------

    async def _transition(self, station: Station) -> Outcome:
        logger.info(f"Selecting station: {station.name}")
        try:
            await self.backend.configure_audio_mode()
        except Exception as e:
            logger.error(f"Error setting audio mode: {e}")
            self._notify(AUDIO_SETTINGS_FAILED)
            return Outcome.FAILED

        async with self._lock:
            if self._closed:
                logger.debug(f"Session closed, not opening {station.name}")
                return Outcome.IGNORED

            self._cancel_watchdog()
            await self._release_handle()
            generation = self._generation

            self.current_station = station
            self.is_buffering = True
            try:
                handle = self.backend.open_stream(station, partial(self._post_status, generation))
            except Exception as e:
                logger.error(f"Error creating stream for {station.name}: {e}")
                return self._fail(STATION_UNPLAYABLE)

            self._handle = handle
            self.phase = PlaybackPhase.CONNECTING
            self._publish()

            try:
                await handle.load()
            except Exception as e:
                logger.error(f"Error loading stream for {station.name}: {e}")
                await self._release_handle()
                return self._fail(STATION_UNPLAYABLE)

            if self.phase == PlaybackPhase.CONNECTING:
                self._arm_watchdog(generation)
            return Outcome(self.phase.value)

    async def _release_handle(self) -> None:
        """Release the current handle, if any. Errors are logged, not raised."""
        self._generation += 1
        old = self._handle
        if old is None:
            return
        try:
            logger.debug("Unloading current stream...")
            await old.release()
        except Exception as e:
            logger.warning(f"Error releasing stream: {e}")
        finally:
            self._handle = None

    def _fail(self, notice: Notice) -> Outcome:
        """Enter FAILED. The caller must already have released the handle."""
        self._cancel_watchdog()
        self.phase = PlaybackPhase.FAILED
        self.is_buffering = False
        self._publish()
        self._notify(notice)
        return Outcome.FAILED

    # -- stream status channel ----------------------------------------------

    def _post_status(self, generation: int, status: StreamStatus) -> None:
        """Status callback handed to stream handles. Safe from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._apply_status, generation, status)

    def _apply_status(self, generation: int, status: StreamStatus) -> None:
        if generation != self._generation or self._handle is None:
            logger.debug(f"Ignoring stale '{status.value}' from stream generation {generation}")
            return

        if status == StreamStatus.READY:
            changed = self.is_buffering or self.phase == PlaybackPhase.CONNECTING
            self.is_buffering = False
            if self.phase == PlaybackPhase.CONNECTING:
                self._cancel_watchdog()
                self.phase = PlaybackPhase.PLAYING
                logger.info(f"Playing station: {self.current_station.name}")
            if changed:
                self._publish()
        elif status == StreamStatus.BUFFERING:
            if not self.is_buffering and self.phase != PlaybackPhase.PAUSED:
                self.is_buffering = True
                self._publish()
        elif status == StreamStatus.ERROR:
            self._schedule_failure(generation, "stream reported an error")

    def _arm_watchdog(self, generation: int) -> None:
        self._cancel_watchdog()
        self._watchdog = self._loop.call_later(
            self.ready_timeout,
            self._schedule_failure,
            generation,
            f"not ready after {self.ready_timeout:g}s",
            True,
        )

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _schedule_failure(self, generation: int, reason: str, only_if_connecting: bool = False) -> None:
        task = asyncio.ensure_future(self._fail_stream(generation, reason, only_if_connecting))
        self._failure_tasks.add(task)
        task.add_done_callback(self._failure_tasks.discard)

    async def _fail_stream(self, generation: int, reason: str, only_if_connecting: bool) -> None:
        async with self._lock:
            if generation != self._generation or self._handle is None:
                return
            if only_if_connecting and self.phase != PlaybackPhase.CONNECTING:
                return
            name = self.current_station.name if self.current_station else "?"
            logger.warning(f"Stream for {name} failed: {reason}")
            await self._release_handle()
            self._fail(STATION_UNPLAYABLE)

    # -- helpers ------------------------------------------------------------

    def _is_current(self, station: Station) -> bool:
        return self.current_station is not None and self.current_station.id == station.id

    @staticmethod
    def _index_of(station: Optional[Station], stations: Sequence[Station]) -> int:
        if station is None:
            return -1
        for i, candidate in enumerate(stations):
            if candidate.id == station.id:
                return i
        return -1

    def _publish(self) -> None:
        self.events.emit_state(self.state)

    def _notify(self, notice: Notice) -> None:
        self.events.emit_notice(notice)
