"""libmpv audio backend: one mpv instance per stream handle."""

import asyncio
import threading
from typing import Any, Dict, Optional

import mpv
from loguru import logger

from omniradio.errors import AudioConfigurationFailed, StreamUnavailable
from omniradio.player import AudioBackend, StatusCallback, Station, StreamHandle, StreamStatus


class MpvStream(StreamHandle):
    """Stream handle backed by its own mpv instance."""

    def __init__(self, station: Station, on_status: StatusCallback, options: Dict[str, Any]):
        self.station = station
        self._on_status = on_status
        self._released = False
        self._paused = False
        self._core_idle = True
        self._lock = threading.Lock()
        self.mpv = mpv.MPV(
            video=False,
            terminal=False,
            input_default_bindings=False,
            input_vo_keyboard=False,
            ytdl=False,
            **options,
        )
        try:
            self.mpv.title = station.name
            self.mpv.force_media_title = station.name
            self._observe()
        except Exception:
            self.mpv.terminate()
            raise

    def _observe(self):
        # Callbacks run on the mpv event thread
        @self.mpv.property_observer('core-idle')
        def on_core_idle(name, value):
            if value is None:
                return
            self._core_idle = bool(value)
            if not self._core_idle:
                self._report(StreamStatus.READY)

        @self.mpv.property_observer('paused-for-cache')
        def on_cache(name, value):
            if value:
                self._report(StreamStatus.BUFFERING)
            elif value is False and not self._core_idle:
                self._report(StreamStatus.READY)

        @self.mpv.event_callback('end-file')
        def on_end_file(event):
            # A live stream never ends on its own; EOF means the station dropped us
            if hasattr(event, 'data') and hasattr(event.data, 'reason'):
                if event.data.reason in (event.data.EOF, event.data.ERROR):
                    self._report(StreamStatus.ERROR)

    def _report(self, status: StreamStatus):
        with self._lock:
            if self._released or (self._paused and status != StreamStatus.ERROR):
                return
        self._on_status(status)

    async def load(self) -> None:
        try:
            await asyncio.to_thread(self.mpv.command, 'loadfile', self.station.url, 'replace')
            self.mpv.pause = False
        except Exception as e:
            raise StreamUnavailable(f"{self.station.name}: {e}") from e

    async def pause(self) -> None:
        self._paused = True
        self.mpv.pause = True

    async def resume(self) -> None:
        self._paused = False
        self.mpv.pause = False

    async def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        await asyncio.to_thread(self._terminate)

    def _terminate(self):
        try:
            self.mpv.command('stop')
        finally:
            self.mpv.terminate()


class MpvBackend(AudioBackend):
    """Creates MpvStream handles using the player section of the config."""

    name = "mpv"

    def __init__(self, config: dict):
        self.config = config
        self._options: Optional[Dict[str, Any]] = None

    async def configure_audio_mode(self) -> None:
        """Resolve audio output options, checking the configured device exists."""
        device = self.config.get("audio_output") or "auto"
        try:
            if device != "auto":
                devices = await asyncio.to_thread(self._list_audio_devices)
                if device not in devices:
                    raise AudioConfigurationFailed(f"Audio device not found: {device}")
        except AudioConfigurationFailed:
            raise
        except Exception as e:
            raise AudioConfigurationFailed(f"Could not query audio devices: {e}") from e

        self._options = {
            "audio_device": device,
            "audio_client_name": "omniradio",
            "volume": max(0, min(100, int(self.config.get("volume", 80)))),
            "cache": "yes",
            "cache_secs": float(self.config.get("cache_secs", 10)),
            "network_timeout": float(self.config.get("ready_timeout", 15)),
        }
        logger.debug(f"Audio mode configured: {self._options}")

    @staticmethod
    def _list_audio_devices() -> list:
        probe = mpv.MPV(video=False, terminal=False, idle=True)
        try:
            return [d.get("name") for d in (probe.audio_device_list or [])]
        finally:
            probe.terminate()

    def open_stream(self, station: Station, on_status: StatusCallback) -> StreamHandle:
        if self._options is None:
            raise AudioConfigurationFailed("configure_audio_mode() was not called")
        try:
            return MpvStream(station, on_status, self._options)
        except Exception as e:
            raise StreamUnavailable(f"mpv init failed: {e}") from e
