"""Error taxonomy and user-facing notices for OmniRadio."""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of playback failure the session reports."""

    AUDIO_CONFIGURATION_FAILED = "audio_configuration_failed"
    STREAM_UNAVAILABLE = "stream_unavailable"
    BOUNDARY_REACHED = "boundary_reached"
    REDUNDANT_TRANSITION_DROPPED = "redundant_transition_dropped"


class OmniRadioError(Exception):
    """Base class for OmniRadio errors."""


class PlaybackError(OmniRadioError):
    """Raised by audio backends; caught at the session boundary."""

    kind: ErrorKind = ErrorKind.STREAM_UNAVAILABLE


class AudioConfigurationFailed(PlaybackError):
    """The device refused the playback-mode setup."""

    kind = ErrorKind.AUDIO_CONFIGURATION_FAILED


class StreamUnavailable(PlaybackError):
    """A stream could not be created, loaded, or kept alive."""

    kind = ErrorKind.STREAM_UNAVAILABLE


class DirectoryError(OmniRadioError):
    """The station directory could not be reached or returned garbage."""


@dataclass(frozen=True)
class Notice:
    """Transient, dismissible message for the user."""

    kind: ErrorKind
    title: str
    message: str
    level: str = "error"  # 'error' or 'warning'


AUDIO_SETTINGS_FAILED = Notice(
    kind=ErrorKind.AUDIO_CONFIGURATION_FAILED,
    title="Error",
    message="Audio settings failed. Please try again.",
)

STATION_UNPLAYABLE = Notice(
    kind=ErrorKind.STREAM_UNAVAILABLE,
    title="Error",
    message="Unable to play this station. Please try another one.",
)

END_OF_LIST = Notice(
    kind=ErrorKind.BOUNDARY_REACHED,
    title="No more stations",
    message="You've reached the end of the station list.",
    level="warning",
)
