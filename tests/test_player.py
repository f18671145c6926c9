"""Tests for station parsing."""

from omniradio.player import PlaybackPhase, SessionState, Station


def test_from_api_prefers_resolved_url():
    station = Station.from_api({
        "stationuuid": "960e57c5-0601-11e8-ae97-52543be04c81",
        "name": " Radio Suomipop ",
        "url": "http://example.test/playlist.pls",
        "url_resolved": "http://stream.example.test/suomipop.mp3",
        "favicon": "",
        "country": "Finland",
        "language": "finnish",
        "tags": "pop, hits,,",
        "codec": "MP3",
        "bitrate": 128,
        "votes": 42,
        "homepage": "https://example.test",
    })

    assert station.id == "960e57c5-0601-11e8-ae97-52543be04c81"
    assert station.name == "Radio Suomipop"
    assert station.url == "http://stream.example.test/suomipop.mp3"
    assert station.icon is None
    assert station.tags == ("pop", "hits")
    assert station.bitrate == 128


def test_from_api_falls_back_to_url_and_rejects_unplayable():
    station = Station.from_api({"stationuuid": "x", "name": "X", "url": "http://x.test"})
    assert station.url == "http://x.test"
    assert station.country == ""

    assert Station.from_api({"stationuuid": "x", "name": "X"}) is None
    assert Station.from_api({"name": "X", "url": "http://x.test"}) is None


def test_stored_station_ignores_unknown_keys():
    stored = Station(id="a", name="A", url="http://a.test", tags=("jazz",)).to_dict()
    stored["added_at"] = "2024-01-01"

    station = Station.from_dict(stored)

    assert station.tags == ("jazz",)
    assert station.name == "A"


def test_session_state_defaults():
    state = SessionState()
    assert state.phase == PlaybackPhase.IDLE
    assert not state.is_playing
    assert state.current_station is None


def test_from_api_tolerates_malformed_numbers():
    station = Station.from_api({
        "stationuuid": "x",
        "name": "X",
        "url": "http://x.test",
        "bitrate": "n/a",
        "votes": "12.0",
    })

    assert station.bitrate == 0
    assert station.votes == 12
