"""Tests for the Last.fm fetcher."""

from unittest.mock import MagicMock

import pytest
import requests

from constellation.lastfm_fetcher import (
    LastFmAPIError,
    LastFmAuthError,
    LastFmDataError,
    _call_api,
    fetch_artist_tags,
    fetch_top_artists,
    fetch_top_artists_with_tags,
    normalize_lastfm_artists,
)


def _session(payload):
    """Session whose get() returns a response with the given JSON body."""
    response = MagicMock()
    response.json.return_value = payload
    session = MagicMock()
    session.get.return_value = response
    return session


class TestCallApi:
    """Tests for _call_api function."""

    def test_missing_key(self):
        """Test that a missing API key fails before any request."""
        session = _session({})
        with pytest.raises(LastFmAuthError, match="LASTFM_API_KEY"):
            _call_api("user.gettopartists", None, session=session)
        session.get.assert_not_called()

    def test_sends_method_and_format(self):
        """Test request parameters."""
        session = _session({"ok": True})

        assert _call_api("artist.getinfo", "key", session=session, artist="Burial") == {
            "ok": True
        }

        params = session.get.call_args.kwargs["params"]
        assert params["method"] == "artist.getinfo"
        assert params["format"] == "json"
        assert params["artist"] == "Burial"

    def test_auth_error_code(self):
        """Test that invalid-key errors become LastFmAuthError."""
        session = _session({"error": 10, "message": "Invalid API key"})
        with pytest.raises(LastFmAuthError, match="Invalid API key"):
            _call_api("user.gettopartists", "bad", session=session)

    def test_other_error_code(self):
        """Test that other API errors are LastFmAPIError but not auth errors."""
        session = _session({"error": 6, "message": "User not found"})
        with pytest.raises(LastFmAPIError, match="User not found") as exc_info:
            _call_api("user.gettopartists", "key", session=session)
        assert not isinstance(exc_info.value, LastFmAuthError)

    def test_timeout(self):
        """Test that timeouts are wrapped."""
        session = MagicMock()
        session.get.side_effect = requests.Timeout()
        with pytest.raises(LastFmAPIError, match="timed out"):
            _call_api("user.gettopartists", "key", session=session)

    def test_http_error(self):
        """Test that HTTP errors are wrapped."""
        session = _session({})
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        with pytest.raises(LastFmAPIError, match="Request failed"):
            _call_api("user.gettopartists", "key", session=session)

    def test_invalid_json(self):
        """Test that undecodable bodies raise LastFmDataError."""
        session = _session({})
        session.get.return_value.json.side_effect = ValueError("bad json")
        with pytest.raises(LastFmDataError, match="Failed to parse"):
            _call_api("user.gettopartists", "key", session=session)


class TestFetchTopArtists:
    """Tests for fetch_top_artists function."""

    def test_returns_artist_list(self):
        """Test extraction of the artist list."""
        session = _session({"topartists": {"artist": [{"name": "Burial"}]}})
        assert fetch_top_artists("someone", "key", session=session) == [{"name": "Burial"}]

    def test_invalid_period(self):
        """Test that unknown periods are rejected."""
        with pytest.raises(ValueError, match="Invalid period"):
            fetch_top_artists("someone", "key", period="forever")

    def test_unexpected_payload(self):
        """Test that a missing artist list raises LastFmDataError."""
        with pytest.raises(LastFmDataError, match="Unexpected top artists payload"):
            fetch_top_artists("someone", "key", session=_session({"topartists": {}}))


class TestFetchArtistTags:
    """Tests for fetch_artist_tags function."""

    def test_tag_list(self):
        """Test that tags are lowercased."""
        session = _session(
            {"artist": {"tags": {"tag": [{"name": "Dubstep"}, {"name": "UK Garage"}]}}}
        )
        assert fetch_artist_tags("Burial", "key", session=session) == ["dubstep", "uk garage"]

    def test_single_tag(self):
        """Test that a lone tag object is handled."""
        session = _session({"artist": {"tags": {"tag": {"name": "House"}}}})
        assert fetch_artist_tags("Someone", "key", session=session) == ["house"]

    def test_api_error_gives_no_tags(self):
        """Test that per-artist failures do not abort the fetch."""
        session = _session({"error": 6, "message": "Artist not found"})
        assert fetch_artist_tags("Nobody", "key", session=session) == []

    def test_auth_error_propagates(self):
        """Test that auth failures are not swallowed."""
        with pytest.raises(LastFmAuthError):
            fetch_artist_tags("Burial", None, session=_session({}))


class TestFetchTopArtistsWithTags:
    """Tests for fetch_top_artists_with_tags function."""

    def test_progress_and_result(self):
        """Test batching progress events and the normalized result."""
        names = [f"Artist {i}" for i in range(12)]

        def fake_get(url, params, timeout):
            response = MagicMock()
            if params["method"] == "user.gettopartists":
                response.json.return_value = {
                    "topartists": {"artist": [{"name": n, "mbid": ""} for n in names]}
                }
            else:
                response.json.return_value = {
                    "artist": {"tags": {"tag": [{"name": params["artist"][-1]}]}}
                }
            return response

        session = MagicMock()
        session.get.side_effect = fake_get
        events = []

        artists = fetch_top_artists_with_tags(
            "someone", "key", progress=events.append, session=session
        )

        assert [(e.stage, e.percent) for e in events] == [
            ("artists", 0),
            ("tags", 83),
            ("tags", 100),
            ("done", 100),
        ]
        assert [a.rank for a in artists] == list(range(12))
        assert artists[3].genres == ("3",)
        assert artists[0].id == "lastfm-artist-0"


class TestNormalizeLastFmArtists:
    """Tests for normalize_lastfm_artists function."""

    def test_fields(self):
        """Test id, image, playcount and rank mapping."""
        raw = [
            {
                "name": "Burial",
                "mbid": "9ddce51c",
                "playcount": "1234",
                "url": "https://www.last.fm/music/Burial",
                "image": [
                    {"size": "small", "#text": "small.png"},
                    {"size": "extralarge", "#text": "xl.png"},
                ],
                "tags": ["dubstep"],
            },
            {"name": "Four Tet", "playcount": None},
            {"mbid": "no-name"},
        ]

        artists = normalize_lastfm_artists(raw)

        assert len(artists) == 2
        assert artists[0].id == "9ddce51c"
        assert artists[0].image == "xl.png"
        assert artists[0].playcount == 1234
        assert artists[0].source == "lastfm"
        assert artists[1].id == "lastfm-four-tet"
        assert artists[1].rank == 1
        assert artists[1].playcount == 0
        assert artists[1].image is None
