"""Last.fm API client for fetching a listener's top artists and their tags."""

import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass

import requests

from constellation.models import Artist

logger = logging.getLogger(__name__)


# Custom exceptions for Last.fm API errors
class LastFmAPIError(Exception):
    """Base exception for Last.fm API errors."""


class LastFmAuthError(LastFmAPIError):
    """Missing or rejected API key."""


class LastFmDataError(LastFmAPIError):
    """Invalid data from API or parsing error."""


# Constants
LASTFM_API_KEY = os.getenv("LASTFM_API_KEY")
API_BASE_URL = "https://ws.audioscrobbler.com/2.0/"
REQUEST_TIMEOUT = 30
TAG_BATCH_SIZE = 10
DEFAULT_ARTIST_LIMIT = 500
VALID_PERIODS = ("overall", "7day", "1month", "3month", "6month", "12month")

# Last.fm error codes that indicate an auth problem
AUTH_ERROR_CODES = {10, 26}

IMAGE_SIZE_PREFERENCE = ("extralarge", "large")


@dataclass(frozen=True)
class FetchProgress:
    """Progress event emitted while fetching, in place of ad hoc logging."""

    stage: str
    percent: int
    message: str


ProgressCallback = Callable[[FetchProgress], None]


def _emit(progress: ProgressCallback | None, stage: str, percent: int, message: str):
    if progress is not None:
        progress(FetchProgress(stage=stage, percent=percent, message=message))


def _call_api(method: str, api_key: str, session=None, **params) -> dict:
    """
    Call a Last.fm API method and return the decoded JSON body.

    Raises:
        LastFmAuthError: If the API key is missing or rejected
        LastFmAPIError: On transport errors or API-reported errors
        LastFmDataError: If the body is not valid JSON
    """
    # Early exit if no API key
    if not api_key:
        raise LastFmAuthError("LASTFM_API_KEY not found in environment")

    request_params = {"method": method, "api_key": api_key, "format": "json", **params}
    http = session or requests

    try:
        response = http.get(API_BASE_URL, params=request_params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.Timeout as e:
        raise LastFmAPIError("Request timed out") from e
    except requests.RequestException as e:
        raise LastFmAPIError(f"Request failed: {e}") from e

    try:
        data = response.json()
    except ValueError as e:
        raise LastFmDataError(f"Failed to parse API response: {e}") from e

    if not isinstance(data, dict):
        raise LastFmDataError("API response is not a JSON object")

    if "error" in data:
        message = data.get("message") or f"Last.fm API error: {data['error']}"
        if data["error"] in AUTH_ERROR_CODES:
            raise LastFmAuthError(message)
        raise LastFmAPIError(message)

    return data


def fetch_top_artists(
    username: str,
    api_key: str | None = LASTFM_API_KEY,
    limit: int = DEFAULT_ARTIST_LIMIT,
    period: str = "overall",
    session=None,
) -> list[dict]:
    """
    Fetch a user's top artists, most listened first.

    Args:
        username: Last.fm username
        api_key: Last.fm API key
        limit: Number of artists to request
        period: One of VALID_PERIODS

    Returns:
        Raw artist dicts from the API
    """
    if period not in VALID_PERIODS:
        raise ValueError(f"Invalid period {period!r}, expected one of {VALID_PERIODS}")

    logger.info("Fetching top %d artists for %s (%s)", limit, username, period)
    data = _call_api(
        "user.gettopartists",
        api_key,
        session=session,
        user=username,
        limit=limit,
        period=period,
    )

    try:
        artists = data["topartists"]["artist"]
    except (KeyError, TypeError) as e:
        raise LastFmDataError(f"Unexpected top artists payload: {e}") from e

    logger.info("Received %d artists", len(artists))
    return artists


def fetch_artist_tags(
    artist_name: str, api_key: str | None = LASTFM_API_KEY, session=None
) -> list[str]:
    """
    Fetch lowercased tags (used as genres) for one artist.

    Returns:
        Tag names, or an empty list if the artist lookup fails
    """
    try:
        data = _call_api("artist.getinfo", api_key, session=session, artist=artist_name)
    except LastFmAuthError:
        raise
    except LastFmAPIError as e:
        logger.warning("Failed to fetch artist info for %s: %s", artist_name, e)
        return []

    tags = data.get("artist", {}).get("tags", {}) or {}
    tag_list = tags.get("tag", []) if isinstance(tags, dict) else []
    # A single tag comes back as a dict rather than a list
    if isinstance(tag_list, dict):
        tag_list = [tag_list]
    return [tag["name"].lower() for tag in tag_list if tag.get("name")]


def fetch_top_artists_with_tags(
    username: str,
    api_key: str | None = LASTFM_API_KEY,
    limit: int = DEFAULT_ARTIST_LIMIT,
    period: str = "overall",
    progress: ProgressCallback | None = None,
    session=None,
) -> list[Artist]:
    """
    Fetch top artists and their tags, reporting progress through a callback.

    Args:
        username: Last.fm username
        api_key: Last.fm API key
        limit: Number of artists to request
        period: One of VALID_PERIODS
        progress: Called with FetchProgress events as batches complete

    Returns:
        Artist records in rank order
    """
    session = session or requests.Session()

    _emit(progress, "artists", 0, "Fetching your top artists...")
    raw_artists = fetch_top_artists(username, api_key, limit, period, session=session)

    total = len(raw_artists)
    tagged_artists = []
    for start in range(0, total, TAG_BATCH_SIZE):
        batch = raw_artists[start : start + TAG_BATCH_SIZE]
        for raw in batch:
            tags = fetch_artist_tags(raw["name"], api_key, session=session)
            tagged_artists.append({**raw, "tags": tags})

        done = min(start + TAG_BATCH_SIZE, total)
        _emit(
            progress,
            "tags",
            round(100 * done / total),
            f"Fetched genres for {done}/{total} artists",
        )

    _emit(progress, "done", 100, "Finished fetching artists")
    return normalize_lastfm_artists(tagged_artists)


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip()).lower()


def _pick_image(images: list[dict]) -> str | None:
    by_size = {img.get("size"): img.get("#text") for img in images if img.get("#text")}
    for size in IMAGE_SIZE_PREFERENCE:
        if by_size.get(size):
            return by_size[size]
    return next(iter(by_size.values()), None)


def _parse_playcount(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def normalize_lastfm_artists(raw_artists: list[dict]) -> list[Artist]:
    """
    Convert raw Last.fm artist dicts to Artist records.

    The id is the MusicBrainz id when present, otherwise a name slug;
    rank is the position in the input list.
    """
    return [
        Artist(
            id=raw.get("mbid") or f"lastfm-{_slug(raw['name'])}",
            name=raw["name"],
            genres=tuple(raw.get("tags", [])),
            rank=index,
            image=_pick_image(raw.get("image", [])),
            url=raw.get("url"),
            playcount=_parse_playcount(raw.get("playcount")),
            source="lastfm",
        )
        for index, raw in enumerate(raw_artists)
        if raw.get("name")
    ]
