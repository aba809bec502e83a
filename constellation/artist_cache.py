"""Opaque key/value cache of fetched artists and built graph data."""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path

from constellation.models import Artist

logger = logging.getLogger(__name__)

CACHE_VERSION = 1
CACHE_TTL_SECONDS = 60 * 60 * 6
CACHE_PREFIX = "lastfm:cache:"


@dataclass(frozen=True)
class CacheEntry:
    artists: list[Artist]
    graph_data: dict
    saved_at: float
    is_fresh: bool


def _normalize_graph_data(data) -> dict:
    data = data if isinstance(data, dict) else {}
    return {
        key: data[key] if isinstance(data.get(key), list) else []
        for key in ("nodes", "links", "genreClusters")
    }


class ArtistCache:
    """
    JSON-file backed cache keyed by username.

    Entries older than the TTL are still returned but flagged stale, so the
    caller can show them while refetching. Storage failures are logged and
    otherwise ignored; the cache is never required for correctness.
    """

    def __init__(
        self,
        path: Path,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        version: int = CACHE_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path
        self.ttl_seconds = ttl_seconds
        self.version = version
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{CACHE_PREFIX}{key}:v{self.version}"

    def _load_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read cache %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def read(self, key: str) -> CacheEntry | None:
        """Return the cached entry for key, or None if missing or unreadable."""
        if not key:
            return None

        raw = self._load_all().get(self._key(key))
        if not isinstance(raw, dict) or not isinstance(raw.get("artists"), list):
            return None

        try:
            artists = [
                Artist(**{**entry, "genres": tuple(entry.get("genres", []))})
                for entry in raw["artists"]
            ]
        except (TypeError, AttributeError) as e:
            logger.warning("Discarding malformed cache entry %s: %s", key, e)
            return None

        saved_at = raw.get("savedAt")
        saved_at = saved_at if isinstance(saved_at, (int, float)) else 0
        is_fresh = saved_at > 0 and (self._clock() - saved_at) < self.ttl_seconds

        return CacheEntry(
            artists=artists,
            graph_data=_normalize_graph_data(raw.get("graphData")),
            saved_at=saved_at,
            is_fresh=is_fresh,
        )

    def write(self, key: str, artists: list[Artist], graph_data: dict) -> bool:
        """
        Store artists and graph data under key.

        Returns:
            False if the cache file could not be written
        """
        if not key:
            return False

        data = self._load_all()
        data[self._key(key)] = {
            "savedAt": self._clock(),
            "artists": [asdict(artist) for artist in artists],
            "graphData": graph_data,
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
        except OSError as e:
            logger.warning("Could not write cache %s: %s", self.path, e)
            return False

        return True
