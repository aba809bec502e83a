"""
Music-Map similarity resolver.

Scrapes similar-artist data from music-map.com, including relationship
strength scores, and turns it into a pairwise similarity function for the
graph builder.
"""

import json
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import requests
from bs4 import BeautifulSoup

from constellation.fuzzy_resolver import normalize_artist_name
from constellation.models import Artist

logger = logging.getLogger(__name__)

MUSIC_MAP_BASE_URL = "https://www.music-map.com"
REQUEST_DELAY_SECONDS = 2.0

# Pattern: Aid[0]=new Array(-1,12.7927,4.52047,...);
_AID_PATTERN = re.compile(r"Aid\[0\]=new Array\(([^)]+)\);")


@dataclass
class SimilarArtist:
    """Similar artist with relationship data."""

    name: str
    rank: int
    relationship_strength: float | None = None


@dataclass
class ScraperResult:
    """Result from scraping an artist."""

    status: str
    similar_artists: list[SimilarArtist] | None = None
    error: str | None = None

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        if self.status == "error":
            return {"status": "error", "error": self.error}

        return {
            "status": "success",
            "similar_artists": [
                {
                    "name": a.name,
                    "rank": a.rank,
                    "relationship_strength": a.relationship_strength,
                }
                for a in (self.similar_artists or [])
            ],
            "total_count": len(self.similar_artists or []),
        }


def fetch_artist_page(artist_name: str, session=None) -> str | None:
    """
    Fetch the Music-Map page for a given artist.

    Args:
        artist_name: Name of the artist to search for

    Returns:
        HTML content as string, or None if request fails
    """
    # Convert artist name to URL format (spaces to +)
    url_artist = artist_name.replace(" ", "+").lower()
    url = f"{MUSIC_MAP_BASE_URL}/{url_artist}"

    headers = {
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
        )
    }
    http = session or requests

    try:
        response = http.get(url, headers=headers, timeout=10)

        if response.status_code == 404:
            logger.info("Artist not found on music-map: %s", artist_name)
            return None

        response.raise_for_status()
        return response.text

    except requests.Timeout:
        logger.warning("Timeout fetching: %s", artist_name)
        return None
    except requests.RequestException as e:
        logger.error("Error fetching %s: %s", artist_name, e)
        return None


def parse_artist_names(html: str) -> list[str]:
    """
    Extract similar artist names from HTML.

    The first link is the queried artist itself and is dropped.
    """
    soup = BeautifulSoup(html, "html.parser")
    artists = [link.get_text(strip=True) for link in soup.find_all("a", class_="S")]
    return artists[1:]


def parse_relationship_data(html: str) -> list[float]:
    """
    Extract relationship strength data from the JavaScript Aid array.

    Returns:
        First row of the Aid matrix without the leading self-relationship (-1)
    """
    match = _AID_PATTERN.search(html)
    if not match:
        logger.warning("Could not find Aid array in HTML")
        return []

    try:
        values = [float(v.strip()) for v in match.group(1).split(",")]
    except ValueError as e:
        logger.warning("Malformed Aid array: %s", e)
        return []

    if values and values[0] == -1:
        return values[1:]
    return values


def scrape_artist(artist_name: str, session=None) -> ScraperResult:
    """
    Scrape similar artists and relationship data for a given artist.

    Returns:
        ScraperResult with similar artists data or error information
    """
    logger.info("Scraping: %s", artist_name)

    html = fetch_artist_page(artist_name, session=session)
    if html is None:
        return ScraperResult(status="error", error="Failed to fetch page")

    similar_names = parse_artist_names(html)
    if not similar_names:
        return ScraperResult(status="error", error="No similar artists found")

    strengths = parse_relationship_data(html)

    similar_artists = [
        SimilarArtist(
            name=name,
            rank=i + 1,
            relationship_strength=strengths[i] if i < len(strengths) else None,
        )
        for i, name in enumerate(similar_names)
    ]
    return ScraperResult(status="success", similar_artists=similar_artists)


def scrape_artists(
    artist_names: Sequence[str],
    existing: dict[str, ScraperResult] | None = None,
    delay: float = REQUEST_DELAY_SECONDS,
    progress: Callable[[int, int, str], None] | None = None,
    session=None,
) -> dict[str, ScraperResult]:
    """
    Scrape several artists, skipping ones that already succeeded.

    Args:
        artist_names: Artists to look up
        existing: Previous results; successful entries are kept as-is
        delay: Seconds to wait between requests
        progress: Called with (done, total, artist_name) after each scrape
    """
    results = dict(existing or {})
    to_process = [
        name
        for name in artist_names
        if name not in results or results[name].status != "success"
    ]

    session = session or requests.Session()
    for i, name in enumerate(to_process, 1):
        results[name] = scrape_artist(name, session=session)
        if progress is not None:
            progress(i, len(to_process), name)
        # Be nice to the server
        if i < len(to_process) and delay > 0:
            time.sleep(delay)

    success_count = sum(1 for r in results.values() if r.status == "success")
    logger.info(
        "Scraped %d artists (%d successful in total)", len(to_process), success_count
    )
    return results


def load_existing_results(output_file: Path) -> dict[str, ScraperResult]:
    """Load existing results from JSON file if it exists."""
    if not output_file.exists():
        return {}

    try:
        with open(output_file, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load existing results: %s", e)
        return {}

    return parse_results(raw)


def parse_results(raw: dict) -> dict[str, ScraperResult]:
    """Convert a saved results mapping back into ScraperResult objects."""
    results = {}
    for artist, data in raw.items():
        if data.get("status") == "success":
            similar = [
                SimilarArtist(
                    name=a["name"],
                    rank=a["rank"],
                    relationship_strength=a.get("relationship_strength"),
                )
                for a in data.get("similar_artists", [])
            ]
            results[artist] = ScraperResult(status="success", similar_artists=similar)
        else:
            results[artist] = ScraperResult(status="error", error=data.get("error"))
    return results


def save_results(results: dict[str, ScraperResult], output_file: Path):
    """Save results to JSON file."""
    serializable_results = {
        artist: result.to_dict() for artist, result in results.items()
    }

    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(serializable_results, f, indent=2, ensure_ascii=False)


def build_strength_lookup(
    results: dict[str, ScraperResult],
) -> dict[tuple[str, str], float]:
    """
    Build a symmetric (name, name) -> strength lookup on normalized names.

    When both directions were scraped the stronger score wins.
    """
    lookup: dict[tuple[str, str], float] = {}
    for source_name, result in results.items():
        if result.status != "success":
            continue
        source_key = normalize_artist_name(source_name)
        for similar in result.similar_artists or []:
            strength = similar.relationship_strength
            if strength is None or strength <= 0:
                continue
            target_key = normalize_artist_name(similar.name)
            if target_key == source_key:
                continue
            for key in ((source_key, target_key), (target_key, source_key)):
                lookup[key] = max(lookup.get(key, 0.0), strength)
    return lookup


def similarity_fn_from_map(
    results: dict[str, ScraperResult],
) -> Callable[[Artist, Artist], float]:
    """Turn scraped music-map data into a pairwise similarity function."""
    lookup = build_strength_lookup(results)

    def similarity(first: Artist, second: Artist) -> float:
        key = (normalize_artist_name(first.name), normalize_artist_name(second.name))
        return lookup.get(key, 0.0)

    return similarity
