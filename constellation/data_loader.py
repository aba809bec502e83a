"""Load artist data from JSON and serialize built graphs."""

import json
import logging
from pathlib import Path

from constellation.models import Artist, Graph
from constellation.music_map_scraper import ScraperResult, parse_results

logger = logging.getLogger(__name__)


def _artist_from_entry(entry: dict | str, index: int) -> Artist:
    if isinstance(entry, str):
        return Artist(
            id=f"file-{'-'.join(entry.lower().split())}",
            name=entry,
            rank=index,
        )

    return Artist(
        id=str(entry.get("id") or f"file-{'-'.join(entry['name'].lower().split())}"),
        name=entry["name"],
        genres=tuple(entry.get("genres", [])),
        rank=entry.get("rank", index),
        image=entry.get("image"),
        url=entry.get("url"),
        playcount=entry.get("playcount", 0),
        source=entry.get("source", "file"),
    )


def load_artists(filepath: Path) -> list[Artist]:
    """
    Load a ranked artist list from JSON.

    Args:
        filepath: Path to JSON file with {"artists": [...]} structure; each
                  entry is an artist object or a bare artist name

    Returns:
        List of Artist records in file order
    """
    if not filepath.exists():
        error_msg = f"File not found: {filepath}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    with open(filepath, encoding="utf-8") as f:
        data = json.load(f)

    artists = [
        _artist_from_entry(entry, index)
        for index, entry in enumerate(data["artists"])
    ]
    logger.info("Loaded %d artists", len(artists))

    return artists


def load_similar_artists_map(filepath: Path) -> dict[str, ScraperResult]:
    """
    Load a scraped similar-artists map and filter to only successful scrapes.

    Args:
        filepath: Path to similar_artists_map.json

    Returns:
        Dict mapping artist name to ScraperResult (only successful)

    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the file is not valid JSON
    """
    if not filepath.exists():
        error_msg = f"File not found: {filepath}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    with open(filepath, encoding="utf-8") as f:
        raw_results = parse_results(json.load(f))

    result = {
        artist_name: scraped
        for artist_name, scraped in raw_results.items()
        if scraped.status == "success"
    }

    logger.info(
        "Loaded %d successful artists (%d failed/skipped)",
        len(result),
        len(raw_results) - len(result),
    )

    return result


def graph_to_dict(graph: Graph) -> dict:
    """Convert a Graph to the nodes/links/genreClusters JSON shape."""
    return {
        "nodes": [
            {
                "id": node.id,
                "name": node.name,
                "genres": list(node.genres),
                "rank": node.rank,
                "val": node.size,
                "color": node.color,
                "primaryGenre": node.primary_genre,
                "image": node.image,
                "url": node.url,
                "playcount": node.playcount,
                "source": node.source,
            }
            for node in graph.nodes
        ],
        "links": [
            {
                "source": edge.source,
                "target": edge.target,
                "sharedGenres": list(edge.shared_attributes),
                "value": edge.weight,
            }
            for edge in graph.edges
        ],
        "genreClusters": [
            {
                "id": cluster.id,
                "name": cluster.name,
                "nodeCount": cluster.node_count,
                "colorIndex": cluster.color_index,
            }
            for cluster in graph.clusters
        ],
    }


def save_graph(graph: Graph, output_file: Path):
    """Save graph JSON for the rendering layer."""
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(graph_to_dict(graph), f, indent=2, ensure_ascii=False)

    logger.info("Graph saved to: %s", output_file)
