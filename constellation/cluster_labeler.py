"""Genre cluster labeling and node coloring for display."""

import math
import re
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from constellation.config import MAX_GENRE_CLUSTERS, MIN_CLUSTER_MEMBERS
from constellation.models import (
    CLUSTER_PALETTE,
    DEFAULT_NODE_COLOR,
    UNKNOWN_GENRE,
    Cluster,
    Node,
)

# Spatial labels
DEFAULT_GRID_SIZE = 150.0
MAX_SPATIAL_LABELS = 12
MIN_CELL_NODES = 3
GENRES_PER_LABEL = 4
LABEL_SPACING_FACTOR = 1.2

GENRE_MODIFIERS = (
    "indie",
    "alt",
    "alternative",
    "modern",
    "neo",
    "post",
    "new",
    "dark",
    "lo-fi",
    "experimental",
    "progressive",
    "psychedelic",
    "classic",
    "deep",
    "tropical",
    "melodic",
    "hard",
    "soft",
)

CORE_GENRES = (
    "rock",
    "pop",
    "hip hop",
    "rap",
    "electronic",
    "edm",
    "house",
    "techno",
    "jazz",
    "soul",
    "r&b",
    "metal",
    "punk",
    "folk",
    "country",
    "blues",
    "classical",
    "ambient",
    "wave",
    "core",
    "trap",
    "bass",
    "dance",
)


@dataclass(frozen=True)
class SpatialLabel:
    """A region label anchored to a node so it follows the layout."""

    id: str
    name: str
    anchor_node_id: str
    node_count: int
    color: str
    genres: tuple[str, ...]


def format_genre_name(genre: str) -> str:
    """Capitalize each space-separated word of a genre tag."""
    return " ".join(word[:1].upper() + word[1:] for word in genre.split(" "))


def label_clusters(
    nodes: Sequence[Node],
    max_clusters: int = MAX_GENRE_CLUSTERS,
    min_members: int = MIN_CLUSTER_MEMBERS,
) -> list[Cluster]:
    """
    Derive genre clusters from genre frequency across nodes.

    Args:
        nodes: Surviving graph nodes
        max_clusters: Maximum number of clusters to keep
        min_members: Minimum number of nodes carrying a genre

    Returns:
        Clusters ordered by member count descending; ties keep the order in
        which genres first appear across the nodes
    """
    genre_counts = Counter(genre for node in nodes for genre in node.genres)

    significant = [
        genre for genre, count in genre_counts.most_common() if count >= min_members
    ][:max_clusters]

    return [
        Cluster(
            id=genre,
            name=format_genre_name(genre),
            member_node_ids=tuple(node.id for node in nodes if genre in node.genres),
            color_index=index,
        )
        for index, genre in enumerate(significant)
    ]


def colorize_nodes(
    nodes: Sequence[Node],
    clusters: Sequence[Cluster],
    palette: Sequence[str] = CLUSTER_PALETTE,
) -> None:
    """
    Assign each node the color of its first genre that made the cluster cut.

    Nodes matching no cluster get DEFAULT_NODE_COLOR. Mutates nodes in place.
    """
    genre_to_color = {
        cluster.id: palette[cluster.color_index % len(palette)] for cluster in clusters
    }

    for node in nodes:
        matched = next((g for g in node.genres if g in genre_to_color), None)
        if matched is not None:
            node.color = genre_to_color[matched]
            node.primary_genre = matched
        else:
            node.color = DEFAULT_NODE_COLOR
            node.primary_genre = node.genres[0] if node.genres else UNKNOWN_GENRE


def mixed_genre_name(genres: Sequence[str]) -> str:
    """
    Blend several genre tags into one region name.

    Tries modifier + core genre ("Indie Rock"), then descriptor + core genre,
    then a blend of the first two tags, falling back to the first tag.
    """
    if not genres:
        return "Unknown"
    if len(genres) == 1:
        return format_genre_name(genres[0])

    parts = [re.split(r"[\s-]+", genre.lower()) for genre in genres]

    found_modifier = None
    found_core = None
    descriptor = None

    for words in parts:
        for word in words:
            if found_modifier is None and word in GENRE_MODIFIERS:
                found_modifier = word
            if found_core is None and any(
                word in core or core.split(" ")[0] in word for core in CORE_GENRES
            ):
                found_core = word
            if (
                descriptor is None
                and len(word) > 3
                and word not in GENRE_MODIFIERS
                and not any(word in core for core in CORE_GENRES)
            ):
                descriptor = word

    if found_modifier and found_core:
        result = f"{found_modifier} {found_core}"
    elif descriptor and found_core:
        result = f"{descriptor} {found_core}"
    else:
        first = parts[0][0]
        second = parts[1][-1]
        result = f"{first}-{second}" if first != second else genres[0]

    return format_genre_name(result)


def spatial_genre_labels(
    nodes: Sequence[Node],
    positions: Mapping[str, tuple[float, float]],
    grid_size: float = DEFAULT_GRID_SIZE,
    max_labels: int = MAX_SPATIAL_LABELS,
) -> list[SpatialLabel]:
    """
    Label dense regions of a laid-out graph with blended genre names.

    Args:
        nodes: Graph nodes
        positions: Node id -> (x, y) from the layout engine; nodes without a
                   finite position are ignored
        grid_size: Cell edge length used to bin nodes
        max_labels: Maximum number of labels returned

    Returns:
        Labels for the most populated cells, largest first
    """
    placed = [
        (node, positions[node.id])
        for node in nodes
        if node.id in positions
        and all(math.isfinite(coord) for coord in positions[node.id])
    ]
    if not placed:
        return []

    min_x = min(x for _node, (x, _y) in placed)
    min_y = min(y for _node, (_x, y) in placed)

    cells: dict[str, list[Node]] = {}
    cell_genres: dict[str, Counter] = {}
    for node, (x, y) in placed:
        key = f"{math.floor((x - min_x) / grid_size)},{math.floor((y - min_y) / grid_size)}"
        cells.setdefault(key, []).append(node)
        cell_genres.setdefault(key, Counter()).update(node.genres)

    dense_cells = sorted(
        (key for key, members in cells.items() if len(members) >= MIN_CELL_NODES),
        key=lambda key: -len(cells[key]),
    )

    labels: list[SpatialLabel] = []
    used_anchor_ids = set()

    for key in dense_cells:
        if len(labels) >= max_labels:
            break

        top_genres = [g for g, _count in cell_genres[key].most_common(GENRES_PER_LABEL)]
        if not top_genres:
            continue

        dominant = top_genres[0]
        eligible = sorted(
            (
                node
                for node in cells[key]
                if node.id not in used_anchor_ids and dominant in node.genres
            ),
            key=lambda node: -node.size,
        )
        if not eligible:
            continue

        anchor = eligible[0]
        used_anchor_ids.add(anchor.id)
        anchor_x, anchor_y = positions[anchor.id]

        too_close = any(
            math.dist((anchor_x, anchor_y), positions[label.anchor_node_id])
            < grid_size * LABEL_SPACING_FACTOR
            for label in labels
        )
        if too_close:
            continue

        labels.append(
            SpatialLabel(
                id=key,
                name=mixed_genre_name(top_genres),
                anchor_node_id=anchor.id,
                node_count=len(cells[key]),
                color=anchor.color or DEFAULT_NODE_COLOR,
                genres=tuple(top_genres),
            )
        )

    return labels
