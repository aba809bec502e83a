"""Build a connected, degree-bounded similarity graph from ranked artists."""

import logging
from collections.abc import Callable, Sequence

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components

from constellation.cluster_labeler import colorize_nodes, label_clusters
from constellation.config import MAX_NODE_SIZE, MIN_NODE_SIZE, GraphConfig
from constellation.disjoint_set import DisjointSet
from constellation.models import Artist, Edge, Graph, Node

logger = logging.getLogger(__name__)

SimilarityFn = Callable[[Artist, Artist], float]

# Exponent of the rank-to-size decay curve
SIZE_DECAY_EXPONENT = 1.5


def node_size(
    index: int,
    total: int,
    min_size: float = MIN_NODE_SIZE,
    max_size: float = MAX_NODE_SIZE,
) -> float:
    """
    Calculate node size from listening rank.

    Only rank order is known, so the index stands in for listen count;
    top-ranked artists get much larger nodes.
    """
    normalized_rank = 1 - (index / total)
    return min_size + (max_size - min_size) * normalized_rank**SIZE_DECAY_EXPONENT


def shared_genres(first: Artist | Node, second: Artist | Node) -> tuple[str, ...]:
    """Genres of `first` that also appear in `second`, in `first`'s order."""
    other = set(second.genres)
    return tuple(genre for genre in first.genres if genre in other)


def _dedupe_artists(artists: Sequence[Artist]) -> list[Artist]:
    seen = set()
    unique = []
    for artist in artists:
        if artist.id in seen:
            logger.warning("Ignoring duplicate artist id: %s", artist.id)
            continue
        seen.add(artist.id)
        unique.append(artist)
    return unique


def _make_nodes(artists: list[Artist], config: GraphConfig) -> list[Node]:
    total = len(artists)
    return [
        Node(
            id=artist.id,
            name=artist.name,
            genres=tuple(artist.genres),
            rank=artist.rank,
            size=node_size(index, total, config.min_node_size, config.max_node_size),
            image=artist.image,
            url=artist.url,
            playcount=artist.playcount,
            source=artist.source,
        )
        for index, artist in enumerate(artists)
    ]


def find_candidate_edges(
    artists: Sequence[Artist], similarity_fn: SimilarityFn | None = None
) -> list[tuple[int, int, Edge]]:
    """
    Enumerate all artist pairs with positive similarity.

    Args:
        artists: Artists in rank order (duplicates already removed)
        similarity_fn: Optional pairwise score; defaults to shared-genre count

    Returns:
        List of (i, j, Edge) sorted by weight descending. The sort is stable,
        so equal weights keep pair enumeration order.
    """
    candidates = []
    for i in range(len(artists)):
        for j in range(i + 1, len(artists)):
            shared = shared_genres(artists[i], artists[j])
            if similarity_fn is None:
                weight = float(len(shared))
            else:
                weight = float(similarity_fn(artists[i], artists[j]))

            if weight <= 0:
                continue

            candidates.append(
                (
                    i,
                    j,
                    Edge(
                        source=artists[i].id,
                        target=artists[j].id,
                        shared_attributes=shared,
                        weight=weight,
                    ),
                )
            )

    candidates.sort(key=lambda candidate: -candidate[2].weight)
    return candidates


def select_edges(
    node_count: int,
    candidates: list[tuple[int, int, Edge]],
    max_degree: int,
) -> tuple[list[Edge], np.ndarray]:
    """
    Pick a degree-bounded edge subset that keeps components connected.

    Phase 1 walks the candidates strongest-first and accepts every edge that
    bridges two components while both endpoints have spare degree. Phase 2
    re-walks the list and fills whatever degree capacity is left.

    Returns:
        Tuple of (accepted edges, per-node degree array)
    """
    components = DisjointSet(node_count)
    degrees = np.zeros(node_count, dtype=np.int64)
    accepted = np.zeros(len(candidates), dtype=bool)
    edges = []

    # Phase 1: bridges between components
    for position, (i, j, edge) in enumerate(candidates):
        if components.connected(i, j):
            continue
        if degrees[i] >= max_degree or degrees[j] >= max_degree:
            continue
        edges.append(edge)
        accepted[position] = True
        degrees[i] += 1
        degrees[j] += 1
        components.union(i, j)

    bridge_count = len(edges)

    # Phase 2: densify with remaining capacity
    for position, (i, j, edge) in enumerate(candidates):
        if accepted[position]:
            continue
        if degrees[i] >= max_degree or degrees[j] >= max_degree:
            continue
        edges.append(edge)
        accepted[position] = True
        degrees[i] += 1
        degrees[j] += 1

    logger.debug(
        "Selected %d bridge edges and %d densifying edges from %d candidates",
        bridge_count,
        len(edges) - bridge_count,
        len(candidates),
    )
    return edges, degrees


def build_graph(
    artists: Sequence[Artist],
    similarity_fn: SimilarityFn | None = None,
    config: GraphConfig | None = None,
) -> Graph:
    """
    Convert a ranked artist list into a connected, degree-bounded graph.

    Args:
        artists: Artists ordered by rank (most listened first)
        similarity_fn: Optional pairwise similarity; shared-genre count if None
        config: Graph settings (degree cap, clustering, node sizes)

    Returns:
        Graph with only edge-bearing nodes, plus genre clusters and node colors.
        Fewer than two artists yields an empty graph.
    """
    config = config or GraphConfig()
    unique_artists = _dedupe_artists(artists)

    if len(unique_artists) < 2:
        logger.info("Fewer than 2 artists supplied, returning empty graph")
        return Graph()

    all_nodes = _make_nodes(unique_artists, config)
    candidates = find_candidate_edges(unique_artists, similarity_fn)
    edges, degrees = select_edges(len(all_nodes), candidates, config.max_degree)

    nodes = [node for index, node in enumerate(all_nodes) if degrees[index] > 0]

    clusters = label_clusters(
        nodes,
        max_clusters=config.max_clusters,
        min_members=config.min_cluster_members,
    )
    colorize_nodes(nodes, clusters)

    logger.info(
        "Graph built: %d nodes, %d edges, %d clusters (%d unconnected artists dropped)",
        len(nodes),
        len(edges),
        len(clusters),
        len(all_nodes) - len(nodes),
    )
    return Graph(nodes=nodes, edges=edges, clusters=clusters)


def count_components(graph: Graph) -> int:
    """Number of connected components in the graph."""
    if graph.is_empty:
        return 0

    id_to_idx = {node_id: idx for idx, node_id in enumerate(graph.node_ids)}
    rows = [id_to_idx[edge.source] for edge in graph.edges]
    cols = [id_to_idx[edge.target] for edge in graph.edges]
    n = len(id_to_idx)
    matrix = sp.csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))

    count, _labels = connected_components(matrix, directed=False)
    return int(count)
