"""Pick solvable start/target pairs and their optimal paths."""

import logging
import random
from collections.abc import Sequence

import numpy as np
from scipy.sparse.csgraph import shortest_path

from constellation.adjacency import AdjacencyIndex
from constellation.config import ChallengeConfig
from constellation.models import Challenge, Node

logger = logging.getLogger(__name__)

# Sentinel value indicating no path exists in the predecessors array
NO_PATH_SENTINEL = -9999


def _bfs_from(
    adjacency: AdjacencyIndex, start_id: str
) -> tuple[np.ndarray, np.ndarray, dict[str, int], dict[int, str]]:
    """
    Run an unweighted breadth-first search from one node.

    Returns:
        Tuple of (distances, predecessors, id_to_idx, idx_to_id)

    Raises:
        ValueError: If start_id is not in the adjacency index
    """
    if start_id not in adjacency:
        raise ValueError(f"Start node not in adjacency index: {start_id}")

    graph, id_to_idx, idx_to_id = adjacency.to_csr()
    distances, predecessors = shortest_path(
        graph,
        directed=False,
        unweighted=True,
        indices=id_to_idx[start_id],
        return_predecessors=True,
    )
    return distances, predecessors, id_to_idx, idx_to_id


def reconstruct_path(
    predecessors: np.ndarray,
    source_idx: int,
    target_idx: int,
    idx_to_id: dict[int, str],
) -> list[str] | None:
    """Retrace predecessor pointers from target back to source."""
    if source_idx == target_idx:
        return [idx_to_id[source_idx]]
    if predecessors[target_idx] == NO_PATH_SENTINEL:
        return None

    path = []
    current = target_idx
    while current != source_idx:
        path.append(idx_to_id[current])
        current = int(predecessors[current])
        if current == NO_PATH_SENTINEL:
            return None

    path.append(idx_to_id[source_idx])
    return list(reversed(path))


def bfs_distances(adjacency: AdjacencyIndex, start_id: str) -> dict[str, int]:
    """Hop distance from start_id to every reachable node (itself included)."""
    distances, _predecessors, _id_to_idx, idx_to_id = _bfs_from(adjacency, start_id)
    return {
        idx_to_id[idx]: int(distance)
        for idx, distance in enumerate(distances)
        if np.isfinite(distance)
    }


def shortest_path_between(
    adjacency: AdjacencyIndex, start_id: str, target_id: str
) -> list[str] | None:
    """One shortest path from start_id to target_id, or None if unreachable."""
    _distances, predecessors, id_to_idx, idx_to_id = _bfs_from(adjacency, start_id)
    if target_id not in id_to_idx:
        return None
    return reconstruct_path(
        predecessors, id_to_idx[start_id], id_to_idx[target_id], idx_to_id
    )


def _sample_start(
    pool: list[Node], prefer_popular: bool, rng: random.Random
) -> Node:
    if prefer_popular:
        return rng.choices(pool, weights=[node.size for node in pool], k=1)[0]
    return rng.choice(pool)


def generate_challenge(
    nodes: Sequence[Node],
    adjacency: AdjacencyIndex,
    config: ChallengeConfig | None = None,
    rng: random.Random | None = None,
    start_node_id: str | None = None,
) -> Challenge | None:
    """
    Generate a start/target pair whose distance falls within the hop band.

    Args:
        nodes: Graph nodes (sizes weight the start choice when prefer_popular)
        adjacency: Adjacency index of the same graph
        config: Hop band, popularity preference and attempt cap
        rng: Random source, for reproducible challenges
        start_node_id: Fix the start node instead of sampling it

    Returns:
        Challenge, or None if no pair in the band was found within the
        attempt cap (the graph is too small or sparse for this band)
    """
    config = config or ChallengeConfig()
    rng = rng or random.Random()

    pool = [node for node in nodes if node.id in adjacency]
    if start_node_id is not None:
        pool = [node for node in pool if node.id == start_node_id]
        if not pool:
            raise ValueError(f"Start node not in graph: {start_node_id}")

    if not pool:
        logger.warning("No nodes available for challenge generation")
        return None

    graph, id_to_idx, idx_to_id = adjacency.to_csr()

    for attempt in range(1, config.max_attempts + 1):
        if not pool:
            break

        start = _sample_start(pool, config.prefer_popular, rng)
        pool.remove(start)
        start_idx = id_to_idx[start.id]

        distances, predecessors = shortest_path(
            graph,
            directed=False,
            unweighted=True,
            indices=start_idx,
            return_predecessors=True,
        )

        in_band = [
            idx
            for idx, distance in enumerate(distances)
            if np.isfinite(distance)
            and config.min_hops <= distance <= config.max_hops
        ]
        if not in_band:
            logger.debug(
                "Attempt %d: no target within %d-%d hops of %s",
                attempt,
                config.min_hops,
                config.max_hops,
                start.name,
            )
            continue

        target_idx = rng.choice(in_band)
        path = reconstruct_path(predecessors, start_idx, target_idx, idx_to_id)
        if path is None:
            continue

        challenge = Challenge(
            start_node_id=start.id,
            target_node_id=idx_to_id[target_idx],
            optimal_path=tuple(path),
        )
        logger.info(
            "Challenge generated after %d attempt(s): %s -> %s (%d hops)",
            attempt,
            challenge.start_node_id,
            challenge.target_node_id,
            challenge.optimal_hops,
        )
        return challenge

    logger.warning(
        "Could not generate a challenge within %d-%d hops",
        config.min_hops,
        config.max_hops,
    )
    return None
