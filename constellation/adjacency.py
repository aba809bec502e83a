"""Read-only adjacency index used by pathfinding and move validation."""

from collections.abc import Iterable, Iterator, Mapping

import numpy as np
import scipy.sparse as sp

from constellation.models import Edge, Graph


class AdjacencyIndex(Mapping):
    """
    Mapping of node id -> frozenset of neighbor ids.

    Built once per Graph in O(E) and never mutated afterwards. A new Graph
    needs a new index.
    """

    def __init__(self, neighbors: Mapping[str, frozenset[str]]):
        self._neighbors = dict(neighbors)

    @classmethod
    def from_edges(
        cls, edges: Iterable[Edge], node_ids: Iterable[str] = ()
    ) -> "AdjacencyIndex":
        """
        Build an index from undirected edges.

        Args:
            edges: Graph edges
            node_ids: Extra ids to include even when they have no edges
        """
        building: dict[str, set[str]] = {node_id: set() for node_id in node_ids}
        for edge in edges:
            building.setdefault(edge.source, set()).add(edge.target)
            building.setdefault(edge.target, set()).add(edge.source)
        return cls({node_id: frozenset(ids) for node_id, ids in building.items()})

    @classmethod
    def from_graph(cls, graph: Graph) -> "AdjacencyIndex":
        return cls.from_edges(graph.edges, graph.node_ids)

    def __getitem__(self, node_id: str) -> frozenset[str]:
        return self._neighbors[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._neighbors)

    def __len__(self) -> int:
        return len(self._neighbors)

    def neighbors(self, node_id: str) -> frozenset[str]:
        """Neighbors of a node; empty for unknown ids."""
        return self._neighbors.get(node_id, frozenset())

    def is_adjacent(self, first: str, second: str) -> bool:
        """Whether moving from `first` to `second` follows an edge."""
        return second in self._neighbors.get(first, frozenset())

    def edge_count(self) -> int:
        return sum(len(ids) for ids in self._neighbors.values()) // 2

    def to_csr(self) -> tuple[sp.csr_matrix, dict[str, int], dict[int, str]]:
        """
        Convert to a symmetric sparse matrix for scipy graph traversal.

        Returns:
            Tuple of (csr_matrix, id_to_idx, idx_to_id)
        """
        id_to_idx = {node_id: idx for idx, node_id in enumerate(self._neighbors)}
        idx_to_id = {idx: node_id for node_id, idx in id_to_idx.items()}

        pairs = [
            (id_to_idx[node_id], id_to_idx[neighbor])
            for node_id, ids in self._neighbors.items()
            for neighbor in ids
        ]
        pairs.sort()
        if pairs:
            rows_tuple, cols_tuple = zip(*pairs, strict=True)
            rows = list(rows_tuple)
            cols = list(cols_tuple)
        else:
            rows, cols = [], []

        n = len(id_to_idx)
        matrix = sp.csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
        return matrix, id_to_idx, idx_to_id
