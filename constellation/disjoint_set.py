"""Array-backed disjoint-set (union-find) over dense integer indices."""

import numpy as np


class DisjointSet:
    """
    Union-find with path compression and union by rank.

    Elements are the integers 0..size-1; callers map their own ids onto
    this compact range.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"size must not be negative, got {size}")
        self.parent = np.arange(size, dtype=np.int64)
        self.rank = np.zeros(size, dtype=np.int8)
        self.component_count = size

    def __len__(self) -> int:
        return len(self.parent)

    def find(self, i: int) -> int:
        """Return the representative of i's component."""
        root = i
        while self.parent[root] != root:
            root = int(self.parent[root])

        # Path compression
        while self.parent[i] != root:
            next_i = int(self.parent[i])
            self.parent[i] = root
            i = next_i

        return root

    def union(self, i: int, j: int) -> bool:
        """
        Merge the components containing i and j.

        Returns:
            True if two different components were merged
        """
        root_i = self.find(i)
        root_j = self.find(j)
        if root_i == root_j:
            return False

        if self.rank[root_i] < self.rank[root_j]:
            root_i, root_j = root_j, root_i
        self.parent[root_j] = root_i
        if self.rank[root_i] == self.rank[root_j]:
            self.rank[root_i] += 1

        self.component_count -= 1
        return True

    def connected(self, i: int, j: int) -> bool:
        return self.find(i) == self.find(j)
