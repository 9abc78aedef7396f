"""
Fixed-size disjoint set used to cluster overlapping cropped textures.

Sets can only be merged, never split. Root lookup walks parent pointers
iteratively so long chains cannot exhaust the interpreter stack.
"""

from typing import Dict, List


class DisjointSet:
    """Union-find over the integers 0..n-1 (no rank balancing)."""

    def __init__(self, num_elements: int):
        if num_elements < 0:
            raise ValueError(f"num_elements must be >= 0, got {num_elements}")
        self.parent: List[int] = list(range(num_elements))

    def __len__(self) -> int:
        return len(self.parent)

    def _check(self, x: int) -> None:
        # Negative indices would silently wrap around in a Python list
        if not 0 <= x < len(self.parent):
            raise IndexError(f"Element {x} out of range for disjoint set of size {len(self.parent)}")

    def root(self, x: int) -> int:
        """Return the canonical representative of the set containing x."""
        self._check(x)
        while self.parent[x] != x:
            x = self.parent[x]
        return x

    def unite(self, x: int, y: int) -> None:
        """Merge the sets containing x and y (root of x goes under root of y)."""
        root_x = self.root(x)
        root_y = self.root(y)
        if root_x != root_y:
            self.parent[root_x] = root_y

    def is_same(self, x: int, y: int) -> bool:
        return self.root(x) == self.root(y)

    def compress(self) -> None:
        """
        Point every element directly at its root.

        Call once all unions are done; later root() lookups are then O(1).
        """
        for x in range(len(self.parent)):
            root = self.root(x)
            node = x
            while self.parent[node] != root:
                next_node = self.parent[node]
                self.parent[node] = root
                node = next_node

    def groups(self) -> Dict[int, List[int]]:
        """Map each root to its members in ascending order."""
        result: Dict[int, List[int]] = {}
        for x in range(len(self.parent)):
            result.setdefault(self.root(x), []).append(x)
        return result
