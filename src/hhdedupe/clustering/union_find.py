"""Union-Find (Disjoint Set Union) data structure for clustering."""

from collections.abc import Iterable


class UnionFind:
    """Union-Find data structure with path compression and union by rank.

    Implements the classic DSU algorithm for efficiently maintaining
    connected components as edges arrive. Deletion is not supported by the
    algorithm; ``reset`` detaches a whole component so it can be rebuilt
    from its remaining edges.

    Attributes
    ----------
    parent : dict[str, str]
        Parent pointers for each element.
    rank : dict[str, int]
        Rank (approximate tree height) for each root.
    """

    def __init__(self) -> None:
        """Initialize empty Union-Find structure."""
        self.parent: dict[str, str] = {}
        self.rank: dict[str, int] = {}

    def __contains__(self, x: object) -> bool:
        return x in self.parent

    def __len__(self) -> int:
        return len(self.parent)

    def make_set(self, x: str) -> None:
        """Create a new set containing element x.

        Parameters
        ----------
        x : str
            Element to add.
        """
        if x not in self.parent:
            self.parent[x] = x
            self.rank[x] = 0

    def find(self, x: str) -> str:
        """Find root of set containing x with path compression.

        Iterative, so deep trees never hit the recursion limit.

        Parameters
        ----------
        x : str
            Element to find.

        Returns
        -------
        str
            Root of set containing x.
        """
        if x not in self.parent:
            self.make_set(x)
            return x

        root = x
        while self.parent[root] != root:
            root = self.parent[root]

        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]

        return root

    def union(self, x: str, y: str) -> str:
        """Union sets containing x and y using union by rank.

        Parameters
        ----------
        x : str
            First element.
        y : str
            Second element.

        Returns
        -------
        str
            Root of the merged set.
        """
        root_x = self.find(x)
        root_y = self.find(y)

        if root_x == root_y:
            return root_x

        if self.rank[root_x] < self.rank[root_y]:
            self.parent[root_x] = root_y
            return root_y
        if self.rank[root_x] > self.rank[root_y]:
            self.parent[root_y] = root_x
            return root_x
        self.parent[root_y] = root_x
        self.rank[root_x] += 1
        return root_x

    def reset(self, elements: Iterable[str]) -> None:
        """Make every element a singleton again.

        Only safe for a set of elements closed under the parent relation
        (e.g. every member of one component).

        Parameters
        ----------
        elements : Iterable[str]
            Elements to detach.
        """
        for element in elements:
            self.parent[element] = element
            self.rank[element] = 0
