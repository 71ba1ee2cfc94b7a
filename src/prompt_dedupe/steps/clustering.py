from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

from prompt_dedupe.models import Cluster, SimilarityEdge


class DisjointSet:
    """Union-find over a fixed id set, stored as index arrays."""

    def __init__(self, items: Iterable[str]) -> None:
        self._index: dict[str, int] = {}
        self._items: list[str] = []
        for item in items:
            if item not in self._index:
                self._index[item] = len(self._items)
                self._items.append(item)
        self._parent = list(range(len(self._items)))
        self._rank = [0] * len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._index

    def find(self, item: str) -> str:
        return self._items[self._find(self._index[item])]

    def union(self, left: str, right: str) -> bool:
        """Merge the two sets; False if they were already one."""
        root_left = self._find(self._index[left])
        root_right = self._find(self._index[right])
        if root_left == root_right:
            return False

        if self._rank[root_left] < self._rank[root_right]:
            root_left, root_right = root_right, root_left
        self._parent[root_right] = root_left
        if self._rank[root_left] == self._rank[root_right]:
            self._rank[root_left] += 1
        return True

    def groups(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = defaultdict(list)
        for position, item in enumerate(self._items):
            grouped[self._items[self._find(position)]].append(item)
        return dict(grouped)

    def _find(self, position: int) -> int:
        root = position
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[position] != root:
            self._parent[position], position = root, self._parent[position]
        return root


def cluster_records(record_ids: Sequence[str], edges: Iterable[SimilarityEdge]) -> list[Cluster]:
    """Partition `record_ids` into transitively connected clusters, singletons included.

    The result depends only on the edge set, never on edge order or on which
    id union-find happened to pick as root.
    """
    uf = DisjointSet(record_ids)
    edges = list(edges)
    for edge in edges:
        uf.union(edge.left_id, edge.right_id)

    scores: dict[str, list[float]] = defaultdict(list)
    for edge in edges:
        scores[uf.find(edge.left_id)].append(edge.score)

    members_by_root = uf.groups()
    ordered = sorted(
        ((sorted(members), scores.get(root, [])) for root, members in members_by_root.items()),
        key=lambda item: (-len(item[0]), item[0][0]),
    )
    width = max(4, len(str(len(ordered))))
    return [
        Cluster(
            cluster_id=f"cluster_{index:0{width}d}",
            record_ids=members,
            confidence=sum(cluster_scores) / len(cluster_scores) if cluster_scores else 1.0,
        )
        for index, (members, cluster_scores) in enumerate(ordered, start=1)
    ]
