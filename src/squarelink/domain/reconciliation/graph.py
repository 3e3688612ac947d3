"""Disjoint-set forest used to cluster rows that share identifying signals.

``find`` is iterative (two-pass path compression) so very large clusters do not
hit the recursion limit; ``union`` is by rank.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

T = TypeVar("T")


@dataclass
class DisjointSet(Generic[T]):
    _parent: dict[T, T] = field(default_factory=dict, repr=False)
    _rank: dict[T, int] = field(default_factory=dict, repr=False)

    def __contains__(self, item: object) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def add(self, item: T) -> None:
        if item not in self._parent:
            self._parent[item] = item
            self._rank[item] = 0

    def find(self, item: T) -> T:
        self.add(item)
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, left: T, right: T) -> T:
        root_left = self.find(left)
        root_right = self.find(right)
        if root_left == root_right:
            return root_left
        if self._rank[root_left] < self._rank[root_right]:
            root_left, root_right = root_right, root_left
        self._parent[root_right] = root_left
        if self._rank[root_left] == self._rank[root_right]:
            self._rank[root_left] += 1
        return root_left

    def union_all(self, items: Iterable[T]) -> None:
        """Connect every item in ``items`` into one set."""

        iterator = iter(items)
        first = next(iterator, None)
        if first is None:
            return
        self.add(first)
        for item in iterator:
            self.union(first, item)

    def components(self) -> list[list[T]]:
        grouped: dict[T, list[T]] = defaultdict(list)
        for item in list(self._parent):
            grouped[self.find(item)].append(item)
        return list(grouped.values())
