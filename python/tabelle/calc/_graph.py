"""Dependency graph for formula cells with topological ordering."""

from __future__ import annotations

import heapq
from collections import deque
from collections.abc import Iterable

from tabelle.calc._references import Coord


class DependencyGraph:
    """Tracks which cells each formula reads, for evaluation ordering.

    An edge ``B -> A`` means "A's formula reads B".  Cells are 0-based
    ``(row, col)`` tuples.  Nodes with no edges left are dropped, so the
    graph never holds stale entries.
    """

    __slots__ = ("dependencies", "dependents")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[Coord, set[Coord]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[Coord, set[Coord]] = {}

    def __len__(self) -> int:
        return len(self.dependencies)

    def __contains__(self, cell: object) -> bool:
        return cell in self.dependencies or cell in self.dependents

    def set_dependencies(self, cell: Coord, refs: Iterable[Coord]) -> None:
        """Replace every "cell reads X" edge with edges to *refs*."""
        new_refs = set(refs)
        old_refs = self.dependencies.pop(cell, set())
        for ref in old_refs - new_refs:
            readers = self.dependents.get(ref)
            if readers is not None:
                readers.discard(cell)
                if not readers:
                    del self.dependents[ref]
        if not new_refs:
            return
        self.dependencies[cell] = new_refs
        for ref in new_refs - old_refs:
            self.dependents.setdefault(ref, set()).add(cell)

    def remove(self, cell: Coord) -> None:
        """Forget the formula at *cell* (its outgoing reads)."""
        self.set_dependencies(cell, ())

    def clear(self) -> None:
        self.dependencies.clear()
        self.dependents.clear()

    def transitive_dependents(self, roots: Iterable[Coord]) -> set[Coord]:
        """Every cell that reads, directly or indirectly, from *roots*.

        A root is included only if it is reachable from a root (a cycle).
        """
        found: set[Coord] = set()
        queue: deque[Coord] = deque(roots)
        while queue:
            cell = queue.popleft()
            for dep in self.dependents.get(cell, ()):
                if dep not in found:
                    found.add(dep)
                    queue.append(dep)
        return found

    def is_cyclic(self, cell: Coord) -> bool:
        """True if *cell* can reach itself through the graph."""
        return cell in self.transitive_dependents((cell,))

    def recompute_order(self, roots: Iterable[Coord]) -> tuple[list[Coord], set[Coord]]:
        """Order *roots* and their transitive dependents for evaluation.

        Returns ``(order, cyclic)``: ``order`` is a topological order (Kahn's
        algorithm, ties broken by ascending ``(row, col)``) and ``cyclic`` holds
        the cells Kahn's algorithm could not place, namely cells on a cycle or
        downstream of one.
        """
        roots = set(roots)
        return self._kahn(roots | self.transitive_dependents(roots))

    def topological_order(self, cells: Iterable[Coord] | None = None) -> tuple[list[Coord], set[Coord]]:
        """Order *cells* (default: every formula cell) for a full recalculation."""
        if cells is None:
            cells = self.dependencies.keys()
        return self._kahn(set(cells))

    def _kahn(self, cells: set[Coord]) -> tuple[list[Coord], set[Coord]]:
        # Only edges inside the recompute set constrain the order.
        in_degree: dict[Coord, int] = {
            cell: len(self.dependencies.get(cell, set()) & cells) for cell in cells
        }
        heap = [cell for cell, degree in in_degree.items() if degree == 0]
        heapq.heapify(heap)

        order: list[Coord] = []
        while heap:
            cell = heapq.heappop(heap)
            order.append(cell)
            for dep in self.dependents.get(cell, ()):
                if dep in in_degree:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        heapq.heappush(heap, dep)

        cyclic = cells - set(order)
        return order, cyclic

    def max_depth(self, roots: Iterable[Coord]) -> int:
        """Longest dependency chain from *roots* through their dependents."""
        order, _ = self.recompute_order(roots)
        depth: dict[Coord, int] = {}
        max_d = 0
        for cell in order:
            d = depth.get(cell, 0)
            for dep in self.dependents.get(cell, ()):
                if depth.get(dep, 0) < d + 1:
                    depth[dep] = d + 1
                    max_d = max(max_d, d + 1)
        return max_d
