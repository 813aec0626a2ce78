"""Spatial allocation of customer points onto their nearest pipe.

`CustomerPointsLookup` owns the pipe -> customer point ids index. A point is
allocated to the pipe at minimum Euclidean distance; distance, snapped
position and fraction along the pipe come from projecting the point onto the
pipe polyline (per segment, via shapely). Exact ties go to the smaller pipe id
(see :func:`~wdngraph.utils.ids.id_sort_key`).

Pipes and points are bucketed in a uniform grid. With a ``search_radius``
the candidates for a point are the pipes whose cells lie within that radius;
points with no pipe in range stay unallocated. Without a radius the nearest
pipe is found by visiting grid rings of growing size around the point until
no unvisited pipe can be nearer than the best one found. In both modes a pipe
is only projected when its bounding box is close enough to beat the current
best distance.

When no cell size is configured and the radius is unbounded, the cell size is
taken from the median extent of the first pipes indexed.

Edits are applied through :meth:`CustomerPointsLookup.update`, which only
recomputes the points affected by the changed pipes and points. Each call
returns a :class:`LookupUpdate` describing what was recomputed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from shapely.geometry import LineString, Point

from wdngraph.logging import get_logger
from wdngraph.model.assets import Pipe
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.types import Position
from wdngraph.utils.ids import id_sort_key

logger = get_logger(__name__)

Cell = Tuple[int, int]
Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Allocation:
    """Where a customer point attaches to the network.

    Attributes:
        pipe_id: Pipe the point is allocated to.
        snapped: Nearest position on the pipe polyline.
        fraction: Position of ``snapped`` along the pipe, 0 at the start node
            and 1 at the end node.
        distance: Distance from the customer point to ``snapped``.
    """

    pipe_id: str
    snapped: Position
    fraction: float
    distance: float


@dataclass(frozen=True)
class LookupUpdate:
    """Scope of one incremental update.

    Attributes:
        recomputed_point_ids: Points whose allocation was searched again.
        touched_pipe_ids: Pipes whose set of allocated points may have changed.
    """

    recomputed_point_ids: FrozenSet[str] = frozenset()
    touched_pipe_ids: FrozenSet[str] = frozenset()


def project_onto_line(line: LineString, position: Position, pipe_id: str) -> Allocation:
    """Project ``position`` onto ``line`` and describe the nearest point."""
    point = Point(position)
    distance = float(line.distance(point))
    length = line.length
    if length == 0.0:
        x, y = line.coords[0]
        return Allocation(pipe_id, (float(x), float(y)), 0.0, distance)
    along = line.project(point)
    snapped = line.interpolate(along)
    fraction = min(1.0, max(0.0, along / length))
    return Allocation(pipe_id, (float(snapped.x), float(snapped.y)), fraction, distance)


def bounds_distance(bounds: Bounds, position: Position) -> float:
    """Distance from ``position`` to an axis-aligned box, 0 inside it."""
    minx, miny, maxx, maxy = bounds
    x, y = position
    dx = max(minx - x, 0.0, x - maxx)
    dy = max(miny - y, 0.0, y - maxy)
    return math.hypot(dx, dy)


def is_better(candidate: Allocation, current: Optional[Allocation]) -> bool:
    """Strictly nearer, or equally near on a pipe with a smaller id."""
    if current is None:
        return True
    if candidate.distance != current.distance:
        return candidate.distance < current.distance
    return id_sort_key(candidate.pipe_id) < id_sort_key(current.pipe_id)


def _line_bounds(coordinates: Iterable[Position]) -> Bounds:
    xs, ys = zip(*coordinates)
    return (min(xs), min(ys), max(xs), max(ys))


class _Grid:
    """Uniform grid bucketing item ids by the cells their bounds overlap."""

    def __init__(self, cell_size: float) -> None:
        self.cell_size = cell_size
        self._cells: Dict[Cell, Set[str]] = {}
        self._items: Dict[str, List[Cell]] = {}
        # Cell range ever occupied since the last clear; may only grow
        self._extent: Optional[Tuple[int, int, int, int]] = None

    def cell_of(self, position: Position) -> Cell:
        x, y = position
        return (math.floor(x / self.cell_size), math.floor(y / self.cell_size))

    def _span(self, bounds: Bounds) -> Tuple[int, int, int, int]:
        minx, miny, maxx, maxy = bounds
        size = self.cell_size
        return (
            math.floor(minx / size),
            math.floor(miny / size),
            math.floor(maxx / size),
            math.floor(maxy / size),
        )

    def _cells_for(self, bounds: Bounds) -> Iterator[Cell]:
        i0, j0, i1, j1 = self._span(bounds)
        for i in range(i0, i1 + 1):
            for j in range(j0, j1 + 1):
                yield (i, j)

    def cell_count(self, bounds: Bounds) -> int:
        i0, j0, i1, j1 = self._span(bounds)
        return (i1 - i0 + 1) * (j1 - j0 + 1)

    def insert(self, item_id: str, bounds: Bounds) -> None:
        cells = list(self._cells_for(bounds))
        for cell in cells:
            self._cells.setdefault(cell, set()).add(item_id)
        self._items[item_id] = cells
        i0, j0, i1, j1 = self._span(bounds)
        if self._extent is not None:
            e0, f0, e1, f1 = self._extent
            i0, j0, i1, j1 = min(i0, e0), min(j0, f0), max(i1, e1), max(j1, f1)
        self._extent = (i0, j0, i1, j1)

    def remove(self, item_id: str) -> None:
        for cell in self._items.pop(item_id, ()):
            bucket = self._cells[cell]
            bucket.discard(item_id)
            if not bucket:
                del self._cells[cell]

    def query(self, bounds: Bounds) -> Set[str]:
        found: Set[str] = set()
        for cell in self._cells_for(bounds):
            bucket = self._cells.get(cell)
            if bucket:
                found |= bucket
        return found

    def bucket(self, cell: Cell) -> Set[str]:
        return self._cells.get(cell, set())

    def first_ring(self, center: Cell) -> int:
        """Chebyshev distance from ``center`` to the occupied cell range."""
        if self._extent is None:
            return 0
        i0, j0, i1, j1 = self._extent
        ci, cj = center
        return max(i0 - ci, ci - i1, j0 - cj, cj - j1, 0)

    def ring(self, center: Cell, k: int) -> Iterator[Cell]:
        """Occupied-range cells at Chebyshev distance exactly ``k`` from ``center``."""
        if self._extent is None:
            return
        i0, j0, i1, j1 = self._extent
        ci, cj = center
        rows = {cj - k, cj + k}
        for j in sorted(rows):
            if j0 <= j <= j1:
                for i in range(max(ci - k, i0), min(ci + k, i1) + 1):
                    yield (i, j)
        if k == 0:
            return
        for i in sorted({ci - k, ci + k}):
            if i0 <= i <= i1:
                for j in range(max(cj - k + 1, j0), min(cj + k - 1, j1) + 1):
                    yield (i, j)

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._cells.clear()
        self._items.clear()
        self._extent = None


class CustomerPointsLookup:
    """Incrementally maintained pipe -> customer points index.

    Args:
        search_radius: Maximum allocation distance, or None for unbounded.
        cell_size: Grid cell size; defaults to ``search_radius``, or to the
            median pipe extent when the radius is unbounded.
    """

    DEFAULT_CELL_SIZE = 1.0

    def __init__(
        self,
        search_radius: Optional[float] = None,
        cell_size: Optional[float] = None,
    ) -> None:
        if search_radius is not None and search_radius <= 0:
            raise ValueError("search_radius must be positive")
        if cell_size is not None and cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.search_radius = search_radius
        self._fixed_cell_size = cell_size or search_radius
        self._lines: Dict[str, LineString] = {}
        self._bounds: Dict[str, Bounds] = {}
        self._positions: Dict[str, Position] = {}
        self._allocations: Dict[str, Allocation] = {}
        self._pipe_points: Dict[str, Set[str]] = {}
        size = self._fixed_cell_size or self.DEFAULT_CELL_SIZE
        self._pipe_grid = _Grid(size)
        self._point_grid = _Grid(size)
        self.full_rebuilds = 0
        self.last_update = LookupUpdate()

    #
    # Queries
    #
    @property
    def cell_size(self) -> float:
        return self._pipe_grid.cell_size

    def get_customer_points(self, pipe_id: str) -> FrozenSet[str]:
        """Ids of customer points allocated to ``pipe_id``."""
        return frozenset(self._pipe_points.get(pipe_id, ()))

    def allocation(self, point_id: str) -> Optional[Allocation]:
        """Allocation of a customer point, or None when unallocated/unknown."""
        return self._allocations.get(point_id)

    def allocations(self) -> Dict[str, Allocation]:
        return dict(self._allocations)

    def has_pipe(self, pipe_id: str) -> bool:
        return pipe_id in self._lines

    def candidate_pipes(self, position: Position) -> Set[str]:
        """Pipes that may lie within the search radius of ``position``.

        Without a radius every indexed pipe is a candidate.
        """
        if self.search_radius is None:
            return set(self._lines)
        x, y = position
        r = self.search_radius
        return self._pipe_grid.query((x - r, y - r, x + r, y + r))

    def find_nearest_pipe(self, position: Position) -> Optional[Allocation]:
        """Best allocation for ``position``, or None when no pipe qualifies."""
        if self.search_radius is None:
            return self._find_nearest_unbounded(position)
        best: Optional[Allocation] = None
        for pipe_id in self.candidate_pipes(position):
            best = self._consider(pipe_id, position, best)
        return best

    def snapshot(self) -> Dict[str, object]:
        """Comparable state: allocations and non-empty pipe point sets."""
        return {
            "allocations": dict(self._allocations),
            "pipe_points": {
                pipe_id: frozenset(points)
                for pipe_id, points in self._pipe_points.items()
                if points
            },
        }

    #
    # Maintenance
    #
    def rebuild(
        self,
        pipes: Iterable[Pipe],
        customer_points: Iterable[CustomerPoint],
    ) -> LookupUpdate:
        """Discard everything and allocate all points from scratch."""
        pipes = list(pipes)
        self._lines.clear()
        self._bounds.clear()
        self._positions.clear()
        self._allocations.clear()
        self._pipe_points.clear()
        self._pipe_grid.clear()
        self._point_grid.clear()
        self._fit_cell_size(pipes)

        for pipe in pipes:
            self._insert_pipe(pipe)
        for point in customer_points:
            self._insert_point(point)
        for point_id, position in self._positions.items():
            self._assign(point_id, self.find_nearest_pipe(position))

        self.full_rebuilds += 1
        self.last_update = LookupUpdate(
            recomputed_point_ids=frozenset(self._positions),
            touched_pipe_ids=frozenset(self._lines),
        )
        logger.debug(
            "Rebuilt customer points lookup: %d pipes, %d points, %d allocated",
            len(self._lines),
            len(self._positions),
            len(self._allocations),
        )
        return self.last_update

    def update(
        self,
        put_pipes: Iterable[Pipe] = (),
        deleted_pipe_ids: Iterable[str] = (),
        put_points: Iterable[CustomerPoint] = (),
        deleted_point_ids: Iterable[str] = (),
    ) -> LookupUpdate:
        """Apply pipe/point changes, recomputing only affected allocations.

        Args:
            put_pipes: Pipes added or whose geometry changed.
            deleted_pipe_ids: Pipes removed (or no longer pipes).
            put_points: Customer points added or moved.
            deleted_point_ids: Customer points removed.

        Returns:
            The scope of the update.
        """
        put_pipes = list(put_pipes)
        recompute: Set[str] = set()
        touched: Set[str] = set()
        changed_pipes: List[str] = []

        for pipe_id in deleted_pipe_ids:
            if pipe_id in self._lines:
                recompute |= self._remove_pipe(pipe_id)
                touched.add(pipe_id)

        for pipe in put_pipes:
            if pipe.id in self._lines:
                recompute |= self._remove_pipe(pipe.id)
        self._fit_cell_size(put_pipes)
        for pipe in put_pipes:
            touched.add(pipe.id)
            if self._insert_pipe(pipe):
                changed_pipes.append(pipe.id)

        for point_id in deleted_point_ids:
            if point_id in self._positions:
                old = self._allocations.get(point_id)
                if old is not None:
                    touched.add(old.pipe_id)
                self._remove_point(point_id)
            recompute.discard(point_id)

        for point in put_points:
            if point.id in self._positions:
                self._remove_point_position(point.id)
            self._insert_point(point)
            recompute.add(point.id)

        # Existing points near a changed pipe switch only if it now wins.
        # Allocations below only shrink distances, so one reach serves all.
        reach = self.search_radius
        if reach is None and changed_pipes:
            reach = self._allocation_reach(recompute)
        for pipe_id in changed_pipes:
            line = self._lines[pipe_id]
            bounds = self._bounds[pipe_id]
            for point_id in self._points_near(bounds, reach):
                if point_id in recompute:
                    continue
                position = self._positions[point_id]
                current = self._allocations.get(point_id)
                if not self._may_beat(bounds, position, current):
                    continue
                candidate = project_onto_line(line, position, pipe_id)
                if self._in_range(candidate) and is_better(candidate, current):
                    if current is not None:
                        touched.add(current.pipe_id)
                    self._assign(point_id, candidate)

        for point_id in recompute:
            old = self._allocations.get(point_id)
            new = self.find_nearest_pipe(self._positions[point_id])
            self._assign(point_id, new)
            if old is not None:
                touched.add(old.pipe_id)
            if new is not None:
                touched.add(new.pipe_id)

        self.last_update = LookupUpdate(
            recomputed_point_ids=frozenset(recompute),
            touched_pipe_ids=frozenset(touched),
        )
        return self.last_update

    #
    # Internals
    #
    def _in_range(self, allocation: Allocation) -> bool:
        return self.search_radius is None or allocation.distance <= self.search_radius

    def _may_beat(
        self, bounds: Bounds, position: Position, best: Optional[Allocation]
    ) -> bool:
        """False when no point inside ``bounds`` can improve on ``best``."""
        limit = best.distance if best is not None else self.search_radius
        return limit is None or bounds_distance(bounds, position) <= limit

    def _consider(
        self, pipe_id: str, position: Position, best: Optional[Allocation]
    ) -> Optional[Allocation]:
        if not self._may_beat(self._bounds[pipe_id], position, best):
            return best
        candidate = project_onto_line(self._lines[pipe_id], position, pipe_id)
        if self._in_range(candidate) and is_better(candidate, best):
            return candidate
        return best

    def _find_nearest_unbounded(self, position: Position) -> Optional[Allocation]:
        grid = self._pipe_grid
        center = grid.cell_of(position)
        best: Optional[Allocation] = None
        seen: Set[str] = set()
        k = grid.first_ring(center)
        while len(seen) < len(self._lines):
            # Unvisited pipes are farther than (k - 1) cells from the point
            if best is not None and best.distance <= (k - 1) * grid.cell_size:
                break
            for cell in grid.ring(center, k):
                for pipe_id in grid.bucket(cell):
                    if pipe_id not in seen:
                        seen.add(pipe_id)
                        best = self._consider(pipe_id, position, best)
            k += 1
        return best

    def _points_near(self, bounds: Bounds, reach: Optional[float]) -> Iterable[str]:
        """Points within ``reach`` of ``bounds``; every point when unbounded."""
        if reach is None:
            return list(self._positions)
        minx, miny, maxx, maxy = bounds
        box = (minx - reach, miny - reach, maxx + reach, maxy + reach)
        if self._point_grid.cell_count(box) > len(self._positions):
            return list(self._positions)
        return self._point_grid.query(box)

    def _allocation_reach(self, pending: Set[str]) -> Optional[float]:
        """Largest allocation distance outside ``pending``; None if unbounded."""
        reach = 0.0
        for point_id in self._positions:
            if point_id in pending:
                continue
            allocation = self._allocations.get(point_id)
            if allocation is None:
                return None
            reach = max(reach, allocation.distance)
        return reach

    def _fit_cell_size(self, pipes: List[Pipe]) -> None:
        """Size the grid from ``pipes`` when nothing else fixes it."""
        if self._fixed_cell_size is not None or self._lines:
            return
        extents = []
        for pipe in pipes:
            if pipe.coordinates is None:
                continue
            minx, miny, maxx, maxy = _line_bounds(pipe.coordinates)
            extent = max(maxx - minx, maxy - miny)
            if extent > 0:
                extents.append(extent)
        if not extents:
            return
        extents.sort()
        size = extents[len(extents) // 2]
        if size == self._pipe_grid.cell_size:
            return
        self._pipe_grid = _Grid(size)
        self._point_grid = _Grid(size)
        for point_id, (x, y) in self._positions.items():
            self._point_grid.insert(point_id, (x, y, x, y))
        logger.debug("Customer points grid cell size set to %s", size)

    def _insert_pipe(self, pipe: Pipe) -> bool:
        if pipe.coordinates is None:
            return False
        line = LineString(pipe.coordinates)
        self._lines[pipe.id] = line
        self._bounds[pipe.id] = line.bounds
        self._pipe_grid.insert(pipe.id, line.bounds)
        return True

    def _remove_pipe(self, pipe_id: str) -> Set[str]:
        """Unindex a pipe and return the points that were allocated to it."""
        del self._lines[pipe_id]
        del self._bounds[pipe_id]
        self._pipe_grid.remove(pipe_id)
        orphans = self._pipe_points.pop(pipe_id, set())
        for point_id in orphans:
            self._allocations.pop(point_id, None)
        return orphans

    def _insert_point(self, point: CustomerPoint) -> None:
        self._positions[point.id] = point.coordinates
        x, y = point.coordinates
        self._point_grid.insert(point.id, (x, y, x, y))

    def _remove_point_position(self, point_id: str) -> None:
        del self._positions[point_id]
        self._point_grid.remove(point_id)

    def _remove_point(self, point_id: str) -> None:
        self._assign(point_id, None)
        self._remove_point_position(point_id)

    def _assign(self, point_id: str, allocation: Optional[Allocation]) -> None:
        old = self._allocations.pop(point_id, None)
        if old is not None:
            bucket = self._pipe_points.get(old.pipe_id)
            if bucket is not None:
                bucket.discard(point_id)
                if not bucket:
                    del self._pipe_points[old.pipe_id]
        if allocation is not None:
            self._allocations[point_id] = allocation
            self._pipe_points.setdefault(allocation.pipe_id, set()).add(point_id)
