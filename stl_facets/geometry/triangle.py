"""
Triangular face of a mesh.

A Triangle references three rows of a shared vertex array by index. It keeps
an axis-aligned bounding box that grows as indices are added and answers:
- surface area (cross product)
- signed volume of the tetrahedron it forms with the origin
- the chord cut by an axis-aligned slicing plane

Area and volume are memoized; vertex positions are assumed immutable once
the face is built.
"""

import logging
import math
import operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.errors import DegenerateGeometryError, InvalidStateError

logger = logging.getLogger(__name__)

FACE_SIZE = 3


class IntersectionStatus(Enum):
    """Outcome of a plane-triangle intersection."""
    NONE = "none"
    SEGMENT = "segment"
    ANOMALOUS = "anomalous"


@dataclass
class IntersectionResult:
    """Points where a slicing plane crosses the edges of a face.

    Attributes:
        axis: Axis normal to the slicing plane
        position: Plane coordinate along `axis`
        points: Crossing points in edge traversal order
    """
    axis: Axis
    position: float
    points: List[np.ndarray] = field(default_factory=list)

    @property
    def status(self) -> IntersectionStatus:
        if not self.points:
            return IntersectionStatus.NONE
        if len(self.points) == 2:
            return IntersectionStatus.SEGMENT
        return IntersectionStatus.ANOMALOUS

    @property
    def is_empty(self) -> bool:
        return self.status is IntersectionStatus.NONE

    @property
    def is_segment(self) -> bool:
        return self.status is IntersectionStatus.SEGMENT

    @property
    def is_anomalous(self) -> bool:
        return self.status is IntersectionStatus.ANOMALOUS

    @property
    def segment(self) -> Tuple[np.ndarray, np.ndarray]:
        """Chord endpoints.

        Raises:
            InvalidStateError: result is not a two-point chord
        """
        if not self.is_segment:
            raise InvalidStateError(
                f"intersection has {len(self.points)} points, not a segment"
            )
        return self.points[0], self.points[1]

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.points)


class Triangle:
    """Face of a triangulated surface, defined by indices into a vertex list.

    The vertex list is owned by the caller and only read here. Build a face
    with three `add_vertex` calls, optionally `set_normal`, then query it.

    Example:
        >>> vertices = np.array([[0, 0, 0], [3, 0, 0], [0, 4, 0]], dtype=float)
        >>> tri = Triangle(vertices)
        >>> for i in range(3):
        ...     tri.add_vertex(i)
        >>> tri.calc_surface_area()
        6.0
    """

    def __init__(self, vertices: Sequence[Sequence[float]]):
        self.vertices = vertices
        self.indices: List[int] = []
        self.count = 0
        self.normal: Optional[np.ndarray] = None
        self.surface_area: Optional[float] = None
        self.signed_volume: Optional[float] = None
        self.reset_bounds()

    def __repr__(self) -> str:
        return f"Triangle(indices={self.indices})"

    @property
    def is_complete(self) -> bool:
        return self.count == FACE_SIZE

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_vertex(self, idx: int) -> None:
        """Append vertex index `idx` and fold that vertex into the bounds.

        Raises:
            InvalidStateError: the face already has three vertices
            IndexError: `idx` is not an offset into the vertex list
            TypeError: `idx` is not an integer
        """
        if self.count >= FACE_SIZE:
            raise InvalidStateError("too many vertices for a triangular face")
        idx = operator.index(idx)
        if not 0 <= idx < len(self.vertices):
            raise IndexError(
                f"vertex index {idx} out of range for {len(self.vertices)} vertices"
            )

        x, y, z = (float(c) for c in self._point(idx))
        self.indices.append(idx)
        self.count += 1

        if self.count == 1:
            # First vertex seeds all six bounds.
            self.xmin = self.xmax = x
            self.ymin = self.ymax = y
            self.zmin = self.zmax = z
        else:
            self._fold_bounds(x, y, z)

    def reset_bounds(self) -> None:
        """Set bounds to the empty box (min=+inf, max=-inf)."""
        self.xmin = math.inf
        self.xmax = -math.inf
        self.ymin = math.inf
        self.ymax = -math.inf
        self.zmin = math.inf
        self.zmax = -math.inf

    def update_bounds(self) -> None:
        """Recompute bounds from scratch over the referenced vertices."""
        self.reset_bounds()
        for idx in self.indices:
            self._fold_bounds(*(float(c) for c in self._point(idx)))

    def set_normal(self, normal: Sequence[float]) -> None:
        """Store the outward face normal used for the signed volume sign."""
        self.normal = np.asarray(normal, dtype=np.float64).reshape(3)

    def _fold_bounds(self, x: float, y: float, z: float) -> None:
        self.xmin = min(self.xmin, x)
        self.xmax = max(self.xmax, x)
        self.ymin = min(self.ymin, y)
        self.ymax = max(self.ymax, y)
        self.zmin = min(self.zmin, z)
        self.zmax = max(self.zmax, z)

    # ------------------------------------------------------------------
    # Bounds access
    # ------------------------------------------------------------------

    @property
    def bounds(self) -> Tuple[float, float, float, float, float, float]:
        """(xmin, xmax, ymin, ymax, zmin, zmax)."""
        return (self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax)

    def axis_bounds(self, axis: Union[Axis, str]) -> Tuple[float, float]:
        """(min, max) of the face along `axis`."""
        axis = Axis.coerce(axis)
        if axis is Axis.X:
            return self.xmin, self.xmax
        if axis is Axis.Y:
            return self.ymin, self.ymax
        return self.zmin, self.zmax

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------

    def calc_surface_area(self) -> float:
        """Area via the cross product of two edges sharing vertex 0.

        Returns:
            Unsigned area (independent of winding)

        Raises:
            InvalidStateError: fewer than three vertices
        """
        if self.surface_area is not None:
            return self.surface_area
        if not self.is_complete:
            raise InvalidStateError("cannot compute area of an incomplete triangle")

        v0, v1, v2 = self.points()
        cross = np.cross(v0 - v1, v0 - v2)
        self.surface_area = 0.5 * float(np.linalg.norm(cross))
        return self.surface_area

    def calc_signed_volume(self) -> float:
        """Volume of the tetrahedron (origin, v1, v2, v3), signed by the normal.

        The sign is that of v1 . normal, so summing over a closed mesh with
        outward normals gives the enclosed volume. A zero dot product gives
        a zero contribution.

        Raises:
            InvalidStateError: fewer than three vertices, or no normal set
        """
        if self.signed_volume is not None:
            return self.signed_volume
        if not self.is_complete:
            raise InvalidStateError("cannot compute volume of an incomplete triangle")
        if self.normal is None:
            raise InvalidStateError("cannot compute signed volume without a normal")

        v1, v2, v3 = self.points()
        sign = float(np.sign(np.dot(v1, self.normal)))

        volume = (-v3[0] * v2[1] * v1[2] + v2[0] * v3[1] * v1[2] + v3[0] * v1[1] * v2[2])
        volume += (-v1[0] * v3[1] * v2[2] - v2[0] * v1[1] * v3[2] + v1[0] * v2[1] * v3[2])

        self.signed_volume = sign * abs(float(volume) / 6.0)
        return self.signed_volume

    # ------------------------------------------------------------------
    # Slicing
    # ------------------------------------------------------------------

    def intersection(self, axis: Union[Axis, str], pos: float) -> IntersectionResult:
        """Cut the face with the plane `axis == pos`.

        A plane lying exactly on the min or max bound reports no crossing, and
        an edge only crosses when its endpoints lie strictly on opposite sides,
        so a vertex on the plane never contributes a point by itself.

        Args:
            axis: Axis normal to the plane (Axis member or 'x'/'y'/'z')
            pos: Plane coordinate

        Returns:
            IntersectionResult with 0 points (no crossing), 2 points (chord)
            or another count (anomalous, also logged as a warning)

        Raises:
            InvalidStateError: fewer than three vertices
            DegenerateGeometryError: a crossing edge has zero span along `axis`
        """
        axis = Axis.coerce(axis)
        if not self.is_complete:
            raise InvalidStateError("cannot intersect an incomplete triangle")

        result = IntersectionResult(axis=axis, position=pos)
        lo, hi = self.axis_bounds(axis)
        if hi <= pos or lo >= pos:
            return result

        a_idx = axis.index
        points = self.points()
        for i in range(FACE_SIZE):
            start = points[i]
            end = points[(i + 1) % FACE_SIZE]
            s, e = start[a_idx], end[a_idx]
            if not ((s < pos < e) or (e < pos < s)):
                continue

            span = e - s
            if span == 0:
                raise DegenerateGeometryError(
                    f"edge {self.indices[i]}->{self.indices[(i + 1) % FACE_SIZE]} "
                    f"has zero span along {axis.value}"
                )
            factor = (pos - s) / span
            point = start + (end - start) * factor
            point[a_idx] = pos
            result.points.append(point)

        if result.is_anomalous:
            logger.warning(
                "Plane-triangle intersection: unexpected point count %d",
                len(result.points),
                extra={'indices': list(self.indices), 'axis': axis.value, 'position': pos},
            )
        return result

    # ------------------------------------------------------------------
    # Vertex access
    # ------------------------------------------------------------------

    def points(self) -> List[np.ndarray]:
        """Copies of the referenced vertex coordinates in index order."""
        return [self._point(idx) for idx in self.indices]

    def _point(self, idx: int) -> np.ndarray:
        return np.array(self.vertices[idx], dtype=np.float64).reshape(3)


def build_triangles(
    vertices: Sequence[Sequence[float]],
    faces: Sequence[Sequence[int]],
    normals: Optional[Sequence[Sequence[float]]] = None,
) -> List[Triangle]:
    """Build one Triangle per face row, all sharing `vertices`.

    Args:
        vertices: Nx3 vertex coordinates (kept by reference)
        faces: Mx3 vertex indices
        normals: Optional Mx3 outward normals, one per face

    Returns:
        List of M complete triangles

    Raises:
        ValueError: `normals` length differs from `faces`
    """
    if normals is not None and len(normals) != len(faces):
        raise ValueError(
            f"Got {len(normals)} normals for {len(faces)} faces"
        )

    triangles: List[Triangle] = []
    for fi, face in enumerate(faces):
        tri = Triangle(vertices)
        for idx in face:
            tri.add_vertex(idx)
        if normals is not None:
            tri.set_normal(normals[fi])
        triangles.append(tri)

    logger.debug("Built %d triangles", len(triangles))
    return triangles
