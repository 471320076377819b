"""
Mesh statistics computed from Triangle faces.

Provides:
- Bounding box (union of face bounds)
- Surface area and enclosed volume (sum of signed face volumes)
- Center of mass of the enclosed solid
- Degenerate face count
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.triangle import Triangle

logger = logging.getLogger(__name__)

DEFAULT_DEGENERATE_AREA = 1e-10


@dataclass
class BoundingBox:
    """Axis-Aligned Bounding Box (AABB).

    Attributes:
        min_point: Minimum corner (x_min, y_min, z_min)
        max_point: Maximum corner (x_max, y_max, z_max)
    """
    min_point: NDArray[np.float64]
    max_point: NDArray[np.float64]

    @property
    def dimensions(self) -> NDArray[np.float64]:
        return self.max_point - self.min_point

    @property
    def center(self) -> NDArray[np.float64]:
        return (self.min_point + self.max_point) / 2

    @property
    def volume(self) -> float:
        dims = self.dimensions
        return float(dims[0] * dims[1] * dims[2])

    @property
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.dimensions))

    def axis_range(self, axis: Axis) -> Tuple[float, float]:
        """(min, max) along one axis."""
        return float(self.min_point[axis.index]), float(self.max_point[axis.index])

    def contains_point(self, point: NDArray[np.float64]) -> bool:
        """Check if point is inside the box (boundary included)."""
        return bool(
            np.all(point >= self.min_point) and
            np.all(point <= self.max_point)
        )

    def intersects(self, other: 'BoundingBox') -> bool:
        """Check if two boxes overlap (touching counts)."""
        return bool(
            np.all(self.min_point <= other.max_point) and
            np.all(self.max_point >= other.min_point)
        )

    def to_dict(self) -> dict:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'dimensions': self.dimensions.tolist(),
            'center': self.center.tolist(),
            'volume': self.volume,
            'diagonal': self.diagonal,
        }


@dataclass
class MeshStatistics:
    """Aggregate measurements of a triangulated surface.

    Attributes:
        n_vertices: Size of the shared vertex list
        n_faces: Number of triangular faces
        bbox: Axis-aligned bounding box
        surface_area: Total surface area
        volume: Enclosed volume from signed face volumes (None without normals)
        center_of_mass: Centroid of the enclosed solid (None without normals
            or for zero volume)
        n_degenerate_faces: Faces with area below the threshold
    """
    n_vertices: int
    n_faces: int
    bbox: BoundingBox
    surface_area: float
    volume: Optional[float] = None
    center_of_mass: Optional[NDArray[np.float64]] = None
    n_degenerate_faces: int = 0
    face_areas: Optional[NDArray[np.float64]] = field(default=None, repr=False)

    @property
    def dimensions(self) -> Tuple[float, float, float]:
        dims = self.bbox.dimensions
        return (float(dims[0]), float(dims[1]), float(dims[2]))

    @property
    def avg_face_area(self) -> float:
        if self.n_faces == 0:
            return 0.0
        return self.surface_area / self.n_faces

    def summary(self) -> str:
        """Generate human-readable summary."""
        dims = self.dimensions
        volume = "n/a" if self.volume is None else f"{self.volume:.2f}"
        if self.center_of_mass is None:
            center = "n/a"
        else:
            c = self.center_of_mass
            center = f"({c[0]:.2f}, {c[1]:.2f}, {c[2]:.2f})"
        lines = [
            "Mesh Statistics",
            "=" * 40,
            f"Vertices:     {self.n_vertices:,}",
            f"Faces:        {self.n_faces:,}",
            f"Degenerate:   {self.n_degenerate_faces:,}",
            "",
            f"Dimensions:   {dims[0]:.2f} x {dims[1]:.2f} x {dims[2]:.2f}",
            f"Diagonal:     {self.bbox.diagonal:.2f}",
            "",
            f"Surface Area: {self.surface_area:.2f}",
            f"Volume:       {volume}",
            f"Center:       {center}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            'n_vertices': self.n_vertices,
            'n_faces': self.n_faces,
            'n_degenerate_faces': self.n_degenerate_faces,
            'bbox': self.bbox.to_dict(),
            'surface_area': self.surface_area,
            'volume': self.volume,
            'center_of_mass': (
                None if self.center_of_mass is None else self.center_of_mass.tolist()
            ),
            'dimensions': list(self.dimensions),
        }


def bounding_box_of(triangles: Sequence[Triangle]) -> BoundingBox:
    """Union of the face bounding boxes; a zero box for no faces."""
    if len(triangles) == 0:
        return BoundingBox(min_point=np.zeros(3), max_point=np.zeros(3))

    bounds = np.array([tri.bounds for tri in triangles], dtype=np.float64)
    return BoundingBox(
        min_point=bounds[:, [0, 2, 4]].min(axis=0),
        max_point=bounds[:, [1, 3, 5]].max(axis=0),
    )


def calculate_face_areas(triangles: Sequence[Triangle]) -> NDArray[np.float64]:
    return np.array([tri.calc_surface_area() for tri in triangles], dtype=np.float64)


def calculate_surface_area(triangles: Sequence[Triangle]) -> float:
    return float(np.sum(calculate_face_areas(triangles)))


def calculate_volume(triangles: Sequence[Triangle]) -> float:
    """Enclosed volume as the sum of signed face volumes.

    Every face must have a normal set.

    Raises:
        InvalidStateError: a face has no normal
    """
    return float(sum(tri.calc_signed_volume() for tri in triangles))


def calculate_center_of_mass(triangles: Sequence[Triangle]) -> Optional[NDArray[np.float64]]:
    """Centroid of the enclosed solid.

    Each face forms a tetrahedron with the origin whose centroid is
    (v0 + v1 + v2) / 4; centroids are weighted by signed face volume.

    Returns:
        3D point, or None when the total volume is zero
    """
    center = np.zeros(3)
    total = 0.0
    for tri in triangles:
        volume = tri.calc_signed_volume()
        if volume == 0.0:
            continue
        center += np.sum(tri.points(), axis=0) / 4.0 * volume
        total += volume

    if abs(total) < 1e-12:
        return None
    return center / total


def calculate_mesh_statistics(
    triangles: Sequence[Triangle],
    n_vertices: Optional[int] = None,
    degenerate_area_threshold: float = DEFAULT_DEGENERATE_AREA,
) -> MeshStatistics:
    """Calculate statistics for a list of complete faces.

    Volume and center of mass are only computed when every face has a
    normal.

    Args:
        triangles: Complete faces sharing one vertex list
        n_vertices: Vertex count (defaults to the shared list's length)
        degenerate_area_threshold: Faces below this area count as degenerate

    Returns:
        MeshStatistics instance
    """
    if n_vertices is None:
        n_vertices = len(triangles[0].vertices) if len(triangles) else 0

    face_areas = calculate_face_areas(triangles)
    surface_area = float(np.sum(face_areas))
    n_degenerate = int(np.count_nonzero(face_areas < degenerate_area_threshold))

    volume = None
    center = None
    if len(triangles) and all(tri.normal is not None for tri in triangles):
        volume = calculate_volume(triangles)
        center = calculate_center_of_mass(triangles)
    else:
        logger.debug("Skipping volume: faces without normals")

    stats = MeshStatistics(
        n_vertices=n_vertices,
        n_faces=len(triangles),
        bbox=bounding_box_of(triangles),
        surface_area=surface_area,
        volume=volume,
        center_of_mass=center,
        n_degenerate_faces=n_degenerate,
        face_areas=face_areas,
    )

    if n_degenerate:
        logger.warning("Mesh has %d degenerate faces", n_degenerate)

    logger.debug(
        "Mesh statistics calculated",
        extra={
            'faces': len(triangles),
            'surface_area': surface_area,
            'volume': volume,
        }
    )
    return stats
