"""Geometric primitives: axes, triangular faces, mesh statistics."""

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.errors import (
    DegenerateGeometryError,
    InvalidStateError,
    TriangleError,
)
from stl_facets.geometry.triangle import (
    IntersectionResult,
    IntersectionStatus,
    Triangle,
    build_triangles,
)

__all__ = [
    "Axis",
    "DegenerateGeometryError",
    "InvalidStateError",
    "TriangleError",
    "IntersectionResult",
    "IntersectionStatus",
    "Triangle",
    "build_triangles",
]
