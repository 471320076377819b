"""
Triangle-level geometry for STL meshes: bounds, area, signed volume
and axis-aligned plane slicing.

The command line entry point is stl_facets.cli (also main.py).
"""

from stl_facets.geometry import (
    Axis,
    DegenerateGeometryError,
    IntersectionResult,
    IntersectionStatus,
    InvalidStateError,
    Triangle,
    TriangleError,
    build_triangles,
)
from stl_facets.logging_config import (
    setup_logging,
    get_logger,
    configure_default_logging,
    log_timing,
    timed,
    LogContext,
)

__version__ = "0.1.0"

__all__ = [
    "Axis",
    "DegenerateGeometryError",
    "IntersectionResult",
    "IntersectionStatus",
    "InvalidStateError",
    "Triangle",
    "TriangleError",
    "build_triangles",
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
]
