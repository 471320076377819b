"""
Slicing a triangulated surface with parallel axis-aligned planes.

Usage:
    from stl_facets.slicing import SliceParameters, Slicer

    params = SliceParameters(axis="z", layer_height=0.2)
    result = Slicer(params).slice(triangles)
    print(result.summary())

Each plane is intersected with every face; faces reporting an anomalous
point count or degenerate geometry are recorded on the layer instead of
aborting the run.
"""

import logging
import math
import numbers
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.errors import DegenerateGeometryError
from stl_facets.geometry.mesh_stats import BoundingBox, bounding_box_of
from stl_facets.geometry.triangle import Triangle
from stl_facets.logging_config import log_timing

logger = logging.getLogger(__name__)

Segment = Tuple[np.ndarray, np.ndarray]


def _is_number(value, kind) -> bool:
    return isinstance(value, kind) and not isinstance(value, bool)


@dataclass
class SliceParameters:
    """Where to put slicing planes.

    Exactly one of `layer_height` and `num_slices` must be set.
    """
    axis: Union[Axis, str] = Axis.Z
    layer_height: Optional[float] = None
    num_slices: Optional[int] = None
    parallel: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        self.axis = Axis.coerce(self.axis)
        if (self.layer_height is None) == (self.num_slices is None):
            raise ValueError("Set exactly one of layer_height and num_slices")
        if self.layer_height is not None:
            if not _is_number(self.layer_height, numbers.Real):
                raise ValueError(f"layer_height must be a number, got {self.layer_height!r}")
            self.layer_height = float(self.layer_height)
        if self.num_slices is not None:
            if not _is_number(self.num_slices, numbers.Integral):
                raise ValueError(f"num_slices must be an integer, got {self.num_slices!r}")
            self.num_slices = int(self.num_slices)
        if self.layer_height is not None and self.layer_height <= 0:
            raise ValueError(f"layer_height must be positive, got {self.layer_height}")
        if self.num_slices is not None and self.num_slices <= 0:
            raise ValueError(f"num_slices must be positive, got {self.num_slices}")


@dataclass
class SliceLayer:
    """Segments cut from the mesh by one plane normal to `axis`."""
    index: int
    position: float
    segments: List[Segment] = field(default_factory=list)
    anomalous_faces: List[int] = field(default_factory=list)
    degenerate_faces: List[int] = field(default_factory=list)
    axis: Axis = Axis.Z

    @property
    def n_segments(self) -> int:
        return len(self.segments)

    @property
    def total_length(self) -> float:
        return float(sum(np.linalg.norm(b - a) for a, b in self.segments))

    @property
    def area(self) -> float:
        """Signed cross-section area enclosed by the segments.

        Each segment spans a triangle with a point on the plane; the signed
        areas about the positive axis are summed. Closed counter-clockwise
        contours give a positive area, holes subtract.
        """
        origin = self.axis.unit * self.position
        return float(sum(
            0.5 * np.dot(np.cross(a - origin, b - origin), self.axis.unit)
            for a, b in self.segments
        ))

    @property
    def bounds(self) -> Optional[BoundingBox]:
        """Box around the segment endpoints, None for an empty layer."""
        if not self.segments:
            return None
        points = np.array([p for seg in self.segments for p in seg], dtype=np.float64)
        return BoundingBox(min_point=points.min(axis=0), max_point=points.max(axis=0))

    @property
    def has_issues(self) -> bool:
        return bool(self.anomalous_faces or self.degenerate_faces)

    def to_dict(self) -> Dict:
        bounds = self.bounds
        return {
            'index': self.index,
            'position': self.position,
            'n_segments': self.n_segments,
            'total_length': self.total_length,
            'area': self.area,
            'bbox': None if bounds is None else bounds.to_dict(),
            'anomalous_faces': list(self.anomalous_faces),
            'degenerate_faces': list(self.degenerate_faces),
        }


@dataclass
class SliceResult:
    """All layers of one slicing run."""
    axis: Axis
    layer_height: float
    layers: List[SliceLayer] = field(default_factory=list)

    @property
    def n_layers(self) -> int:
        return len(self.layers)

    @property
    def total_segments(self) -> int:
        return sum(layer.n_segments for layer in self.layers)

    @property
    def n_anomalous(self) -> int:
        return sum(len(layer.anomalous_faces) for layer in self.layers)

    @property
    def n_degenerate(self) -> int:
        return sum(len(layer.degenerate_faces) for layer in self.layers)

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Slicing Summary",
            "=" * 40,
            f"Axis:           {self.axis.value}",
            f"Layer height:   {self.layer_height:.4g}",
            f"Layers:         {self.n_layers}",
            f"Segments:       {self.total_segments}",
            f"Anomalous:      {self.n_anomalous}",
            f"Degenerate:     {self.n_degenerate}",
        ]
        flagged = [layer for layer in self.layers if layer.has_issues]
        if flagged:
            lines.append("")
            lines.append("Layers with issues:")
            for layer in flagged:
                lines.append(
                    f"  - #{layer.index} at {layer.position:.4g}: "
                    f"{len(layer.anomalous_faces)} anomalous, "
                    f"{len(layer.degenerate_faces)} degenerate"
                )
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            'axis': self.axis.value,
            'layer_height': self.layer_height,
            'n_layers': self.n_layers,
            'total_segments': self.total_segments,
            'n_anomalous': self.n_anomalous,
            'n_degenerate': self.n_degenerate,
            'layers': [layer.to_dict() for layer in self.layers],
        }


def compute_slice_positions(
    lo: float,
    hi: float,
    layer_height: Optional[float] = None,
    num_slices: Optional[int] = None,
) -> Tuple[List[float], float]:
    """Plane coordinates between `lo` and `hi`, each centred in its layer.

    With a layer height h, there are floor(0.5 + span / h) + 1 planes at
    lo + (i + 0.5) * h. With a slice count n, h = span / n and there are n
    planes.

    Returns:
        (positions, layer_height)

    Raises:
        ValueError: neither or both of layer_height/num_slices, non-positive
            values, or hi < lo
    """
    if (layer_height is None) == (num_slices is None):
        raise ValueError("Set exactly one of layer_height and num_slices")
    span = hi - lo
    if span < 0:
        raise ValueError(f"Empty range: {lo} > {hi}")

    if num_slices is not None:
        if num_slices <= 0:
            raise ValueError(f"num_slices must be positive, got {num_slices}")
        if span == 0:
            return [lo], 0.0
        layer_height = span / num_slices
        count = num_slices
    else:
        if layer_height <= 0:
            raise ValueError(f"layer_height must be positive, got {layer_height}")
        count = int(math.floor(0.5 + span / layer_height)) + 1

    positions = [lo + (i + 0.5) * layer_height for i in range(count)]
    return positions, layer_height


def orient_segment(
    start: np.ndarray,
    end: np.ndarray,
    normal: Optional[np.ndarray],
    axis: Axis,
) -> Segment:
    """Order chord endpoints so the face's outside is on a consistent side.

    Endpoints are swapped when normal . ((end - start) x axis) < 0, so that
    segments of a closed contour chain head to tail. Without a normal the
    order is kept.
    """
    if normal is None:
        return start, end
    delta = end - start
    if float(np.dot(normal, np.cross(delta, axis.unit))) < 0:
        return end, start
    return start, end


def slice_triangles(
    triangles: Sequence[Triangle],
    position: float,
    axis: Union[Axis, str],
    index: int = 0,
) -> SliceLayer:
    """Intersect every face with the plane `axis == position`.

    Anomalous and degenerate faces are recorded by their position in
    `triangles` and contribute no segment.
    """
    axis = Axis.coerce(axis)
    layer = SliceLayer(index=index, position=position, axis=axis)

    for face_id, tri in enumerate(triangles):
        try:
            result = tri.intersection(axis, position)
        except DegenerateGeometryError as exc:
            logger.warning("Skipping degenerate face %d: %s", face_id, exc)
            layer.degenerate_faces.append(face_id)
            continue

        if result.is_segment:
            start, end = result.segment
            layer.segments.append(orient_segment(start, end, tri.normal, axis))
        elif result.is_anomalous:
            layer.anomalous_faces.append(face_id)

    return layer


class Slicer:
    """Slice complete faces into layers along one axis."""

    def __init__(self, params: SliceParameters):
        self.params = params

    def positions_for(self, triangles: Sequence[Triangle]) -> Tuple[List[float], float]:
        """Plane positions spanning the faces' extent along the slicing axis."""
        lo, hi = bounding_box_of(triangles).axis_range(self.params.axis)
        return compute_slice_positions(
            lo, hi,
            layer_height=self.params.layer_height,
            num_slices=self.params.num_slices,
        )

    def slice(self, triangles: Sequence[Triangle]) -> SliceResult:
        """Slice the faces; layers are returned in increasing position."""
        axis = self.params.axis
        if len(triangles) == 0:
            logger.warning("Nothing to slice: no faces")
            return SliceResult(axis=axis, layer_height=self.params.layer_height or 0.0)

        positions, layer_height = self.positions_for(triangles)

        with log_timing(logger, "Slicing mesh", level=logging.INFO,
                        axis=axis.value, layers=len(positions)) as timing:
            if self.params.parallel and len(positions) > 1:
                with ThreadPoolExecutor(max_workers=self.params.max_workers) as executor:
                    layers = list(executor.map(
                        lambda item: slice_triangles(triangles, item[1], axis, item[0]),
                        enumerate(positions),
                    ))
            else:
                layers = [
                    slice_triangles(triangles, pos, axis, i)
                    for i, pos in enumerate(positions)
                ]

            result = SliceResult(axis=axis, layer_height=layer_height, layers=layers)
            timing['segments'] = result.total_segments

        if result.n_anomalous or result.n_degenerate:
            logger.warning(
                "Slicing finished with %d anomalous and %d degenerate face cuts",
                result.n_anomalous, result.n_degenerate,
            )
        return result
