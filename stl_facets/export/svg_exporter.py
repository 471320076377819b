"""
SVG export of slice layers.

Each layer becomes one SVG file. Segments are projected onto the two axes
spanning the slicing plane (e.g. X/Y for a Z slice) and drawn in model
units, with the SVG Y axis flipped so that "up" in the model is up on
screen.
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

import svgwrite

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.mesh_stats import BoundingBox
from stl_facets.slicing import SliceLayer, SliceResult

logger = logging.getLogger(__name__)

DEFAULT_STROKE_WIDTH = 0.2
DEFAULT_MARGIN = 5.0

_SEGMENT_STYLE = {
    'stroke': 'black',
    'stroke_linecap': 'round',
    'fill': 'none',
}


def plane_extent(bounds: BoundingBox, axis: Axis) -> Tuple[float, float, float, float]:
    """(u_min, v_min, u_max, v_max) of the box projected onto the slicing plane."""
    u_axis, v_axis = axis.plane_axes
    u_min, u_max = bounds.axis_range(u_axis)
    v_min, v_max = bounds.axis_range(v_axis)
    return u_min, v_min, u_max, v_max


def render_layer_svg(
    layer: SliceLayer,
    axis: Axis,
    bounds: BoundingBox,
    path: Union[str, Path],
    stroke_width: float = DEFAULT_STROKE_WIDTH,
    margin: float = DEFAULT_MARGIN,
) -> Path:
    """Draw one layer's segments into an SVG file.

    Args:
        layer: Layer to draw
        axis: Slicing axis of the layer
        bounds: Mesh bounding box; fixes the canvas so all layers align
        path: Output SVG path
        stroke_width: Line width in model units
        margin: Blank border around the mesh extent, model units

    Returns:
        Path to the saved file
    """
    path = Path(path)
    u_axis, v_axis = axis.plane_axes
    u_min, v_min, u_max, v_max = plane_extent(bounds, axis)
    width = (u_max - u_min) + 2 * margin
    height = (v_max - v_min) + 2 * margin

    dwg = svgwrite.Drawing(
        str(path),
        size=(f"{width}mm", f"{height}mm"),
        viewBox=f"0 0 {width} {height}",
        debug=False,
    )

    def to_canvas(point) -> Tuple[float, float]:
        u = float(point[u_axis.index]) - u_min + margin
        v = v_max - float(point[v_axis.index]) + margin
        return u, v

    group = dwg.g(id=f"layer-{layer.index}", stroke_width=stroke_width, **_SEGMENT_STYLE)
    for start, end in layer.segments:
        group.add(dwg.line(start=to_canvas(start), end=to_canvas(end)))
    dwg.add(group)

    dwg.save()
    logger.debug("Layer %d saved: %s (%d segments)", layer.index, path, layer.n_segments)
    return path


def export_layers(
    result: SliceResult,
    bounds: BoundingBox,
    output_dir: Union[str, Path],
    prefix: str = "layer_",
    stroke_width: float = DEFAULT_STROKE_WIDTH,
    margin: float = DEFAULT_MARGIN,
) -> List[Path]:
    """Write every layer of `result` as `<prefix><index:04d>.svg`.

    Returns:
        Paths of the written files, in layer order
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = [
        render_layer_svg(
            layer,
            result.axis,
            bounds,
            output_dir / f"{prefix}{layer.index:04d}.svg",
            stroke_width=stroke_width,
            margin=margin,
        )
        for layer in result.layers
    ]
    logger.info("Exported %d layers to %s", len(paths), output_dir)
    return paths
