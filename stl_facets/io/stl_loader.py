"""
STL loading and mesh building.

Supports:
- Binary STL (autodetected)
- ASCII STL (autodetected)

Reads a file into deduplicated vertices, face indices and per-face normals,
and builds Triangle objects sharing one vertex array.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np
from stl import mesh

from stl_facets.geometry.triangle import Triangle, build_triangles

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_DECIMALS = 6


class STLFormat(Enum):
    """STL file format type."""
    BINARY = "binary"
    ASCII = "ascii"
    UNKNOWN = "unknown"


@dataclass
class STLInfo:
    """Metadata about loaded STL file."""
    filepath: str
    format: STLFormat
    file_size_bytes: int
    n_triangles: int
    n_unique_vertices: int
    solid_name: Optional[str] = None

    @property
    def file_size_kb(self) -> float:
        return self.file_size_bytes / 1024


class STLLoadError(Exception):
    """STL file is missing, unreadable or contains no triangles."""


def detect_stl_format(filepath: str) -> Tuple[STLFormat, Optional[str]]:
    """Detect STL file format (binary vs ASCII).

    ASCII files start with 'solid' and contain 'facet'/'endsolid' keywords;
    a binary 80-byte header may also start with 'solid', so the keyword
    check is what tells them apart.

    Returns:
        Tuple of (format, solid_name or None)

    Raises:
        STLLoadError: if file cannot be read
    """
    try:
        with open(filepath, 'rb') as f:
            head = f.read(1024)
    except FileNotFoundError:
        raise STLLoadError(f"File not found: {filepath!r}")
    except OSError as exc:
        raise STLLoadError(f"Cannot read file {filepath!r}: {exc}") from exc

    text = head.decode('ascii', errors='ignore')
    first_line = text.strip().split('\n')[0].strip()

    if first_line.lower().startswith('solid'):
        lowered = text.lower()
        if len(head) < 84 or 'facet' in lowered or 'endsolid' in lowered:
            return STLFormat.ASCII, first_line[5:].strip() or None

    if len(head) < 84:
        return STLFormat.UNKNOWN, None

    solid_name = head[:80].split(b'\x00')[0].decode('ascii', errors='ignore').strip()
    if solid_name.startswith('solid'):
        return STLFormat.BINARY, solid_name[5:].strip() or None
    return STLFormat.BINARY, None


def load_stl(
    filepath: str,
    dedup_decimals: int = DEFAULT_DEDUP_DECIMALS,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Load an STL file into unique vertices, faces and face normals.

    Vertices are merged when their coordinates agree after rounding to
    `dedup_decimals` places.

    Args:
        filepath: Path to STL file (binary or ASCII)
        dedup_decimals: Rounding used for vertex deduplication

    Returns:
        vertices: (N, 3) float64 unique vertices
        faces:    (M, 3) int32 vertex indices per triangle
        normals:  (M, 3) float64 face normals from the file's winding

    Raises:
        STLLoadError: file missing, corrupted or without triangles
    """
    stl_format, solid_name = detect_stl_format(filepath)
    file_size = os.path.getsize(filepath)

    logger.info("Loading STL: %s (format: %s, size: %.1f KB)",
                filepath, stl_format.value, file_size / 1024)
    if solid_name:
        logger.debug("Solid name: %s", solid_name)

    try:
        stl_mesh = mesh.Mesh.from_file(filepath)
    except FileNotFoundError:
        raise STLLoadError(f"File not found: {filepath!r}")
    except Exception as exc:
        raise STLLoadError(f"Cannot parse STL file {filepath!r}: {exc}") from exc

    if len(stl_mesh.vectors) == 0:
        raise STLLoadError(f"STL file {filepath!r} contains no triangles.")

    vertices: List[Tuple[float, float, float]] = []
    faces: List[Tuple[int, int, int]] = []
    vertex_index: Dict[Tuple[float, float, float], int] = {}

    for triangle in stl_mesh.vectors:
        face_indices = []
        for raw_vertex in triangle:
            key = tuple(round(float(c), dedup_decimals) for c in raw_vertex)
            if key not in vertex_index:
                vertex_index[key] = len(vertices)
                vertices.append(key)
            face_indices.append(vertex_index[key])
        faces.append(tuple(face_indices))

    vertices_arr = np.array(vertices, dtype=np.float64)
    faces_arr = np.array(faces, dtype=np.int32)
    normals_arr = np.asarray(stl_mesh.normals, dtype=np.float64)

    logger.info(
        "Loaded %d unique vertices, %d faces.",
        len(vertices_arr),
        len(faces_arr),
    )
    return vertices_arr, faces_arr, normals_arr


def load_stl_with_info(
    filepath: str,
    dedup_decimals: int = DEFAULT_DEDUP_DECIMALS,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, STLInfo]:
    """Like `load_stl`, also returning an STLInfo record."""
    stl_format, solid_name = detect_stl_format(filepath)
    vertices, faces, normals = load_stl(filepath, dedup_decimals)

    info = STLInfo(
        filepath=filepath,
        format=stl_format,
        file_size_bytes=os.path.getsize(filepath),
        n_triangles=len(faces),
        n_unique_vertices=len(vertices),
        solid_name=solid_name,
    )
    return vertices, faces, normals, info


def load_triangles(
    filepath: str,
    dedup_decimals: int = DEFAULT_DEDUP_DECIMALS,
) -> Tuple[np.ndarray, List[Triangle]]:
    """Load an STL file and build one Triangle per facet.

    Returns:
        (vertices, triangles); every triangle references `vertices` and
        carries the facet normal.
    """
    vertices, faces, normals = load_stl(filepath, dedup_decimals)
    return vertices, build_triangles(vertices, faces, normals)
