"""
Pytest configuration and fixtures for stl_facets.

Provides:
- Small vertex arrays for single-face tests
- An outward-wound cube as (vertices, faces, normals) and as Triangle lists
- STL files written with numpy-stl into tmp_path
"""

import logging
from pathlib import Path
from typing import List, Tuple

import numpy as np
import pytest
from stl import mesh as stl_mesh

from stl_facets.geometry.triangle import Triangle, build_triangles
from stl_facets.logging_config import PACKAGE_LOGGER


# ============================================================================
# Geometry Helpers
# ============================================================================

# Counter-clockwise seen from outside, so cross(v1 - v0, v2 - v0) points out.
CUBE_FACES = np.array([
    [0, 2, 1], [0, 3, 2],  # bottom (-z)
    [4, 5, 6], [4, 6, 7],  # top (+z)
    [0, 1, 5], [0, 5, 4],  # front (-y)
    [3, 7, 6], [3, 6, 2],  # back (+y)
    [0, 4, 7], [0, 7, 3],  # left (-x)
    [1, 2, 6], [1, 6, 5],  # right (+x)
], dtype=np.int32)


def cube_vertices(size: float = 10.0, offset=(0.0, 0.0, 0.0)) -> np.ndarray:
    """Corners of an axis-aligned cube centred on `offset`."""
    hs = size / 2
    vertices = np.array([
        [-hs, -hs, -hs], [+hs, -hs, -hs], [+hs, +hs, -hs], [-hs, +hs, -hs],
        [-hs, -hs, +hs], [+hs, -hs, +hs], [+hs, +hs, +hs], [-hs, +hs, +hs],
    ], dtype=np.float64)
    return vertices + np.asarray(offset, dtype=np.float64)


def face_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Unit normals following the face winding."""
    v0 = vertices[faces[:, 0]]
    v1 = vertices[faces[:, 1]]
    v2 = vertices[faces[:, 2]]
    cross = np.cross(v1 - v0, v2 - v0)
    return cross / np.linalg.norm(cross, axis=1, keepdims=True)


def make_triangle(points) -> Triangle:
    """Complete Triangle over its own three-point vertex list."""
    vertices = np.asarray(points, dtype=np.float64)
    tri = Triangle(vertices)
    for i in range(len(vertices)):
        tri.add_vertex(i)
    return tri


def write_stl(path: Path, vertices: np.ndarray, faces: np.ndarray) -> Path:
    """Save faces as a binary STL file."""
    m = stl_mesh.Mesh(np.zeros(len(faces), dtype=stl_mesh.Mesh.dtype))
    for i, face in enumerate(faces):
        m.vectors[i] = vertices[face]
    m.save(str(path))
    return path


def write_ascii_stl(path: Path, vertices: np.ndarray, faces: np.ndarray,
                    name: str = "cube") -> Path:
    """Write faces as an ASCII STL file."""
    normals = face_normals(vertices, faces)
    with open(path, 'w') as f:
        f.write(f"solid {name}\n")
        for face, normal in zip(faces, normals):
            f.write(f"  facet normal {normal[0]} {normal[1]} {normal[2]}\n")
            f.write("    outer loop\n")
            for v in vertices[face]:
                f.write(f"      vertex {v[0]} {v[1]} {v[2]}\n")
            f.write("    endloop\n")
            f.write("  endfacet\n")
        f.write(f"endsolid {name}\n")
    return path


# ============================================================================
# Geometry Fixtures
# ============================================================================

@pytest.fixture
def triangle_factory():
    """Build a complete Triangle from three points."""
    return make_triangle


@pytest.fixture
def right_triangle() -> Triangle:
    """Legs 3 (x) and 4 (y) in the z=0 plane."""
    return make_triangle([[0, 0, 0], [3, 0, 0], [0, 4, 0]])


@pytest.fixture
def corner_triangle() -> Triangle:
    """Face through the three unit points; its tetrahedron has volume 1/6."""
    return make_triangle([[1, 0, 0], [0, 1, 0], [0, 0, 1]])


@pytest.fixture
def cube_mesh() -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(vertices, faces, normals) of a 10 mm cube centred on the origin."""
    vertices = cube_vertices()
    return vertices, CUBE_FACES.copy(), face_normals(vertices, CUBE_FACES)


@pytest.fixture
def cube_triangles(cube_mesh) -> List[Triangle]:
    vertices, faces, normals = cube_mesh
    return build_triangles(vertices, faces, normals)


@pytest.fixture
def shifted_cube_triangles() -> List[Triangle]:
    """10 mm cube occupying [0, 10] on every axis."""
    vertices = cube_vertices(offset=(5.0, 5.0, 5.0))
    return build_triangles(vertices, CUBE_FACES, face_normals(vertices, CUBE_FACES))


# ============================================================================
# STL File Fixtures
# ============================================================================

@pytest.fixture
def cube_stl_path(tmp_path: Path) -> Path:
    """Binary STL of the centred 10 mm cube."""
    return write_stl(tmp_path / "cube.stl", cube_vertices(), CUBE_FACES)


@pytest.fixture
def ascii_cube_stl_path(tmp_path: Path) -> Path:
    """ASCII STL of the centred 10 mm cube."""
    return write_ascii_stl(tmp_path / "ascii_cube.stl", cube_vertices(), CUBE_FACES)


@pytest.fixture
def ascii_stl_writer():
    """Write arbitrary faces as an ASCII STL file."""
    return write_ascii_stl


@pytest.fixture
def empty_stl_path(tmp_path: Path) -> Path:
    """Binary STL with zero triangles."""
    path = tmp_path / "empty.stl"
    m = stl_mesh.Mesh(np.zeros(0, dtype=stl_mesh.Mesh.dtype))
    m.save(str(path))
    return path


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging so caplog sees package records in every test."""
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
