"""
Unit tests for stl_facets.geometry.triangle.

Tests:
- Vertex accumulation and bounding box
- Surface area and signed volume (with memoization)
- Plane intersection, including boundary planes
- Mesh building from face arrays
"""

import itertools
import logging

import numpy as np
import pytest

from stl_facets.geometry.axis import Axis
from stl_facets.geometry.errors import InvalidStateError, TriangleError
from stl_facets.geometry.triangle import (
    IntersectionResult,
    IntersectionStatus,
    Triangle,
    build_triangles,
)


POINTS = np.array([
    [1.0, -2.0, 0.5],
    [4.0, 3.0, -1.0],
    [-0.5, 1.0, 2.0],
])


class TestConstruction:
    """Tests for add_vertex and bounds bookkeeping."""

    def test_new_triangle_is_empty(self):
        """Test initial state: no indices, sentinel bounds, no caches."""
        tri = Triangle(POINTS)
        assert tri.indices == []
        assert tri.count == 0
        assert tri.normal is None
        assert tri.surface_area is None
        assert tri.signed_volume is None
        assert tri.xmin == np.inf and tri.xmax == -np.inf
        assert tri.zmin == np.inf and tri.zmax == -np.inf

    def test_vertex_list_is_shared(self):
        """Test that the triangle keeps a reference, not a copy."""
        tri = Triangle(POINTS)
        assert tri.vertices is POINTS

    def test_first_vertex_seeds_bounds(self):
        """Test that the first vertex sets all six bounds."""
        tri = Triangle(POINTS)
        tri.add_vertex(0)
        assert tri.bounds == (1.0, 1.0, -2.0, -2.0, 0.5, 0.5)
        assert tri.count == 1

    def test_bounds_after_three_vertices(self):
        """Test componentwise min/max of exactly the three points."""
        tri = Triangle(POINTS)
        for i in range(3):
            tri.add_vertex(i)
        assert tri.bounds == (-0.5, 4.0, -2.0, 3.0, -1.0, 2.0)
        assert tri.is_complete

    def test_bounds_independent_of_insertion_order(self):
        """Test that every permutation gives the same box."""
        expected = None
        for order in itertools.permutations(range(3)):
            tri = Triangle(POINTS)
            for i in order:
                tri.add_vertex(i)
            if expected is None:
                expected = tri.bounds
            assert tri.bounds == expected

    def test_bounds_grow_monotonically(self):
        """Test that each addition only widens the box."""
        tri = Triangle(POINTS)
        tri.add_vertex(1)
        first = tri.axis_bounds(Axis.X)
        tri.add_vertex(2)
        second = tri.axis_bounds(Axis.X)
        assert second[0] <= first[0] and second[1] >= first[1]

    def test_fourth_vertex_rejected(self, right_triangle):
        """Test that a fourth vertex fails and leaves the face unchanged."""
        indices_before = list(right_triangle.indices)
        bounds_before = right_triangle.bounds

        with pytest.raises(InvalidStateError, match="too many vertices"):
            right_triangle.add_vertex(0)

        assert right_triangle.indices == indices_before
        assert right_triangle.count == 3
        assert right_triangle.bounds == bounds_before

    def test_fourth_vertex_rejected_repeatedly(self, right_triangle):
        """Test that rejection is idempotent."""
        for _ in range(3):
            with pytest.raises(InvalidStateError):
                right_triangle.add_vertex(1)
        assert right_triangle.count == 3

    def test_out_of_range_index(self):
        """Test that a bad index raises IndexError without side effects."""
        tri = Triangle(POINTS)
        with pytest.raises(IndexError):
            tri.add_vertex(3)
        with pytest.raises(IndexError):
            tri.add_vertex(-1)
        assert tri.count == 0
        assert tri.indices == []

    def test_non_integer_index_rejected(self):
        """Test that a float index is not truncated to a neighbouring vertex."""
        tri = Triangle(POINTS)
        with pytest.raises(TypeError):
            tri.add_vertex(1.7)
        with pytest.raises(TypeError):
            tri.add_vertex("1")
        assert tri.count == 0
        assert tri.indices == []

    def test_numpy_integer_index(self):
        tri = Triangle(POINTS)
        tri.add_vertex(np.int32(2))
        tri.add_vertex(np.int64(0))
        assert tri.indices == [2, 0]

    def test_points_are_copies(self, right_triangle):
        """Test that editing returned points leaves the shared vertices intact."""
        vertices_before = np.array(right_triangle.vertices, dtype=np.float64)

        for point in right_triangle.points():
            point += 100.0

        assert np.array_equal(np.asarray(right_triangle.vertices), vertices_before)
        assert right_triangle.calc_surface_area() == pytest.approx(6.0)

    def test_reset_and_update_bounds(self):
        """Test that update_bounds rebuilds the box from the indices."""
        tri = Triangle(POINTS)
        for i in range(3):
            tri.add_vertex(i)
        expected = tri.bounds

        tri.reset_bounds()
        assert tri.xmin == np.inf and tri.ymax == -np.inf

        tri.update_bounds()
        assert tri.bounds == expected

    def test_update_bounds_has_no_stale_contribution(self):
        """Test that moved vertices are reflected after update_bounds."""
        vertices = POINTS.copy()
        tri = Triangle(vertices)
        for i in range(3):
            tri.add_vertex(i)

        vertices[1] = [0.0, 0.0, 0.0]
        tri.update_bounds()
        assert tri.bounds == (-0.5, 1.0, -2.0, 1.0, 0.0, 2.0)

    def test_accepts_plain_lists(self):
        """Test that any indexable sequence of points works."""
        tri = Triangle([[0, 0, 0], [1, 2, 3], [-1, 0, 1]])
        for i in range(3):
            tri.add_vertex(i)
        assert tri.bounds == (-1.0, 1.0, 0.0, 2.0, 0.0, 3.0)

    def test_set_normal_overwrites(self, right_triangle):
        """Test that set_normal stores and may replace the normal."""
        right_triangle.set_normal([0, 0, 1])
        assert np.array_equal(right_triangle.normal, [0.0, 0.0, 1.0])
        right_triangle.set_normal((0, 0, -1))
        assert np.array_equal(right_triangle.normal, [0.0, 0.0, -1.0])

    def test_axis_bounds_by_name(self, right_triangle):
        """Test axis_bounds with Axis members and names."""
        assert right_triangle.axis_bounds(Axis.Y) == (0.0, 4.0)
        assert right_triangle.axis_bounds("x") == (0.0, 3.0)
        assert right_triangle.axis_bounds("Z") == (0.0, 0.0)


class TestSurfaceArea:
    """Tests for calc_surface_area."""

    def test_right_triangle(self, right_triangle):
        """Test the 3-4-5 triangle has area 6."""
        assert right_triangle.calc_surface_area() == pytest.approx(6.0)

    def test_invariant_under_reordering(self):
        """Test same area for every winding of the same points."""
        areas = set()
        for order in itertools.permutations(range(3)):
            tri = Triangle(POINTS)
            for i in order:
                tri.add_vertex(i)
            areas.add(round(tri.calc_surface_area(), 12))
        assert len(areas) == 1
        assert areas.pop() > 0

    def test_matches_cross_product(self):
        """Test against an independent cross product."""
        tri = Triangle(POINTS)
        for i in range(3):
            tri.add_vertex(i)
        expected = 0.5 * np.linalg.norm(np.cross(POINTS[1] - POINTS[0], POINTS[2] - POINTS[0]))
        assert tri.calc_surface_area() == pytest.approx(expected)

    def test_cached(self, right_triangle):
        """Test that the first result is returned verbatim afterwards."""
        first = right_triangle.calc_surface_area()
        assert right_triangle.surface_area == first
        right_triangle.vertices[1] = [30.0, 0.0, 0.0]
        assert right_triangle.calc_surface_area() == first

    def test_degenerate_face_has_zero_area(self, triangle_factory):
        """Test collinear points give zero area."""
        tri = triangle_factory([[0, 0, 0], [1, 1, 1], [2, 2, 2]])
        assert tri.calc_surface_area() == pytest.approx(0.0)

    def test_incomplete_triangle(self):
        """Test that area of a partial face is rejected."""
        tri = Triangle(POINTS)
        tri.add_vertex(0)
        tri.add_vertex(1)
        with pytest.raises(InvalidStateError, match="incomplete"):
            tri.calc_surface_area()


class TestSignedVolume:
    """Tests for calc_signed_volume."""

    def test_unit_corner_volume(self, corner_triangle):
        """Test tetrahedron (origin, e_x, e_y, e_z) has volume 1/6."""
        corner_triangle.set_normal([1, 1, 1])
        assert corner_triangle.calc_signed_volume() == pytest.approx(1.0 / 6.0)

    def test_memoized(self, corner_triangle):
        """Test that repeated calls return the identical value."""
        corner_triangle.set_normal([1, 1, 1])
        first = corner_triangle.calc_signed_volume()
        second = corner_triangle.calc_signed_volume()
        assert first == second
        assert corner_triangle.signed_volume == first

    def test_flipped_normal_flips_sign(self, triangle_factory):
        """Test that the opposite normal changes only the sign."""
        points = [[1, 0, 0], [0, 2, 0], [0, 0, 3]]
        outward = triangle_factory(points)
        outward.set_normal([6, 3, 2])
        inward = triangle_factory(points)
        inward.set_normal([-6, -3, -2])

        v_out = outward.calc_signed_volume()
        v_in = inward.calc_signed_volume()
        assert v_out > 0
        assert v_in == pytest.approx(-v_out)
        assert v_out == pytest.approx(1.0)

    def test_sign_independent_of_winding(self, triangle_factory):
        """Test that winding does not affect the signed volume."""
        a = triangle_factory([[1, 0, 0], [0, 1, 0], [0, 0, 1]])
        b = triangle_factory([[1, 0, 0], [0, 0, 1], [0, 1, 0]])
        a.set_normal([1, 1, 1])
        b.set_normal([1, 1, 1])
        assert a.calc_signed_volume() == pytest.approx(b.calc_signed_volume())

    def test_plane_through_origin_gives_zero(self, triangle_factory):
        """Test that v0 . normal == 0 yields exactly zero, not an error."""
        tri = triangle_factory([[0, 0, 0], [1, 0, 0], [0, 1, 0]])
        tri.set_normal([0, 0, 1])
        assert tri.calc_signed_volume() == 0.0

    def test_zero_sign_with_nonzero_magnitude(self, triangle_factory):
        """Test that a zero sign wins even when the tetrahedron is not flat."""
        tri = triangle_factory([[1, 0, 0], [0, 1, 0], [0, 0, 1]])
        tri.set_normal([0, 1, -1])
        assert tri.calc_signed_volume() == 0.0

    def test_requires_normal(self, corner_triangle):
        """Test that volume before set_normal is rejected."""
        with pytest.raises(InvalidStateError, match="normal"):
            corner_triangle.calc_signed_volume()
        assert corner_triangle.signed_volume is None

    def test_requires_complete_face(self):
        """Test that volume of a partial face is rejected."""
        tri = Triangle(POINTS)
        tri.add_vertex(0)
        tri.set_normal([0, 0, 1])
        with pytest.raises(InvalidStateError, match="incomplete"):
            tri.calc_signed_volume()

    def test_errors_share_base_class(self, corner_triangle):
        """Test that callers can catch TriangleError."""
        with pytest.raises(TriangleError):
            corner_triangle.calc_signed_volume()


class TestIntersection:
    """Tests for intersection with axis-aligned planes."""

    @pytest.fixture
    def flat_triangle(self, triangle_factory):
        return triangle_factory([[0, 0, 0], [2, 0, 0], [0, 2, 0]])

    def test_chord_through_middle(self, flat_triangle):
        """Test X=1 cuts two edges at (1, 0, 0) and (1, 1, 0)."""
        result = flat_triangle.intersection(Axis.X, 1.0)

        assert result.status is IntersectionStatus.SEGMENT
        assert result.is_segment
        assert len(result) == 2
        start, end = result.segment
        assert np.allclose(start, [1.0, 0.0, 0.0])
        assert np.allclose(end, [1.0, 1.0, 0.0])
        assert all(p[0] == 1.0 for p in result)

    def test_axis_coordinate_is_exact(self, triangle_factory):
        """Test that the axis coordinate equals pos exactly."""
        tri = triangle_factory([[0.1, 0.3, 0.7], [0.9, 0.2, 0.1], [0.3, 0.8, 0.4]])
        pos = 0.37
        result = tri.intersection(Axis.Z, pos)
        assert result.is_segment
        for point in result:
            assert point[2] == pos

    def test_interpolates_other_coordinates(self, triangle_factory):
        """Test linear interpolation along a sloped edge."""
        tri = triangle_factory([[0, 0, 0], [0, 4, 8], [0, -4, 8]])
        result = tri.intersection("z", 2.0)
        assert result.is_segment
        ys = sorted(p[1] for p in result)
        assert ys == pytest.approx([-1.0, 1.0])

    def test_each_axis(self, triangle_factory):
        """Test that the same shape is cut consistently on every axis."""
        for axis in Axis:
            points = np.zeros((3, 3))
            u, v = axis.plane_axes
            points[1, axis.index] = 2.0
            points[2, u.index] = 2.0
            points[2, axis.index] = 2.0
            tri = triangle_factory(points)
            result = tri.intersection(axis, 1.0)
            assert result.is_segment
            for point in result:
                assert point[axis.index] == 1.0

    @pytest.mark.parametrize("pos", [-1.0, 3.0, 100.0])
    def test_outside_bounds(self, flat_triangle, pos):
        """Test planes strictly outside [min, max] give nothing."""
        result = flat_triangle.intersection(Axis.X, pos)
        assert result.is_empty
        assert result.status is IntersectionStatus.NONE
        assert list(result) == []

    @pytest.mark.parametrize("pos", [0.0, 2.0])
    def test_plane_on_bound_is_not_a_crossing(self, flat_triangle, pos):
        """Test planes exactly on min or max report no crossing."""
        assert flat_triangle.intersection(Axis.X, pos).is_empty

    def test_plane_containing_face(self, flat_triangle):
        """Test a plane coplanar with the face reports no crossing."""
        assert flat_triangle.intersection(Axis.Z, 0.0).is_empty

    def test_plane_through_single_interior_vertex(self, triangle_factory, caplog):
        """Test a vertex on the plane contributes no point by itself.

        Only the opposite edge crosses strictly, so the result has a single
        point and is reported as anomalous.
        """
        tri = triangle_factory([[0, 0, 0], [1, 2, 0], [2, 0, 0]])
        with caplog.at_level(logging.WARNING, logger="stl_facets"):
            result = tri.intersection(Axis.X, 1.0)

        assert result.is_anomalous
        assert result.status is IntersectionStatus.ANOMALOUS
        assert len(result) == 1
        assert np.allclose(result.points[0], [1.0, 0.0, 0.0])
        assert "unexpected point count" in caplog.text

    def test_anomalous_result_has_no_segment(self, triangle_factory):
        """Test that .segment refuses a non-chord result."""
        tri = triangle_factory([[0, 0, 0], [1, 2, 0], [2, 0, 0]])
        result = tri.intersection(Axis.X, 1.0)
        with pytest.raises(InvalidStateError):
            _ = result.segment

    def test_edge_traversal_order(self, triangle_factory):
        """Test points follow edges v0->v1, v1->v2, v2->v0."""
        tri = triangle_factory([[0, 0, 0], [0, 2, 0], [2, 0, 0]])
        result = tri.intersection(Axis.X, 1.0)
        # v0->v1 does not cross; v1->v2 is first, v2->v0 second.
        assert np.allclose(result.points[0], [1.0, 1.0, 0.0])
        assert np.allclose(result.points[1], [1.0, 0.0, 0.0])

    def test_does_not_touch_caches(self, flat_triangle):
        """Test that slicing leaves area and volume caches alone."""
        flat_triangle.intersection(Axis.X, 1.0)
        assert flat_triangle.surface_area is None
        assert flat_triangle.signed_volume is None

    def test_incomplete_triangle(self):
        """Test that slicing a partial face is rejected."""
        tri = Triangle(POINTS)
        tri.add_vertex(0)
        tri.add_vertex(1)
        with pytest.raises(InvalidStateError):
            tri.intersection(Axis.X, 2.0)

    def test_unknown_axis(self, flat_triangle):
        """Test that an unknown axis name is rejected."""
        with pytest.raises(ValueError, match="Unknown axis"):
            flat_triangle.intersection("w", 1.0)


class TestIntersectionResult:
    """Tests for IntersectionResult status helpers."""

    def test_empty(self):
        result = IntersectionResult(axis=Axis.Z, position=0.0)
        assert result.is_empty
        assert not result.is_segment
        assert not result.is_anomalous
        assert len(result) == 0

    def test_three_points_is_anomalous(self):
        points = [np.zeros(3), np.ones(3), np.full(3, 2.0)]
        result = IntersectionResult(axis=Axis.Z, position=0.0, points=points)
        assert result.is_anomalous


class TestBuildTriangles:
    """Tests for build_triangles."""

    def test_one_triangle_per_face(self, cube_mesh):
        """Test that the cube gives 12 complete faces."""
        vertices, faces, normals = cube_mesh
        triangles = build_triangles(vertices, faces, normals)

        assert len(triangles) == 12
        for tri, face, normal in zip(triangles, faces, normals):
            assert tri.is_complete
            assert tri.indices == list(face)
            assert tri.vertices is vertices
            assert np.allclose(tri.normal, normal)

    def test_without_normals(self, cube_mesh):
        """Test that normals are optional."""
        vertices, faces, _ = cube_mesh
        triangles = build_triangles(vertices, faces)
        assert all(tri.normal is None for tri in triangles)

    def test_normals_length_mismatch(self, cube_mesh):
        """Test that a normals array of the wrong length is rejected."""
        vertices, faces, normals = cube_mesh
        with pytest.raises(ValueError):
            build_triangles(vertices, faces, normals[:-1])

    def test_face_with_too_many_indices(self, cube_mesh):
        """Test that a quad face is rejected."""
        vertices, _, _ = cube_mesh
        with pytest.raises(InvalidStateError):
            build_triangles(vertices, [[0, 1, 2, 3]])
