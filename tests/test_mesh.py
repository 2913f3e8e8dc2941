"""
Tests for Mesh Module
=====================
"""

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nlfea.mesh.shapes import ShapeFamily, SHAPES, get_shape, shape_from_meshio
from nlfea.mesh.quadrature import gauss_line, gauss_quad, gauss_triangle, gauss_tetra, gauss_hex
from nlfea.mesh.mesh import Cell, Mesh
from nlfea.mesh.mesh_generators import (
    create_line_mesh, create_rectangle_mesh, create_box_mesh,
    create_single_element, perturb_interior_nodes
)
from nlfea.mesh.mesh_io import read_mesh, write_mesh


class TestQuadrature:
    """Tests for quadrature tables."""

    @pytest.mark.parametrize("rule,n,total", [
        (gauss_line, 2, 2.0),
        (gauss_line, 3, 2.0),
        (gauss_quad, 4, 4.0),
        (gauss_quad, 9, 4.0),
        (gauss_triangle, 3, 0.5),
        (gauss_tetra, 4, 1.0 / 6.0),
        (gauss_hex, 8, 8.0),
    ])
    def test_weights_sum_to_reference_measure(self, rule, n, total):
        """Weights integrate a constant exactly."""
        table = rule(n)
        assert table.shape == (n, 4)
        assert np.isclose(np.sum(table[:, 3]), total)

    def test_gauss_line_integrates_cubic(self):
        """Two-point rule is exact for cubics."""
        table = gauss_line(2)
        integral = np.sum(table[:, 3] * (table[:, 0] ** 3 + table[:, 0] ** 2))
        assert np.isclose(integral, 2.0 / 3.0)

    def test_unsupported_quad_count(self):
        """Non-square counts are rejected."""
        with pytest.raises(ValueError):
            gauss_quad(5)


class TestShapes:
    """Tests for reference shapes."""

    @pytest.mark.parametrize("name", list(SHAPES))
    def test_partition_of_unity(self, name):
        """Interpolation functions sum to one at integration points."""
        shape = get_shape(name)
        for row in shape.ip_coords():
            assert np.isclose(np.sum(shape.func(row[:3])), 1.0)

    @pytest.mark.parametrize("name", list(SHAPES))
    def test_kronecker_property(self, name):
        """N_i(R_j) = δ_ij at the shape nodes."""
        shape = get_shape(name)
        N = np.array([shape.func(R) for R in shape.nat_coords])
        np.testing.assert_allclose(N, np.eye(shape.npoints), atol=1e-12)

    @pytest.mark.parametrize("name", list(SHAPES))
    def test_derivatives_sum_to_zero(self, name):
        """Derivatives of a partition of unity sum to zero."""
        shape = get_shape(name)
        dN = shape.deriv(shape.ip_coords()[0, :3])
        assert dN.shape == (shape.ndim, shape.npoints)
        np.testing.assert_allclose(dN.sum(axis=1), 0.0, atol=1e-12)

    def test_families(self):
        """Line and solid families."""
        assert get_shape('LIN2').family == ShapeFamily.LINE
        assert get_shape('quad4').family == ShapeFamily.SOLID
        assert get_shape('HEX8').facet.name == 'QUAD4'

    def test_meshio_names(self):
        """meshio cell types map to shapes."""
        assert shape_from_meshio('triangle').name == 'TRI3'
        assert shape_from_meshio('hexahedron').name == 'HEX8'
        with pytest.raises(ValueError):
            shape_from_meshio('wedge')

    def test_unknown_shape(self):
        with pytest.raises(ValueError):
            get_shape('PYR5')


class TestMesh:
    """Tests for Mesh container."""

    def test_points_padded_to_3d(self):
        """Points are stored with three coordinates."""
        mesh = create_line_mesh([0.0], [2.0], 4)
        assert mesh.points.shape == (5, 3)
        assert mesh.ndim == 1
        assert np.isclose(mesh.points[-1, 0], 2.0)

    def test_cell_ids(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 3)
        assert [cell.id for cell in mesh.cells] == list(range(6))

    def test_boundary_faces_2d(self):
        """Boundary facets of an nx × ny quad mesh."""
        mesh = create_rectangle_mesh(2.0, 1.0, 4, 2)
        assert len(mesh.faces) == 2 * (4 + 2)
        for face in mesh.faces:
            assert face.shape.name == 'LIN2'
            assert 0 <= face.owner_id < mesh.n_cells

    def test_boundary_faces_and_edges_3d(self):
        """A single hexahedron has 6 faces and 12 edges."""
        mesh = create_box_mesh(1.0, 1.0, 1.0, 1, 1, 1)
        assert len(mesh.faces) == 6
        assert len(mesh.edges) == 12

    def test_line_mesh_has_no_faces(self):
        mesh = create_line_mesh([0.0, 0.0], [1.0, 1.0], 3)
        assert mesh.faces == []
        assert mesh.ndim == 2

    def test_missing_point(self):
        """Connectivity must reference existing points."""
        with pytest.raises(ValueError):
            Mesh(np.zeros((2, 2)), [Cell('LIN2', [0, 2])])

    def test_tagging(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 2)
        ids = mesh.tag_cells(lambda x, y, z: x <= 0.5, 'left')
        assert len(ids) == 2
        assert all(mesh.cells[i].tag == 'left' for i in ids)
        pts = mesh.tag_points(lambda x, y, z: y == 0.0, 'bottom')
        assert len(pts) == 3

    def test_triangle_mesh(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 2, shape='TRI3')
        assert mesh.n_cells == 8
        assert len(mesh.faces) == 8

    def test_quadratic_mesh(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 1, shape='QUAD8')
        assert mesh.n_points == 5 * 3 - 2
        assert len(mesh.faces) == 6

    def test_single_element_default_coords(self):
        mesh = create_single_element('QUAD4')
        np.testing.assert_allclose(mesh.points[:, :2], [[0, 0], [1, 0], [1, 1], [0, 1]])
        assert mesh.ndim == 2

    def test_perturb_keeps_boundary(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 3, 3)
        new = perturb_interior_nodes(mesh, magnitude=0.2, seed=1)
        boundary = {n for face in mesh.faces for n in face.node_ids}
        for i in range(mesh.n_points):
            if i in boundary:
                np.testing.assert_array_equal(new.points[i], mesh.points[i])
        assert not np.allclose(new.points, mesh.points)


class TestMeshIO:
    """Tests for meshio based I/O."""

    def test_write_read_cycle(self, tmp_path):
        """Geometry and connectivity survive a VTU file."""
        mesh = create_rectangle_mesh(2.0, 1.0, 2, 2)
        filename = str(tmp_path / 'mesh.vtu')
        write_mesh(mesh, filename)

        loaded = read_mesh(filename, ndim=2)
        assert loaded.n_cells == mesh.n_cells
        np.testing.assert_allclose(loaded.points, mesh.points)
        assert [c.node_ids for c in loaded.cells] == [c.node_ids for c in mesh.cells]
        assert loaded.cells[0].shape.name == 'QUAD4'
