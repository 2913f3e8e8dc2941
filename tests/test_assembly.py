"""
Tests for Assembly Module
=========================
"""

import numpy as np
import pytest
from scipy.sparse import csr_matrix
from scipy.sparse.linalg import spsolve
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nlfea.mesh.mesh_generators import (
    create_line_mesh, create_rectangle_mesh, create_box_mesh, create_single_element
)
from nlfea.model.domain import Domain
from nlfea.physics import ElasticRod, ElasticSolid, LinThermo
from nlfea.assembly.global_assembly import (
    assemble_tangent, assemble_capacity, assemble_operator, dof_vectors
)
from nlfea.assembly.boundary_conditions import (
    NodeBC, FaceBC, EdgeBC, ElemBC, bc_targets, mark_prescribed,
    apply_dirichlet_bc, get_free_dofs
)


class TestGlobalAssembly:
    """Tests for global assembly functions."""

    @pytest.fixture
    def setup_rod_chain(self):
        """Three collinear rods."""
        mesh = create_line_mesh([0.0], [3.0], 3)
        return Domain(mesh, [(None, ElasticRod(E=2.0, A=1.0, rho=1.0))])

    def test_stiffness_matrix_shape(self, setup_rod_chain):
        K = assemble_tangent(setup_rod_chain)
        assert K.shape == (4, 4)

    def test_chain_stiffness(self, setup_rod_chain):
        """Tridiagonal stiffness of a rod chain."""
        K = assemble_tangent(setup_rod_chain).toarray()
        expected = 2.0 * np.array([[1, -1, 0, 0],
                                   [-1, 2, -1, 0],
                                   [0, -1, 2, -1],
                                   [0, 0, -1, 1]])
        np.testing.assert_allclose(K, expected)

    def test_mass_operator(self, setup_rod_chain):
        M = assemble_operator(setup_rod_chain, 'mass')
        assert np.isclose(M.sum(), 3.0)

    def test_inactive_elements_skipped(self, setup_rod_chain):
        setup_rod_chain.elems[2].active = False
        K = assemble_tangent(setup_rod_chain).toarray()
        assert K[3, 3] == 0.0

    def test_capacity_only_from_capacity_elements(self, setup_rod_chain):
        """Rods carry no transient capacity."""
        M = assemble_capacity(setup_rod_chain)
        assert M.nnz == 0

    def test_thermal_capacity(self):
        domain = Domain(create_rectangle_mesh(1.0, 1.0, 2, 2),
                        [(None, LinThermo(k=1.0, rho=2.0, cv=1.0))])
        M = assemble_capacity(domain)
        assert np.isclose(M.sum(), 2.0)

    def test_stiffness_symmetry(self):
        domain = Domain(create_rectangle_mesh(1.0, 1.0, 3, 3, shape='TRI6'),
                        [(None, ElasticSolid(E=210e3, nu=0.3))])
        K = assemble_tangent(domain).toarray()
        max_val = np.max(np.abs(K))
        np.testing.assert_allclose(K, K.T, atol=1e-12 * max_val)

    def test_dof_vectors(self, setup_rod_chain):
        setup_rod_chain.nodes[1]['ux'].vals['ux'] = 0.5
        setup_rod_chain.nodes[2]['fx'].vals['fx'] = -1.0
        U, F = dof_vectors(setup_rod_chain)
        np.testing.assert_array_equal(U, [0, 0.5, 0, 0])
        np.testing.assert_array_equal(F, [0, 0, -1.0, 0])


class TestBoundaryConditions:
    """Tests for boundary condition evaluation."""

    @pytest.fixture
    def domain(self):
        mesh = create_rectangle_mesh(2.0, 1.0, 2, 1)
        return Domain(mesh, [(None, ElasticSolid(E=1.0))], modeltype='plane_stress')

    def test_bc_requires_values(self):
        with pytest.raises(ValueError):
            NodeBC('left')

    def test_bc_rejects_invalid_value(self):
        with pytest.raises(ValueError):
            NodeBC('left', ux='zero')

    def test_prescribed_values(self, domain):
        bcs = [NodeBC(lambda x, y, z: x == 0.0, ux=0.0, uy=0.0),
               NodeBC(lambda x, y, z: x == 2.0, ux=lambda x, y, z, t: 0.1 * y + t)]
        U, F, pmask = bc_targets(domain, bcs, 0.5)
        assert pmask.sum() == 6
        right = domain.select_nodes(lambda x, y, z: x == 2.0)
        for node in right:
            assert np.isclose(U[node['ux'].eq_id], 0.1 * node.coord[1] + 0.5)
        assert np.all(F == 0.0)

    def test_later_prescription_replaces_earlier(self, domain):
        bcs = [NodeBC(None, ux=1.0), NodeBC(lambda x, y, z: x == 0.0, ux=2.0)]
        U, _, _ = bc_targets(domain, bcs, 0.0)
        left = domain.select_nodes(lambda x, y, z: x == 0.0)
        assert all(U[n['ux'].eq_id] == 2.0 for n in left)

    def test_nodal_forces_add_up(self, domain):
        bcs = [NodeBC([5], fy=1.0), NodeBC([5], fy=2.0)]
        _, F, pmask = bc_targets(domain, bcs, 0.0)
        assert F[domain.nodes[5]['fy'].eq_id] == 3.0
        assert not pmask.any()

    def test_face_traction_resultant(self, domain):
        bcs = [FaceBC(lambda x, y, z: y == 1.0, ty=-3.0)]
        _, F, _ = bc_targets(domain, bcs, 0.0)
        assert np.isclose(F.sum(), -3.0 * 2.0)

    def test_face_essential(self, domain):
        bcs = [FaceBC(lambda x, y, z: x == 0.0, ux=0.0)]
        _, _, pmask = bc_targets(domain, bcs, 0.0)
        assert pmask.sum() == 2

    def test_elem_body_force(self, domain):
        bcs = [ElemBC(None, ty=-1.0)]
        _, F, _ = bc_targets(domain, bcs, 0.0)
        assert np.isclose(F.sum(), -2.0)

    def test_missing_dof(self, domain):
        with pytest.raises(ValueError):
            bc_targets(domain, [NodeBC(None, ut=0.0)], 0.0)

    def test_unknown_key(self, domain):
        with pytest.raises(ValueError):
            bc_targets(domain, [NodeBC(None, tx=1.0)], 0.0)

    def test_mark_prescribed(self, domain):
        _, _, pmask = bc_targets(domain, [NodeBC([0], ux=0.0)], 0.0)
        mark_prescribed(domain, pmask)
        assert domain.nodes[0]['ux'].prescribed
        assert not domain.nodes[0]['uy'].prescribed


class TestDirichletBC:
    """Tests for Dirichlet BC application."""

    @pytest.fixture
    def system(self):
        K = csr_matrix(np.array([[2.0, -1.0, 0.0],
                                 [-1.0, 2.0, -1.0],
                                 [0.0, -1.0, 2.0]]))
        F = np.array([0.0, 1.0, 0.0])
        return K, F

    def test_elimination(self, system):
        K, F = system
        K_bc, F_bc = apply_dirichlet_bc(K, F, np.array([0]), np.array([1.0]))
        u = spsolve(K_bc.tocsc(), F_bc)

        assert np.isclose(u[0], 1.0)
        # Remaining equations hold
        np.testing.assert_allclose((K @ u)[1:], F[1:])
        # Symmetry is preserved
        np.testing.assert_allclose(K_bc.toarray(), K_bc.toarray().T)

    def test_penalty(self, system):
        K, F = system
        K_bc, F_bc = apply_dirichlet_bc(K, F, np.array([0]), np.array([1.0]),
                                        method='penalty', penalty=1e12)
        u = spsolve(K_bc.tocsc(), F_bc)
        assert np.isclose(u[0], 1.0, atol=1e-8)

    def test_elimination_matches_penalty(self, system):
        K, F = system
        dofs, vals = np.array([0, 2]), np.array([0.5, -0.5])
        u1 = spsolve(*apply_dirichlet_bc(K, F, dofs, vals))
        u2 = spsolve(*apply_dirichlet_bc(K, F, dofs, vals, method='penalty', penalty=1e12))
        np.testing.assert_allclose(u1, u2, atol=1e-8)

    def test_length_mismatch(self, system):
        K, F = system
        with pytest.raises(ValueError):
            apply_dirichlet_bc(K, F, np.array([0, 1]), np.array([0.0]))

    def test_unknown_method(self, system):
        K, F = system
        with pytest.raises(ValueError):
            apply_dirichlet_bc(K, F, np.array([0]), np.array([0.0]), method='lagrange')

    def test_free_dofs(self):
        np.testing.assert_array_equal(get_free_dofs(5, np.array([0, 3])), [1, 2, 4])


class TestBoundaryConditions3D:
    """Face and edge conditions on a box."""

    @staticmethod
    def corner_edge(x, y, z):
        return x == 1.0 and y == 1.0

    def test_select_edges(self):
        domain = Domain(create_box_mesh(1.0, 1.0, 1.0, 2, 2, 2),
                        [(None, ElasticSolid(E=1.0))])
        edges = domain.select_edges(self.corner_edge)
        assert len(edges) == 2
        assert all(edge.shape.name == 'LIN2' for edge in edges)

    def test_edge_traction_resultant(self):
        domain = Domain(create_box_mesh(1.0, 1.0, 1.0, 2, 2, 2),
                        [(None, ElasticSolid(E=1.0))])
        _, F, _ = bc_targets(domain, [EdgeBC(self.corner_edge, tz=3.0)], 0.0)
        assert np.isclose(F.sum(), 3.0)
        loaded = [n for n in domain.nodes if self.corner_edge(*n.coord)]
        assert np.isclose(sum(F[n['uz'].eq_id] for n in loaded), 3.0)

    def test_edge_essential(self):
        domain = Domain(create_box_mesh(1.0, 1.0, 1.0, 2, 2, 2),
                        [(None, ElasticSolid(E=1.0))])
        _, _, pmask = bc_targets(domain, [EdgeBC(self.corner_edge, ux=0.0)], 0.0)
        assert pmask.sum() == 3

    def test_thermal_heat_flux(self):
        domain = Domain(create_box_mesh(1.0, 1.0, 1.0, 2, 2, 2),
                        [(None, LinThermo(k=1.0))])
        bcs = [FaceBC(lambda x, y, z: x == 1.0, tq=2.0),
               EdgeBC(self.corner_edge, tq=1.5)]
        _, F, _ = bc_targets(domain, bcs, 0.0)
        assert np.isclose(F.sum(), 2.0 + 1.5)
