"""
Tests for Solver Module
=======================
"""

import logging

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nlfea.errors import ConvergenceError, NegativeJacobianError
from nlfea.mesh.mesh_generators import create_line_mesh, create_rectangle_mesh, create_single_element
from nlfea.model.domain import Domain
from nlfea.physics import ElasticRod, ElastoPlasticRod, ElasticBeam, LinThermo
from nlfea.assembly.global_assembly import assemble_operator
from nlfea.assembly.boundary_conditions import NodeBC, FaceBC
from nlfea.postprocess.loggers import NodeLogger
from nlfea.solvers.nonlinear_solver import (
    SolverConfig, NonlinearSolver, SolveResult, IncrementRecord, solve
)


def left(x, y, z):
    return x == 0.0


def right(x, y, z):
    return x == 1.0


def snapshot(domain):
    """Copy of every committed state and dof value."""
    states = [dict(vars(ip.state)) for ip in domain.ips]
    for state in states:
        state.pop('env', None)
    vals = [dict(dof.vals) for dof in domain.dofs]
    return states, vals


class TestSolverConfig:
    """Tests for SolverConfig."""

    def test_default_config(self):
        config = SolverConfig()
        assert config.nincs == 1
        assert config.maxits == 5
        assert config.tol == 1e-2
        assert config.bc_method == "elimination"
        assert not config.auto_inc

    @pytest.mark.parametrize("kwargs", [
        dict(nincs=0),
        dict(maxits=0),
        dict(tol=0.0),
        dict(rtol=-1.0),
        dict(min_dT=0.0),
        dict(min_dT=0.5, max_dT=0.1),
        dict(grow_factor=0.5),
        dict(shrink_factor=1.0),
        dict(bc_method='lagrange'),
        dict(end_time=-1.0),
        dict(nouts=-1),
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            SolverConfig(**kwargs)


class TestRodScenario:
    """Single rod under prescribed end displacement."""

    @pytest.fixture
    def rod(self):
        mesh = create_single_element('LIN2')
        return Domain(mesh, [(None, ElasticRod(E=100.0, A=1.0))])

    def test_axial_stress(self, rod):
        result = solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)],
                       nincs=1, tol=1e-6)

        assert isinstance(result, SolveResult)
        assert result.converged
        assert result.n_increments == 1
        assert result.residual < 1e-6
        assert np.isclose(rod.elems[0].output_values()['sa'], 1.0, atol=1e-6)
        assert np.isclose(rod.nodes[1]['ux'].value, 0.01)

    def test_reaction_forces(self, rod):
        solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)], tol=1e-6)
        assert np.isclose(rod.nodes[0]['fx'].natural_value, -1.0)
        assert np.isclose(rod.nodes[1]['fx'].natural_value, 1.0)

    def test_increment_records(self, rod):
        result = solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)], nincs=4)
        assert [rec.inc for rec in result.increments] == [1, 2, 3, 4]
        assert all(isinstance(rec, IncrementRecord) for rec in result.increments)
        np.testing.assert_allclose([rec.T for rec in result.increments], [0.25, 0.5, 0.75, 1.0])
        assert rod.env.inc == 4
        assert rod.env.stage == 1

    def test_penalty_method(self, rod):
        solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)],
              bc_method='penalty', tol=1e-6)
        assert np.isclose(rod.elems[0].output_values()['sa'], 1.0, atol=1e-6)

    def test_config_override(self, rod):
        config = SolverConfig(nincs=2)
        result = solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)], config, nincs=5)
        assert result.n_increments == 5
        assert config.nincs == 2

    def test_stages_accumulate(self, rod):
        bcs = [NodeBC(left, ux=0.0), NodeBC(right, ux=0.01)]
        solve(rod, bcs)
        solve(rod, [NodeBC(left, ux=0.0), NodeBC(right, ux=0.02)])
        assert rod.env.stage == 2
        assert np.isclose(rod.elems[0].output_values()['sa'], 2.0)


class TestDegenerateRod:

    def test_negative_jacobian_at_first_assembly(self):
        """Coincident rod nodes abort the analysis before any increment."""
        mesh = create_single_element('LIN2', node_coords=np.array([[0.0], [0.0]]))
        domain = Domain(mesh, [(None, ElasticRod(E=1.0, A=1.0))])
        with pytest.raises(NegativeJacobianError):
            solve(domain, [NodeBC([0], ux=0.0), NodeBC([1], fx=1.0)], auto_inc=True)
        assert domain.env.inc == 0


class TestForceControl:
    """Load-controlled rod chains."""

    @pytest.fixture
    def chain(self):
        mesh = create_line_mesh([0.0], [1.0], 2)
        return Domain(mesh, [(None, ElasticRod(E=100.0, A=2.0))])

    def test_end_load(self, chain):
        result = solve(chain, [NodeBC(left, ux=0.0), NodeBC(right, fx=4.0)], tol=1e-8)
        assert result.converged
        assert np.isclose(chain.nodes[2]['ux'].value, 4.0 / 200.0)
        assert np.isclose(chain.nodes[0]['fx'].natural_value, -4.0)

    def test_time_dependent_load(self, chain):
        """Callables are evaluated at the increment end time."""
        log = NodeLogger()
        chain.set_loggers([(right, log)])
        bcs = [NodeBC(left, ux=0.0), NodeBC(right, fx=lambda x, y, z, t: 10.0 * t)]
        solve(chain, bcs, nincs=2, tol=1e-8)
        assert np.isclose(chain.env.t, 1.0)
        np.testing.assert_allclose(log.table['t'], [0.5, 1.0])
        np.testing.assert_allclose(log.table['ux'], [5.0 / 200.0, 10.0 / 200.0])


class TestPlasticity:
    """Nonlinear material response."""

    @pytest.fixture
    def plastic(self):
        mesh = create_line_mesh([0.0], [1.0], 2)
        mat = ElastoPlasticRod(E=100.0, A=1.0, fy=0.5, H=10.0)
        return Domain(mesh, [(None, mat)])

    def test_converges_to_load(self, plastic):
        result = solve(plastic, [NodeBC(left, ux=0.0), NodeBC(right, fx=0.8)],
                       nincs=4, maxits=10, tol=1e-8)
        assert result.converged
        for elem in plastic.elems:
            vals = elem.output_values()
            assert np.isclose(vals['sa'], 0.8, atol=1e-6)
            assert vals['epa'] > 0.0

    def test_rejected_increment_rolls_back(self, plastic):
        """A failed increment leaves states and dof values bit-identical."""
        before = snapshot(plastic)
        with pytest.raises(ConvergenceError):
            solve(plastic, [NodeBC(left, ux=0.0), NodeBC(right, fx=0.8)],
                  nincs=1, maxits=1, tol=1e-10)
        after = snapshot(plastic)

        for s0, s1 in zip(before[0], after[0]):
            assert s0 == s1
        assert before[1] == after[1]
        assert all(ip.trial is None for ip in plastic.ips)
        assert plastic.env.t == 0.0
        assert plastic.env.inc == 0

    def test_auto_increment_recovers(self, plastic, caplog):
        """Rejected increments are retried with a smaller step."""
        with caplog.at_level(logging.WARNING, logger='nlfea'):
            result = solve(plastic, [NodeBC(left, ux=0.0), NodeBC(right, fx=0.8)],
                           nincs=1, maxits=1, tol=1e-2, auto_inc=True)
        assert result.converged
        assert result.n_rejected >= 1
        assert any('rejected' in rec.message for rec in caplog.records)
        assert np.isclose(plastic.elems[0].output_values()['sa'], 0.8, atol=1e-6)
        assert np.isclose(sum(rec.dT for rec in result.increments if rec.converged), 1.0)

    def test_min_increment_floor(self, plastic):
        with pytest.raises(ConvergenceError):
            solve(plastic, [NodeBC(left, ux=0.0), NodeBC(right, fx=0.8)],
                  nincs=1, maxits=1, tol=1e-12, auto_inc=True, min_dT=0.1)

    def test_max_increments(self, plastic):
        with pytest.raises(ConvergenceError):
            solve(plastic, [NodeBC(left, ux=0.0), NodeBC(right, fx=0.8)],
                  nincs=10, maxincs=3)

    def test_growth_after_fast_convergence(self):
        mesh = create_line_mesh([0.0], [1.0], 1)
        domain = Domain(mesh, [(None, ElasticRod(E=1.0, A=1.0))])
        result = solve(domain, [NodeBC(left, ux=0.0), NodeBC(right, ux=1.0)],
                       nincs=10, auto_inc=True)
        dTs = [rec.dT for rec in result.increments]
        assert dTs[1] > dTs[0]
        assert np.isclose(sum(dTs), 1.0)


class TestBeam:

    def test_cantilever_tip_deflection(self):
        """δ = PL³ / (3EI)"""
        mesh = create_line_mesh([0.0, 0.0], [2.0, 0.0], 4)
        domain = Domain(mesh, [(None, ElasticBeam(E=100.0, A=1.0, I=0.5))])
        bcs = [NodeBC(lambda x, y, z: x == 0.0, ux=0.0, uy=0.0, rz=0.0),
               NodeBC(lambda x, y, z: x == 2.0, fy=-3.0)]
        solve(domain, bcs, tol=1e-8)
        tip = domain.nodes[-1]
        assert np.isclose(tip['uy'].value, -3.0 * 8.0 / (3 * 100.0 * 0.5))
        assert np.isclose(domain.elems[0].output_values()['M'], -3.0 * 1.75, rtol=1e-6)


class TestTransient:
    """Heat conduction with capacity."""

    @pytest.fixture
    def bar(self):
        mesh = create_rectangle_mesh(1.0, 0.1, 10, 1)
        return Domain(mesh, [(None, LinThermo(k=1.0, rho=1.0, cv=1.0))])

    def test_transient_flag(self, bar):
        solve(bar, [NodeBC(left, ut=1.0)], end_time=0.01)
        assert bar.env.transient
        assert np.isclose(bar.env.t, 0.01)
        far = bar.select_nodes(right)
        assert all(node['ut'].value < 0.5 for node in far)

    def test_steady_state(self, bar):
        solve(bar, [NodeBC(left, ut=1.0)], end_time=20.0, nincs=40, tol=1e-8)
        for node in bar.nodes:
            assert np.isclose(node['ut'].value, 1.0, atol=1e-3)

    def test_matches_backward_euler(self, bar):
        """Nodal temperatures follow a backward Euler march on H and M."""
        H = assemble_operator(bar, 'conductivity').toarray()
        M = assemble_operator(bar, 'mass').toarray()
        p = np.array([node['ut'].eq_id for node in bar.select_nodes(left)])
        f = np.setdiff1d(np.arange(bar.ndofs), p)

        nincs, end_time = 20, 0.2
        dt = end_time / nincs
        A = H + M / dt
        U = np.zeros(bar.ndofs)
        for k in range(1, nincs + 1):
            rhs = M @ U / dt
            U[p] = k / nincs
            U[f] = np.linalg.solve(A[np.ix_(f, f)], rhs[f] - A[np.ix_(f, p)] @ U[p])

        solve(bar, [NodeBC(left, ut=1.0)], nincs=nincs, end_time=end_time, tol=1e-10)
        actual = np.array([dof.value for dof in sorted(bar.dofs, key=lambda d: d.eq_id)])
        np.testing.assert_allclose(actual, U, atol=1e-8)

    def test_held_boundary_values_keep_diffusing(self, bar):
        """A stage that only holds the boundary values reaches steady state."""
        bcs = [NodeBC(left, ut=1.0), NodeBC(right, ut=0.0)]
        solve(bar, bcs, nincs=5, end_time=0.05, tol=1e-8)
        interior = [n for n in bar.nodes if 0.0 < n.coord[0] < 1.0]
        assert not np.allclose([n['ut'].value for n in interior],
                               [1.0 - n.coord[0] for n in interior], atol=1e-2)

        solve(bar, bcs, nincs=40, end_time=20.0, tol=1e-8)
        assert np.isclose(bar.env.t, 20.05)
        for node in bar.nodes:
            assert np.isclose(node['ut'].value, 1.0 - node.coord[0], atol=1e-3)

    def test_natural_values_are_conduction_fluxes(self, bar):
        """Free nodes carry no net conduction flux at steady state."""
        solve(bar, [NodeBC(left, ut=1.0), NodeBC(right, ut=0.0)],
              nincs=40, end_time=20.0, tol=1e-8)
        free = [n for n in bar.nodes if 0.0 < n.coord[0] < 1.0]
        for node in free:
            assert np.isclose(node['ut'].natural_value, 0.0, atol=1e-6)
        inflow = sum(n['ut'].natural_value for n in bar.select_nodes(left))
        assert np.isclose(inflow, 0.1, atol=1e-4)

    def test_static_without_end_time(self, bar):
        solve(bar, [NodeBC(left, ut=1.0)], tol=1e-8)
        assert not bar.env.transient
        for node in bar.nodes:
            assert np.isclose(node['ut'].value, 1.0)


class TestVerbose:

    def test_iteration_messages(self, caplog):
        domain = Domain(create_single_element('LIN2'), [(None, ElasticRod(E=1.0, A=1.0))])
        with caplog.at_level(logging.INFO, logger='nlfea'):
            NonlinearSolver(domain, SolverConfig(verbose=True)).solve(
                [NodeBC(left, ux=0.0), NodeBC(right, ux=0.1)])
        assert any('Stage 1' in rec.message for rec in caplog.records)
