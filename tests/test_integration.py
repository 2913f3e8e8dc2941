"""
Integration Tests
=================

End-to-end tests for the complete framework.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import meshio
import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nlfea import Domain, NodeBC, FaceBC, solve
from nlfea.mesh.mesh_generators import create_line_mesh, create_rectangle_mesh, create_single_element
from nlfea.mesh.mesh_io import save_domain
from nlfea.physics import ElasticRod, ElasticSolid, LinThermo
from nlfea.postprocess import (
    NodeLogger, IpLogger, NodeGroupLogger, IpGroupLogger,
    plot_domain, plot_node_field, plot_history, plot_increments
)


def left(x, y, z):
    return x == 0.0


def right(x, y, z):
    return x == 1.0


class TestThermalWorkflow:
    """Linear temperature field on a single quadrilateral."""

    def test_prescribed_linear_field(self):
        domain = Domain(create_single_element('QUAD4'), [(None, LinThermo(k=2.0))])
        field = lambda x, y, z, t: 1.0 + 2.0 * x + 3.0 * y
        result = solve(domain, [NodeBC(None, ut=field)], tol=1e-8)
        assert result.converged

        domain.update_output_data()
        expected = [field(*node.coord, 1.0) for node in domain.nodes]
        np.testing.assert_allclose(domain.node_data['ut'], expected)
        np.testing.assert_allclose(domain.node_data['qx'], -4.0, atol=1e-10)
        np.testing.assert_allclose(domain.node_data['qy'], -6.0, atol=1e-10)


class TestPlaneStressPatch:
    """Uniform uniaxial stress on a 2×2 patch."""

    E, nu = 10.0, 0.25

    @pytest.fixture
    def domain(self):
        mesh = create_rectangle_mesh(1.0, 1.0, 2, 2)
        return Domain(mesh, [(None, ElasticSolid(E=self.E, nu=self.nu))],
                      modeltype='plane_stress')

    @pytest.fixture
    def bcs(self):
        return [NodeBC(left, ux=0.0),
                NodeBC(lambda x, y, z: x == 0.0 and y == 0.0, uy=0.0),
                FaceBC(right, tx=1.0)]

    def test_uniform_stress(self, domain, bcs):
        solve(domain, bcs, tol=1e-8)
        for node in domain.nodes:
            x, y, _ = node.coord
            assert np.isclose(node['ux'].value, x / self.E)
            assert np.isclose(node['uy'].value, -self.nu * y / self.E)
        for elem in domain.elems:
            assert np.isclose(elem.output_values()['sxx'], 1.0)
            assert np.isclose(elem.output_values()['syy'], 0.0, atol=1e-10)

    def test_reactions_balance_load(self, domain, bcs):
        solve(domain, bcs, tol=1e-8)
        reactions = sum(node['fx'].natural_value for node in domain.select_nodes(left))
        assert np.isclose(reactions, -1.0)


class TestLoggers:
    """Logger updates during a stage."""

    @pytest.fixture
    def chain(self):
        mesh = create_line_mesh([0.0], [1.0], 4)
        return Domain(mesh, [(None, ElasticRod(E=1.0, A=1.0))])

    @pytest.fixture
    def bcs(self):
        return [NodeBC(left, ux=0.0), NodeBC(right, ux=0.1)]

    def test_node_logger_rows(self, chain, bcs):
        log = NodeLogger()
        chain.set_loggers([(right, log)])
        solve(chain, bcs, nincs=4)
        assert len(log.rows) == 4
        np.testing.assert_allclose(log.table['ux'], [0.025, 0.05, 0.075, 0.1])
        np.testing.assert_array_equal(log.table['inc'], [1, 2, 3, 4])

    def test_ip_logger(self, chain, bcs):
        log = IpLogger()
        chain.set_loggers([([0], log)])
        solve(chain, bcs, nincs=2)
        np.testing.assert_allclose(log.table['sa'], [0.05, 0.1])

    def test_group_logger_output_points(self, chain, bcs):
        log = NodeGroupLogger()
        chain.set_loggers([(None, log)])
        solve(chain, bcs, nincs=4, nouts=2)
        assert len(log.snapshots) == 2
        np.testing.assert_allclose([snap.t for snap in log.snapshots], [0.5, 1.0])
        np.testing.assert_allclose(log.table['s'], [0.0, 0.25, 0.5, 0.75, 1.0])
        np.testing.assert_allclose(log.table['ux'], np.linspace(0.0, 0.1, 5))

    def test_group_logger_stage_end(self, chain, bcs):
        log = IpGroupLogger()
        chain.set_loggers([(None, log)])
        solve(chain, bcs, nincs=4)
        assert len(log.snapshots) == 1
        np.testing.assert_allclose(log.table['sa'], 0.1)

    def test_save(self, chain, bcs, tmp_path):
        node_log, group_log = NodeLogger(), NodeGroupLogger()
        chain.set_loggers([(right, node_log), (None, group_log)])
        solve(chain, bcs, nincs=3)

        path = tmp_path / 'tip.dat'
        node_log.save(str(path))
        with open(path) as f:
            header = f.readline().split()
        data = np.loadtxt(path, skiprows=1)
        assert header[:3] == ['stage', 'inc', 't']
        assert data.shape == (3, len(header))

        group_log.save(str(tmp_path / 'line.dat'))
        assert os.path.exists(tmp_path / 'line.dat')

    def test_save_requires_filename(self, chain, bcs):
        log = NodeLogger()
        chain.set_loggers([(right, log)])
        solve(chain, bcs)
        with pytest.raises(ValueError):
            log.save()


class TestOutputFiles:

    def test_save_domain_vtu(self, tmp_path):
        domain = Domain(create_rectangle_mesh(1.0, 1.0, 2, 2),
                        [(None, ElasticSolid(E=1.0))], modeltype='plane_stress')
        solve(domain, [NodeBC(left, ux=0.0, uy=0.0), FaceBC(right, tx=1.0)], tol=1e-8)

        filename = str(tmp_path / 'result.vtu')
        save_domain(domain, filename)
        data = meshio.read(filename)

        assert len(data.points) == len(domain.nodes)
        assert 'ux' in data.point_data
        assert 'sxx' in data.point_data
        assert 'svm' in data.cell_data
        np.testing.assert_allclose(data.point_data['ux'], domain.node_data['ux'])


class TestPlotting:
    """Smoke tests for plotting helpers."""

    @pytest.fixture
    def solved(self):
        domain = Domain(create_rectangle_mesh(1.0, 1.0, 2, 2),
                        [(None, ElasticSolid(E=1.0))], modeltype='plane_stress')
        log = NodeLogger()
        domain.set_loggers([(lambda x, y, z: x == 1.0 and y == 1.0, log)])
        result = solve(domain, [NodeBC(left, ux=0.0, uy=0.0), FaceBC(right, tx=1.0)],
                       nincs=2, tol=1e-8)
        domain.update_output_data()
        yield domain, log, result
        plt.close('all')

    def test_plot_domain(self, solved):
        domain, _, _ = solved
        ax = plot_domain(domain, U=domain.node_data['U'], scale=0.1,
                         show_nodes=True, node_labels=True)
        assert len(ax.collections) == 1

    def test_plot_node_field(self, solved):
        domain, _, _ = solved
        ax = plot_node_field(domain, 'sxx')
        assert ax is not None
        with pytest.raises(ValueError):
            plot_node_field(domain, 'missing')

    def test_plot_history(self, solved):
        _, log, _ = solved
        ax = plot_history(log.table, 't', 'ux')
        assert len(ax.lines) == 1
        with pytest.raises(ValueError):
            plot_history(log.table, 't', 'missing')

    def test_plot_increments(self, solved):
        _, _, result = solved
        ax = plot_increments(result)
        assert ax is not None

    def test_rod_domain_lines(self):
        domain = Domain(create_line_mesh([0.0, 0.0], [1.0, 1.0], 3),
                        [(None, ElasticRod(E=1.0, A=1.0))])
        ax = plot_domain(domain)
        assert len(ax.collections) == 1
        plt.close('all')
