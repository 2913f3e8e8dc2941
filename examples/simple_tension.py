"""
Simple Tension Test Example
===========================

Demonstrates basic usage of nlfea:

1. A plane-stress plate under an edge traction.
2. An elastoplastic bar loaded past yield with automatic increments.
3. Transient heat conduction in a strip.
"""

import logging

import numpy as np
import matplotlib.pyplot as plt
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nlfea import Domain, NodeBC, FaceBC, SolverConfig, solve
from nlfea.logging_config import setup_logging
from nlfea.mesh import create_rectangle_mesh, create_line_mesh
from nlfea.mesh.mesh_io import save_domain
from nlfea.physics import ElasticSolid, ElastoPlasticRod, LinThermo
from nlfea.postprocess import (
    NodeLogger, NodeGroupLogger, plot_domain, plot_node_field, plot_history
)


def run_plate():
    """Plane-stress plate pulled on its right edge."""
    Lx, Ly = 2.0, 1.0
    mesh = create_rectangle_mesh(Lx, Ly, 8, 4, shape='QUAD8')
    domain = Domain(mesh, [(None, ElasticSolid(E=210e3, nu=0.3))],
                    modeltype='plane_stress', thickness=0.01)

    bcs = [
        NodeBC(lambda x, y, z: x == 0.0, ux=0.0),
        NodeBC(lambda x, y, z: x == 0.0 and y == 0.0, uy=0.0),
        FaceBC(lambda x, y, z: x == Lx, tx=100.0),
    ]
    result = solve(domain, bcs, nincs=2, tol=1e-6)
    print(f"Plate: {result.n_increments} increments, residual {result.residual:.3e}")

    domain.update_output_data()
    print(f"  max ux = {domain.node_data['ux'].max():.6e}  (PL/EA = {100.0 * Lx / 210e3:.6e})")
    save_domain(domain, 'plate.vtu')
    return domain


def run_plastic_bar():
    """Bar loaded past yield; the stress-strain history is logged."""
    mesh = create_line_mesh([0.0], [1.0], 4)
    domain = Domain(mesh, [(None, ElastoPlasticRod(E=200e3, A=1.0, fy=250.0, H=2e3))])

    tip = NodeLogger()
    domain.set_loggers([(lambda x, y, z: x == 1.0, tip)])

    config = SolverConfig(nincs=10, maxits=10, tol=1e-6, auto_inc=True)
    bcs = [NodeBC(lambda x, y, z: x == 0.0, ux=0.0),
           NodeBC(lambda x, y, z: x == 1.0, ux=0.004)]
    result = solve(domain, bcs, config)

    sa = domain.elems[0].output_values()['sa']
    print(f"Plastic bar: {result.n_increments} increments "
          f"({result.n_rejected} rejected), final stress {sa:.2f}")
    return tip


def run_heat_strip():
    """Strip heated at one end; temperature profiles at output points."""
    mesh = create_rectangle_mesh(1.0, 0.1, 20, 1)
    domain = Domain(mesh, [(None, LinThermo(k=1.0, rho=1.0, cv=1.0))])

    profile = NodeGroupLogger()
    domain.set_loggers([(lambda x, y, z: y == 0.0, profile)])

    solve(domain, [NodeBC(lambda x, y, z: x == 0.0, ut=1.0)],
          nincs=50, end_time=0.5, nouts=5, tol=1e-8)

    for snap in profile.snapshots:
        mid = np.interp(0.5, snap.table['x'], snap.table['ut'])
        print(f"  t = {snap.t:.2f}: ut(0.5) = {mid:.4f}")
    return profile


def main():
    setup_logging(logging.WARNING)

    print("=" * 60)
    print("nlfea: Simple Tension Test")
    print("=" * 60)

    plate = run_plate()
    tip = run_plastic_bar()
    profile = run_heat_strip()

    fig, axes = plt.subplots(1, 3, figsize=(16, 5))
    plot_node_field(plate, 'sxx', ax=axes[0])
    plot_domain(plate, ax=axes[0], U=plate.node_data['U'], scale=200.0, alpha=0.3)
    axes[0].set_title('Plate: σxx')

    plot_history(tip.table, 'ux', 'fx', ax=axes[1])
    axes[1].set_title('Plastic bar: tip force')

    for snap in profile.snapshots:
        axes[2].plot(snap.table['x'], snap.table['ut'], label=f"t={snap.t:.2f}")
    axes[2].set_xlabel('x')
    axes[2].set_ylabel('ut')
    axes[2].legend()
    axes[2].set_title('Heat strip')

    plt.tight_layout()
    plt.savefig('simple_tension_results.png', dpi=150)
    print("\nResults saved to 'simple_tension_results.png'")


if __name__ == "__main__":
    main()
