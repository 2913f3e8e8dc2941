"""
Visualization
=============

Plotting functions for domains, nodal fields, logger histories and
solver increments.
"""

import numpy as np
from typing import Optional, List, Dict, TYPE_CHECKING

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PolyCollection
from matplotlib.tri import Triangulation

from ..mesh.shapes import ShapeFamily

if TYPE_CHECKING:
    from ..model.domain import Domain
    from ..solvers.nonlinear_solver import SolveResult


def _xy(domain: 'Domain', U: Optional[np.ndarray] = None, scale: float = 1.0) -> np.ndarray:
    X = np.array([node.coord[:2] for node in domain.nodes])
    if U is not None:
        X = X + scale * np.asarray(U)[:, :2]
    return X


def _triangles(domain: 'Domain') -> np.ndarray:
    """Split the corner polygons of 2D solid elements into triangles."""
    tris: List[List[int]] = []
    for elem in domain.elems:
        if elem.shape.family != ShapeFamily.SOLID:
            continue
        corners = elem.node_ids[:elem.shape.basic_npoints]
        for i in range(1, len(corners) - 1):
            tris.append([corners[0], corners[i], corners[i + 1]])
    return np.array(tris, dtype=np.int64).reshape(-1, 3)


def plot_domain(domain: 'Domain',
                ax: Optional['plt.Axes'] = None,
                U: Optional[np.ndarray] = None,
                scale: float = 1.0,
                show_nodes: bool = False,
                node_labels: bool = False,
                **kwargs) -> 'plt.Axes':
    """
    Plot the elements of a domain (x-y projection).

    Args:
        domain: Domain instance
        ax: matplotlib axes (created if None)
        U: optional nodal displacements, shape (n_nodes, >=2), to draw
           the deformed configuration
        scale: displacement magnification
        show_nodes: whether to show node points
        node_labels: whether to label nodes with indices
        **kwargs: passed to the collections

    Returns:
        ax: matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    X = _xy(domain, U, scale)

    polys, lines = [], []
    for elem in domain.elems:
        corners = elem.node_ids[:elem.shape.basic_npoints]
        if elem.shape.family == ShapeFamily.SOLID and domain.env.ndim == 2:
            polys.append(X[corners])
        else:
            lines.append(X[corners])

    if polys:
        ax.add_collection(PolyCollection(polys, facecolors='lightsteelblue',
                                         edgecolors='k', linewidths=0.5, **kwargs))
    if lines:
        ax.add_collection(LineCollection(lines, colors='k', linewidths=1.0, **kwargs))

    if show_nodes:
        ax.plot(X[:, 0], X[:, 1], 'ko', ms=3)

    if node_labels:
        for i, (x, y) in enumerate(X):
            ax.annotate(str(i), (x, y), fontsize=8)

    ax.autoscale()
    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('y')

    return ax


def plot_node_field(domain: 'Domain',
                    field: str,
                    ax: Optional['plt.Axes'] = None,
                    cmap: str = 'viridis',
                    colorbar: bool = True,
                    **kwargs) -> 'plt.Axes':
    """
    Plot a nodal field of a 2D solid domain.

    ``domain.update_output_data()`` must have been called.

    Args:
        domain: Domain instance
        field: key of ``domain.node_data``
        ax: matplotlib axes
        cmap: colormap name
        colorbar: whether to show colorbar
        **kwargs: passed to tripcolor

    Returns:
        ax: matplotlib axes
    """
    if field not in domain.node_data:
        raise ValueError(f"Unknown node field: {field}")
    values = np.asarray(domain.node_data[field])
    if values.ndim != 1:
        values = np.linalg.norm(values, axis=1)

    tris = _triangles(domain)
    if domain.env.ndim != 2 or len(tris) == 0:
        raise ValueError("Field plots require a 2D domain with solid elements")

    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    X = _xy(domain)
    tri = Triangulation(X[:, 0], X[:, 1], tris)
    tcf = ax.tripcolor(tri, values, shading='gouraud', cmap=cmap, **kwargs)
    ax.set_aspect('equal')

    if colorbar:
        plt.colorbar(tcf, ax=ax, label=field)

    ax.set_xlabel('x')
    ax.set_ylabel('y')

    return ax


def plot_history(table: Dict[str, np.ndarray],
                 x: str,
                 y: str,
                 ax: Optional['plt.Axes'] = None,
                 **kwargs) -> 'plt.Axes':
    """
    Plot two columns of a logger table.

    Args:
        table: logger table (e.g. ``NodeLogger.table``)
        x: column for the horizontal axis
        y: column for the vertical axis
        ax: matplotlib axes
        **kwargs: passed to plot

    Returns:
        ax: matplotlib axes
    """
    for key in (x, y):
        if key not in table:
            raise ValueError(f"Unknown column: {key}")

    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    ax.plot(table[x], table[y], 'b-o', ms=3, **kwargs)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.grid(True, alpha=0.3)

    return ax


def plot_increments(result: 'SolveResult',
                    ax: Optional['plt.Axes'] = None,
                    **kwargs) -> 'plt.Axes':
    """
    Plot iterations per increment against the stage pseudo-time.

    Rejected attempts are drawn as red crosses.

    Args:
        result: SolveResult from the solver
        ax: matplotlib axes
        **kwargs: passed to plot

    Returns:
        ax: matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    done = [rec for rec in result.increments if rec.converged]
    rejected = [rec for rec in result.increments if not rec.converged]

    ax.plot([rec.T for rec in done], [rec.iterations for rec in done],
            'b-o', ms=3, label='Converged', **kwargs)
    if rejected:
        ax.plot([rec.T for rec in rejected], [rec.iterations for rec in rejected],
                'rx', label='Rejected')
    ax.set_xlabel('Pseudo-time T')
    ax.set_ylabel('Iterations')
    ax.grid(True, alpha=0.3)
    ax.legend()

    return ax
