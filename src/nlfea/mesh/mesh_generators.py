"""
Mesh Generators
===============

Simple structured mesh generators for tests and examples.
"""

import numpy as np
from typing import Optional, Sequence

from .mesh import Cell, Mesh
from .shapes import ShapeFamily, get_shape


def create_line_mesh(start: Sequence[float], end: Sequence[float], n: int,
                     shape: str = 'LIN2', tag: str = '',
                     ndim: Optional[int] = None) -> Mesh:
    """
    Create a straight line mesh between two points.

    Args:
        start, end: end point coordinates (1 to 3 components)
        n: number of cells
        shape: 'LIN2' or 'LIN3'
        tag: tag assigned to every cell
        ndim: analysis dimension (inferred when None)

    Returns:
        Mesh instance
    """
    shape_type = get_shape(shape)
    if shape_type.family != ShapeFamily.LINE:
        raise ValueError(f"Line meshes require a line shape, got {shape}")
    if n < 1:
        raise ValueError("n must be at least 1")

    X0 = np.zeros(3)
    X1 = np.zeros(3)
    X0[:len(start)] = start
    X1[:len(end)] = end

    if shape_type.npoints == 2:
        points = [X0 + (X1 - X0) * i / n for i in range(n + 1)]
        cells = [Cell(shape_type, [i, i + 1], tag=tag) for i in range(n)]
    else:
        points = [X0 + (X1 - X0) * i / (2 * n) for i in range(2 * n + 1)]
        cells = [Cell(shape_type, [2 * i, 2 * i + 2, 2 * i + 1], tag=tag) for i in range(n)]

    if ndim is None:
        ndim = max(len(start), len(end))
    return Mesh(np.array(points), cells, ndim=ndim)


def create_rectangle_mesh(Lx: float, Ly: float, nx: int, ny: int,
                          shape: str = 'QUAD4', tag: str = '',
                          origin: Sequence[float] = (0.0, 0.0)) -> Mesh:
    """
    Create structured mesh on rectangle [x0, x0+Lx] × [y0, y0+Ly].

    Args:
        Lx, Ly: domain dimensions
        nx, ny: number of divisions in x and y
        shape: 'QUAD4', 'QUAD8', 'TRI3' or 'TRI6'
            triangles split every quad along the lower-left to
            upper-right diagonal
        tag: tag assigned to every cell
        origin: lower-left corner

    Returns:
        Mesh instance
    """
    shape_type = get_shape(shape)
    if shape_type.name not in ('QUAD4', 'QUAD8', 'TRI3', 'TRI6'):
        raise ValueError(f"Unsupported shape for rectangle mesh: {shape}")

    quadratic = shape_type.name in ('QUAD8', 'TRI6')
    m = 2 if quadratic else 1

    # Points are created on demand on a grid refined m times
    point_idx = {}
    points = []

    def node(i, j):
        key = (i, j)
        if key not in point_idx:
            point_idx[key] = len(points)
            points.append([origin[0] + i * Lx / (m * nx), origin[1] + j * Ly / (m * ny)])
        return point_idx[key]

    cells = []
    for j in range(ny):
        for i in range(nx):
            I, J = m * i, m * j
            if shape_type.name == 'QUAD4':
                conn = [node(I, J), node(I + 1, J), node(I + 1, J + 1), node(I, J + 1)]
                cells.append(Cell(shape_type, conn, tag=tag))
            elif shape_type.name == 'QUAD8':
                conn = [node(I, J), node(I + 2, J), node(I + 2, J + 2), node(I, J + 2),
                        node(I + 1, J), node(I + 2, J + 1), node(I + 1, J + 2), node(I, J + 1)]
                cells.append(Cell(shape_type, conn, tag=tag))
            elif shape_type.name == 'TRI3':
                cells.append(Cell(shape_type, [node(I, J), node(I + 1, J), node(I + 1, J + 1)], tag=tag))
                cells.append(Cell(shape_type, [node(I, J), node(I + 1, J + 1), node(I, J + 1)], tag=tag))
            else:
                cells.append(Cell(shape_type, [node(I, J), node(I + 2, J), node(I + 2, J + 2),
                                               node(I + 1, J), node(I + 2, J + 1), node(I + 1, J + 1)],
                                  tag=tag))
                cells.append(Cell(shape_type, [node(I, J), node(I + 2, J + 2), node(I, J + 2),
                                               node(I + 1, J + 1), node(I + 1, J + 2), node(I, J + 1)],
                                  tag=tag))

    return Mesh(np.array(points), cells, ndim=2)


def create_box_mesh(Lx: float, Ly: float, Lz: float, nx: int, ny: int, nz: int,
                    tag: str = '', origin: Sequence[float] = (0.0, 0.0, 0.0)) -> Mesh:
    """
    Create structured HEX8 mesh on a box.

    Args:
        Lx, Ly, Lz: box dimensions
        nx, ny, nz: number of divisions
        tag: tag assigned to every cell
        origin: corner with the smallest coordinates

    Returns:
        Mesh instance
    """
    shape_type = get_shape('HEX8')

    def node_idx(i, j, k):
        return (k * (ny + 1) + j) * (nx + 1) + i

    points = np.zeros(((nx + 1) * (ny + 1) * (nz + 1), 3))
    for k in range(nz + 1):
        for j in range(ny + 1):
            for i in range(nx + 1):
                points[node_idx(i, j, k)] = [origin[0] + i * Lx / nx,
                                             origin[1] + j * Ly / ny,
                                             origin[2] + k * Lz / nz]

    cells = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                conn = [node_idx(i, j, k), node_idx(i + 1, j, k),
                        node_idx(i + 1, j + 1, k), node_idx(i, j + 1, k),
                        node_idx(i, j, k + 1), node_idx(i + 1, j, k + 1),
                        node_idx(i + 1, j + 1, k + 1), node_idx(i, j + 1, k + 1)]
                cells.append(Cell(shape_type, conn, tag=tag))

    return Mesh(points, cells, ndim=3)


def create_single_element(shape: str = 'QUAD4',
                          node_coords: Optional[np.ndarray] = None,
                          tag: str = '') -> Mesh:
    """
    Create mesh with a single cell.

    Useful for unit testing.

    Args:
        shape: shape name
        node_coords: shape (npoints, d), node coordinates
            Default: the reference cell mapped to the unit square/cube for
            quadrilaterals and hexahedra, the reference cell otherwise
        tag: cell tag

    Returns:
        Mesh instance
    """
    shape_type = get_shape(shape)
    if node_coords is None:
        X = shape_type.nat_coords[:, :max(shape_type.ndim, 1)].copy()
        if shape_type.name.startswith(('QUAD', 'HEX', 'LIN')):
            X = (X + 1.0) / 2.0
        node_coords = X

    ndim = 3 if shape_type.ndim == 3 else np.asarray(node_coords).shape[1]
    cells = [Cell(shape_type, list(range(shape_type.npoints)), tag=tag)]
    return Mesh(node_coords, cells, ndim=ndim)


def perturb_interior_nodes(mesh: Mesh, magnitude: float = 0.1,
                           seed: Optional[int] = None) -> Mesh:
    """
    Randomly perturb interior points for patch test verification.

    Args:
        mesh: input mesh
        magnitude: perturbation magnitude as fraction of the smallest
            distance between connected points
        seed: random seed for reproducibility

    Returns:
        New Mesh with perturbed points
    """
    rng = np.random.default_rng(seed)

    min_length = np.inf
    for cell in mesh.cells:
        X = mesh.points[cell.node_ids]
        for a in range(len(X)):
            for b in range(a + 1, len(X)):
                min_length = min(min_length, np.linalg.norm(X[a] - X[b]))
    pert = magnitude * min_length

    boundary = {n for face in mesh.faces for n in face.node_ids}
    new_points = mesh.points.copy()
    for i in range(mesh.n_points):
        if i not in boundary:
            new_points[i, :mesh.ndim] += rng.uniform(-pert, pert, mesh.ndim)

    cells = [Cell(cell.shape, list(cell.node_ids), tag=cell.tag, embedded=cell.embedded,
                  linked_cells=list(cell.linked_cells), nips=cell.nips)
             for cell in mesh.cells]
    return Mesh(new_points, cells, ndim=mesh.ndim, point_tags=mesh.point_tags)
