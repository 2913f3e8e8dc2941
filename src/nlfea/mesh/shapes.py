"""
Shape Types
===========

Reference shapes with interpolation functions, local derivatives,
facet connectivity and quadrature tables.

Shape functions take local coordinates R = (r, s, t) (only the first
``ndim`` components are used) and return:
    func(R):  shape (npoints,)
    deriv(R): shape (ndim, npoints), dN/dR
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .quadrature import gauss_line, gauss_quad, gauss_hex, gauss_triangle, gauss_tetra


class ShapeFamily(Enum):
    """Classification of cell geometry."""
    LINE = "line"
    SOLID = "solid"
    JOINT = "joint"


@dataclass(eq=False)
class ShapeType:
    """
    Reference cell description.

    Attributes:
        name: shape name (e.g. 'QUAD4')
        family: ShapeFamily
        ndim: number of local coordinates
        npoints: number of nodes
        basic_npoints: number of corner nodes
        nat_coords: shape (npoints, 3), local node coordinates
        func: interpolation functions
        deriv: local derivatives of the interpolation functions
        rule: quadrature rule factory, rule(nips) -> (nips, 4) table
        default_nips: number of integration points used by default
        facet_idxs: local node indices of each facet
        facet_shape: name of the facet shape
        meshio_type: cell type name used by meshio
    """
    name: str
    family: ShapeFamily
    ndim: int
    npoints: int
    basic_npoints: int
    nat_coords: np.ndarray
    func: Callable[[np.ndarray], np.ndarray]
    deriv: Callable[[np.ndarray], np.ndarray]
    rule: Callable[[int], np.ndarray]
    default_nips: int
    facet_idxs: List[Tuple[int, ...]] = field(default_factory=list)
    facet_shape: Optional[str] = None
    meshio_type: str = ""

    def ip_coords(self, nips: int = 0) -> np.ndarray:
        """
        Integration point table.

        Args:
            nips: number of points (0 selects the default rule)

        Returns:
            table: shape (nips, 4) with rows [r, s, t, w]
        """
        return self.rule(nips or self.default_nips)

    @property
    def facet(self) -> Optional['ShapeType']:
        """Shape of the facets (None for shapes without facets)."""
        return SHAPES[self.facet_shape] if self.facet_shape else None

    def __repr__(self) -> str:
        return f"ShapeType({self.name})"


# Lines
# =====

def _lin2_func(R):
    r = R[0]
    return np.array([0.5 * (1 - r), 0.5 * (1 + r)])


def _lin2_deriv(R):
    return np.array([[-0.5, 0.5]])


def _lin3_func(R):
    r = R[0]
    return np.array([0.5 * r * (r - 1), 0.5 * r * (r + 1), 1 - r * r])


def _lin3_deriv(R):
    r = R[0]
    return np.array([[r - 0.5, r + 0.5, -2 * r]])


# Triangles
# =========

def _tri3_func(R):
    r, s = R[0], R[1]
    return np.array([1 - r - s, r, s])


def _tri3_deriv(R):
    return np.array([[-1.0, 1.0, 0.0],
                     [-1.0, 0.0, 1.0]])


def _tri6_func(R):
    r, s = R[0], R[1]
    L = 1 - r - s
    return np.array([
        L * (2 * L - 1),
        r * (2 * r - 1),
        s * (2 * s - 1),
        4 * r * L,
        4 * r * s,
        4 * s * L,
    ])


def _tri6_deriv(R):
    r, s = R[0], R[1]
    L = 1 - r - s
    return np.array([
        [1 - 4 * L, 4 * r - 1, 0.0, 4 * (L - r), 4 * s, -4 * s],
        [1 - 4 * L, 0.0, 4 * s - 1, -4 * r, 4 * r, 4 * (L - s)],
    ])


# Quadrilaterals
# ==============

_QUAD_CORNERS = np.array([[-1, -1], [1, -1], [1, 1], [-1, 1]], dtype=float)
_QUAD8_MIDS = np.array([[0, -1], [1, 0], [0, 1], [-1, 0]], dtype=float)


def _quad4_func(R):
    r, s = R[0], R[1]
    ri, si = _QUAD_CORNERS[:, 0], _QUAD_CORNERS[:, 1]
    return 0.25 * (1 + r * ri) * (1 + s * si)


def _quad4_deriv(R):
    r, s = R[0], R[1]
    ri, si = _QUAD_CORNERS[:, 0], _QUAD_CORNERS[:, 1]
    return 0.25 * np.array([ri * (1 + s * si),
                            si * (1 + r * ri)])


def _quad8_func(R):
    r, s = R[0], R[1]
    N = np.zeros(8)
    for i, (ri, si) in enumerate(_QUAD_CORNERS):
        N[i] = 0.25 * (1 + r * ri) * (1 + s * si) * (r * ri + s * si - 1)
    for i, (ri, si) in enumerate(_QUAD8_MIDS):
        if ri == 0:
            N[4 + i] = 0.5 * (1 - r * r) * (1 + s * si)
        else:
            N[4 + i] = 0.5 * (1 + r * ri) * (1 - s * s)
    return N


def _quad8_deriv(R):
    r, s = R[0], R[1]
    D = np.zeros((2, 8))
    for i, (ri, si) in enumerate(_QUAD_CORNERS):
        D[0, i] = 0.25 * ri * (1 + s * si) * (2 * r * ri + s * si)
        D[1, i] = 0.25 * si * (1 + r * ri) * (r * ri + 2 * s * si)
    for i, (ri, si) in enumerate(_QUAD8_MIDS):
        if ri == 0:
            D[0, 4 + i] = -r * (1 + s * si)
            D[1, 4 + i] = 0.5 * si * (1 - r * r)
        else:
            D[0, 4 + i] = 0.5 * ri * (1 - s * s)
            D[1, 4 + i] = -s * (1 + r * ri)
    return D


# Solids
# ======

def _tet4_func(R):
    r, s, t = R[0], R[1], R[2]
    return np.array([1 - r - s - t, r, s, t])


def _tet4_deriv(R):
    return np.array([[-1.0, 1.0, 0.0, 0.0],
                     [-1.0, 0.0, 1.0, 0.0],
                     [-1.0, 0.0, 0.0, 1.0]])


_HEX_CORNERS = np.array([
    [-1, -1, -1], [1, -1, -1], [1, 1, -1], [-1, 1, -1],
    [-1, -1, 1], [1, -1, 1], [1, 1, 1], [-1, 1, 1],
], dtype=float)


def _hex8_func(R):
    r, s, t = R[0], R[1], R[2]
    ri, si, ti = _HEX_CORNERS.T
    return 0.125 * (1 + r * ri) * (1 + s * si) * (1 + t * ti)


def _hex8_deriv(R):
    r, s, t = R[0], R[1], R[2]
    ri, si, ti = _HEX_CORNERS.T
    return 0.125 * np.array([
        ri * (1 + s * si) * (1 + t * ti),
        si * (1 + r * ri) * (1 + t * ti),
        ti * (1 + r * ri) * (1 + s * si),
    ])


def _coords(rows) -> np.ndarray:
    X = np.zeros((len(rows), 3))
    for i, row in enumerate(rows):
        X[i, :len(row)] = row
    return X


LIN2 = ShapeType(
    name="LIN2", family=ShapeFamily.LINE, ndim=1, npoints=2, basic_npoints=2,
    nat_coords=_coords([[-1], [1]]),
    func=_lin2_func, deriv=_lin2_deriv, rule=gauss_line, default_nips=2,
    meshio_type="line",
)

LIN3 = ShapeType(
    name="LIN3", family=ShapeFamily.LINE, ndim=1, npoints=3, basic_npoints=2,
    nat_coords=_coords([[-1], [1], [0]]),
    func=_lin3_func, deriv=_lin3_deriv, rule=gauss_line, default_nips=3,
    meshio_type="line3",
)

TRI3 = ShapeType(
    name="TRI3", family=ShapeFamily.SOLID, ndim=2, npoints=3, basic_npoints=3,
    nat_coords=_coords([[0, 0], [1, 0], [0, 1]]),
    func=_tri3_func, deriv=_tri3_deriv, rule=gauss_triangle, default_nips=3,
    facet_idxs=[(0, 1), (1, 2), (2, 0)], facet_shape="LIN2",
    meshio_type="triangle",
)

TRI6 = ShapeType(
    name="TRI6", family=ShapeFamily.SOLID, ndim=2, npoints=6, basic_npoints=3,
    nat_coords=_coords([[0, 0], [1, 0], [0, 1], [0.5, 0], [0.5, 0.5], [0, 0.5]]),
    func=_tri6_func, deriv=_tri6_deriv, rule=gauss_triangle, default_nips=6,
    facet_idxs=[(0, 1, 3), (1, 2, 4), (2, 0, 5)], facet_shape="LIN3",
    meshio_type="triangle6",
)

QUAD4 = ShapeType(
    name="QUAD4", family=ShapeFamily.SOLID, ndim=2, npoints=4, basic_npoints=4,
    nat_coords=_coords(_QUAD_CORNERS),
    func=_quad4_func, deriv=_quad4_deriv, rule=gauss_quad, default_nips=4,
    facet_idxs=[(0, 1), (1, 2), (2, 3), (3, 0)], facet_shape="LIN2",
    meshio_type="quad",
)

QUAD8 = ShapeType(
    name="QUAD8", family=ShapeFamily.SOLID, ndim=2, npoints=8, basic_npoints=4,
    nat_coords=_coords(np.vstack([_QUAD_CORNERS, _QUAD8_MIDS])),
    func=_quad8_func, deriv=_quad8_deriv, rule=gauss_quad, default_nips=9,
    facet_idxs=[(0, 1, 4), (1, 2, 5), (2, 3, 6), (3, 0, 7)], facet_shape="LIN3",
    meshio_type="quad8",
)

TET4 = ShapeType(
    name="TET4", family=ShapeFamily.SOLID, ndim=3, npoints=4, basic_npoints=4,
    nat_coords=_coords([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]]),
    func=_tet4_func, deriv=_tet4_deriv, rule=gauss_tetra, default_nips=4,
    facet_idxs=[(0, 2, 1), (0, 1, 3), (0, 3, 2), (1, 2, 3)], facet_shape="TRI3",
    meshio_type="tetra",
)

HEX8 = ShapeType(
    name="HEX8", family=ShapeFamily.SOLID, ndim=3, npoints=8, basic_npoints=8,
    nat_coords=_coords(_HEX_CORNERS),
    func=_hex8_func, deriv=_hex8_deriv, rule=gauss_hex, default_nips=8,
    facet_idxs=[(0, 3, 2, 1), (4, 5, 6, 7), (0, 1, 5, 4),
                (1, 2, 6, 5), (2, 3, 7, 6), (3, 0, 4, 7)],
    facet_shape="QUAD4",
    meshio_type="hexahedron",
)

SHAPES: Dict[str, ShapeType] = {
    shape.name: shape for shape in (LIN2, LIN3, TRI3, TRI6, QUAD4, QUAD8, TET4, HEX8)
}


def get_shape(name: str) -> ShapeType:
    """
    Look up a shape by name (case insensitive).

    Args:
        name: shape name, e.g. 'quad4'

    Returns:
        ShapeType instance
    """
    try:
        return SHAPES[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown shape: {name}") from None


def shape_from_meshio(cell_type: str) -> ShapeType:
    """Shape matching a meshio cell type name."""
    for shape in SHAPES.values():
        if shape.meshio_type == cell_type:
            return shape
    raise ValueError(f"Unsupported meshio cell type: {cell_type}")
