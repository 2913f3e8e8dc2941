"""
Element Contract
================

Base class for finite elements and boundary facets.

An element references its nodes by index into the domain node list and
owns its integration points. Concrete elements implement the local
operators, the state update and the distributed loads.

Local operators are requested by kind:
    'stiffness', 'mass' or 'conductivity'
and returned as (matrix, row_map, col_map) where the maps hold the
global equation ids of the matrix rows and columns.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np

from ..errors import NegativeJacobianError, Outcome
from ..mesh.shapes import ShapeFamily, ShapeType
from ..model.ip import Ip

if TYPE_CHECKING:
    from ..model.env import ModelEnv
    from ..model.node import Node
    from ..physics.material import Material

LoadValue = Union[float, Callable[[float, float, float, float], float]]

MECH_KEYS = ('ux', 'uy', 'uz')
MECH_NATURAL_KEYS = ('fx', 'fy', 'fz')


def evaluate(value: LoadValue, X: np.ndarray, t: float) -> float:
    """
    Evaluate a boundary value at a point.

    Args:
        value: number or function(x, y, z, t)
        X: shape (3,), coordinates
        t: time

    Returns:
        scalar value
    """
    if callable(value):
        return float(value(X[0], X[1], X[2], t))
    return float(value)


class Facet:
    """
    Boundary facet (face or edge) of an element.

    Attributes:
        shape: facet ShapeType
        node_ids: node indices into the domain node list
        tag: user tag
        owner_id: index of the owner element
        id: facet index
    """

    def __init__(self, shape: ShapeType, node_ids: Sequence[int], tag: str = '',
                 owner_id: int = -1, id: int = -1):
        self.shape = shape
        self.node_ids = list(node_ids)
        self.tag = tag
        self.owner_id = owner_id
        self.id = id

    def __repr__(self) -> str:
        return f"Facet({self.shape.name}, nodes={self.node_ids}, owner={self.owner_id})"


class Element(ABC):
    """
    Finite element.

    Class attributes:
        shape_family: ShapeFamily accepted by the element
        tangent_kind: operator used as tangent by the solver
        capacity_kind: operator used as capacity in transient analyses
            (None if the element has no transient term)
        operators: maps operator kinds to method names

    Attributes:
        id: element index in the domain
        shape: ShapeType
        node_ids: node indices into the domain node list
        ips: owned integration points
        mat: Material
        tag: user tag
        active: inactive elements are skipped by the solver
        linked_ids: indices of linked elements
        env: ModelEnv
    """

    shape_family: ShapeFamily = ShapeFamily.SOLID
    tangent_kind: str = "stiffness"
    capacity_kind: Optional[str] = None
    operators: Dict[str, str] = {}

    def __init__(self, shape: ShapeType, node_ids: Sequence[int], mat: 'Material',
                 env: 'ModelEnv', nodes: List['Node'], id: int = -1, tag: str = ''):
        """
        Initialize element.

        Args:
            shape: cell shape
            node_ids: connectivity
            mat: material bound to the element
            env: analysis environment
            nodes: domain node list (not owned)
            id: element index
            tag: user tag
        """
        self.id = id
        self.shape = shape
        self.node_ids = list(node_ids)
        self.mat = mat
        self.env = env
        self.tag = tag
        self.ips: List[Ip] = []
        self.active = True
        self.linked_ids: List[int] = []
        self._nodes = nodes

    @property
    def nodes(self) -> List['Node']:
        """Node objects of the element."""
        return [self._nodes[i] for i in self.node_ids]

    def coords(self, node_ids: Optional[Sequence[int]] = None) -> np.ndarray:
        """
        Node coordinates restricted to the analysis dimension.

        Args:
            node_ids: node indices (element nodes when None)

        Returns:
            C: shape (nnodes, ndim)
        """
        ids = self.node_ids if node_ids is None else node_ids
        return np.array([self._nodes[i].coord[:self.env.ndim] for i in ids])

    def dof_map(self, keys: Sequence[str], node_ids: Optional[Sequence[int]] = None) -> List[int]:
        """Equation ids ordered node by node and key by key."""
        ids = self.node_ids if node_ids is None else node_ids
        return [self._nodes[i][key].eq_id for i in ids for key in keys]

    def check_jacobian(self, detJ: float) -> float:
        """Raise NegativeJacobianError unless detJ > 0."""
        if not detJ > 0.0:
            raise NegativeJacobianError(self.id, detJ)
        return detJ

    def thickness_at(self, X: np.ndarray) -> float:
        """Out-of-plane thickness at a point (2π·r for axisymmetric models)."""
        if self.env.ndim != 2:
            return 1.0
        if self.env.axisymmetric:
            return 2 * np.pi * X[0]
        return self.env.thickness

    # Configuration
    # =============

    @abstractmethod
    def configure_dofs(self) -> None:
        """Register the element dofs on its nodes."""

    def configure_ips(self, nips: int = 0) -> None:
        """
        Create integration points from the shape quadrature table.

        Args:
            nips: number of points (0 selects the shape default)
        """
        table = self.shape.ip_coords(nips)
        X = np.array([self._nodes[i].coord for i in self.node_ids])

        self.ips = []
        for row in table:
            ip = Ip(np.array(row[:3]), row[3], owner_id=self.id, tag=self.tag)
            ip.coord = self.shape.func(ip.R) @ X
            ip.state = self.mat.allocate_state(self.env)
            self.ips.append(ip)

    def initialize(self) -> None:
        """Hook called once the domain is fully built."""

    # Operators
    # =========

    def local_operator(self, kind: str) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        Local operator of the given kind.

        Args:
            kind: 'stiffness', 'mass' or 'conductivity'

        Returns:
            matrix, row_map, col_map
        """
        method = self.operators.get(kind)
        if method is None:
            raise NotImplementedError(
                f"{type(self).__name__} does not provide a {kind} operator"
            )
        return getattr(self, method)()

    @abstractmethod
    def advance_state(self, dU: np.ndarray, dF: np.ndarray, dt: float = 0.0) -> Outcome:
        """
        Advance integration point states with a global increment.

        The current (trial) state of every point is updated and the
        internal force increment is accumulated into ``dF``.

        Args:
            dU: shape (ndofs,), global essential increment
            dF: shape (ndofs,), global internal force increment (updated)
            dt: time increment

        Returns:
            Outcome
        """

    @abstractmethod
    def distributed_load(self, facet: Optional[Facet], key: str,
                         value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        """
        Equivalent nodal loads of a distributed boundary value.

        Args:
            facet: loaded facet (the element itself when None)
            key: load key
            value: number or function(x, y, z, t)

        Returns:
            force vector and its equation map
        """

    # Output
    # ======

    def ip_values(self) -> List[Dict[str, float]]:
        """Output values of every integration point."""
        return [self.mat.output_values(ip.current_state) for ip in self.ips]

    def output_values(self) -> Dict[str, float]:
        """Mean over integration points of the material output values."""
        ipvals = self.ip_values()
        if not ipvals:
            return {}
        keys = ipvals[0].keys()
        return {key: float(np.mean([vals[key] for vals in ipvals])) for key in keys}

    def extrapolated_node_values(self) -> Dict[str, np.ndarray]:
        """Nodal values extrapolated from integration points (none by default)."""
        return {}

    def _fit_ip_values_to_nodes(self) -> Dict[str, np.ndarray]:
        """
        Least-squares fit of the shape functions to integration point values.

        Returns:
            dict field -> shape (nnodes,)
        """
        ipvals = self.ip_values()
        if not ipvals:
            return {}
        N = np.array([self.shape.func(ip.R) for ip in self.ips])
        Ninv = np.linalg.pinv(N)
        keys = list(ipvals[0].keys())
        V = np.array([[vals[key] for key in keys] for vals in ipvals])
        E = Ninv @ V
        return {key: E[:, j] for j, key in enumerate(keys)}

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(id={self.id}, shape={self.shape.name}, "
                f"nodes={self.node_ids}, tag='{self.tag}')")


def traction_load(elem: Element, shape: ShapeType, node_ids: Sequence[int],
                  key: str, value: LoadValue, scale: Callable[[np.ndarray], float]
                  ) -> Tuple[np.ndarray, List[int]]:
    """
    Integrate a traction over a line or surface.

    Keys 'tx', 'ty', 'tz' load a global direction and 'tn' loads the
    outward normal of the target.

    Args:
        elem: element providing dofs and environment
        shape: target shape (facet or element shape)
        node_ids: target nodes
        key: 'tx', 'ty', 'tz' or 'tn'
        value: number or function(x, y, z, t)
        scale: function(X) -> measure factor (thickness or area)

    Returns:
        F, map
    """
    ndim = elem.env.ndim
    keys = ('tx', 'ty', 'tz')[:ndim] + ('tn',)
    if key not in keys:
        raise ValueError(
            f"Boundary condition '{key}' is not applicable to {type(elem).__name__} "
            f"in a {ndim}D analysis"
        )
    if key == 'tn' and shape.ndim != ndim - 1:
        raise ValueError(f"Normal traction requires a facet of dimension {ndim - 1}")

    C = elem.coords(node_ids)
    X3 = np.array([elem._nodes[i].coord for i in node_ids])
    nnodes = len(node_ids)
    F = np.zeros((nnodes, ndim))

    for R0, R1, R2, w in shape.ip_coords():
        R = np.array([R0, R1, R2])
        N = shape.func(R)
        J = shape.deriv(R) @ C
        X = N @ X3
        q = evaluate(value, X, elem.env.t)

        if shape.ndim == 1:
            nJ = np.linalg.norm(J[0])
        else:
            nJ = np.linalg.norm(np.cross(J[0], J[1]))

        if key == 'tn':
            if ndim == 2:
                n = np.array([J[0, 1], -J[0, 0]])
            else:
                n = np.cross(J[0], J[1])
            Q = q * n / np.linalg.norm(n)
        else:
            Q = np.zeros(ndim)
            Q[keys.index(key)] = q

        F += np.outer(N, Q) * (nJ * w * scale(X))

    return F.reshape(-1), elem.dof_map(MECH_KEYS[:ndim], node_ids)
