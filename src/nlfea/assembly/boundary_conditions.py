"""
Boundary Conditions
===================

Boundary condition definitions and application of Dirichlet conditions.

A boundary condition pairs a selector with values keyed by variable name:

    NodeBC(lambda x, y, z: x == 0, ux=0.0, uy=0.0)
    FaceBC('top', ty=lambda x, y, z, t: -10 * t)

Values are numbers or functions f(x, y, z, t). Keys naming an essential
variable (e.g. 'ux', 'ut') prescribe it; keys naming a natural variable
(e.g. 'fx', 'ft') add a nodal load; other keys on faces, edges and
elements (e.g. 'tx', 'tn', 'tq') are distributed loads.
"""

import numpy as np
from scipy.sparse import csr_matrix, diags
from typing import Any, Dict, List, Tuple, TYPE_CHECKING

from ..elements.element import LoadValue, evaluate

if TYPE_CHECKING:
    from ..model.domain import Domain, Selector


class BC:
    """
    Base boundary condition.

    Attributes:
        selector: entity selector (tag, predicate, index list or None)
        values: dict key -> number or function(x, y, z, t)
    """

    def __init__(self, selector: 'Selector' = None, **values: LoadValue):
        if not values:
            raise ValueError(f"{type(self).__name__} requires at least one value")
        for key, value in values.items():
            if not (callable(value) or isinstance(value, (int, float, np.number))):
                raise ValueError(f"Invalid value for '{key}': {value!r}")
        self.selector = selector
        self.values: Dict[str, LoadValue] = dict(values)

    def targets(self, domain: 'Domain') -> List[Any]:
        """Selected entities."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.selector!r}, {', '.join(self.values)})"


class NodeBC(BC):
    """Essential values or concentrated loads on nodes."""

    def targets(self, domain: 'Domain') -> List[Any]:
        return domain.select_nodes(self.selector)


class FaceBC(BC):
    """Essential values or distributed loads on boundary faces (edges in 2D)."""

    def targets(self, domain: 'Domain') -> List[Any]:
        return domain.select_faces(self.selector)


class EdgeBC(BC):
    """Essential values or distributed loads on boundary edges of 3D meshes."""

    def targets(self, domain: 'Domain') -> List[Any]:
        return domain.select_edges(self.selector)


class ElemBC(BC):
    """Essential values on element nodes, or loads over elements (line loads, sources)."""

    def targets(self, domain: 'Domain') -> List[Any]:
        return domain.select_elems(self.selector)


def _essential_names(domain: 'Domain') -> set:
    return {dof.name for dof in domain.dofs}


def _natural_names(domain: 'Domain') -> set:
    return {dof.natname for dof in domain.dofs}


def bc_targets(domain: 'Domain', bcs: List[BC], t: float, with_timed: bool = False
               ) -> Tuple[np.ndarray, ...]:
    """
    Evaluate boundary conditions.

    Later conditions on the same prescribed dof replace earlier ones;
    loads are summed.

    Values given as functions are targets at time t; the solver applies
    them directly instead of ramping them over the stage.

    Args:
        domain: Domain instance
        bcs: boundary conditions
        t: evaluation time
        with_timed: also return the mask of dofs driven by functions

    Returns:
        U: shape (ndofs,), prescribed essential values
        F: shape (ndofs,), external natural values
        pmask: shape (ndofs,), True for prescribed dofs
        timed: shape (ndofs,), True for function driven dofs (with_timed only)
    """
    ndofs = domain.ndofs
    U = np.zeros(ndofs)
    F = np.zeros(ndofs)
    pmask = np.zeros(ndofs, dtype=bool)
    timed = np.zeros(ndofs, dtype=bool)

    essential = _essential_names(domain)
    natural = _natural_names(domain)

    def prescribe(node, key, value):
        if key not in node.dofdict:
            raise ValueError(f"Node {node.id} has no dof '{key}'")
        dof = node[key]
        U[dof.eq_id] = evaluate(value, node.coord, t)
        pmask[dof.eq_id] = True
        timed[dof.eq_id] = callable(value)

    for bc in bcs:
        targets = bc.targets(domain)
        for key, value in bc.values.items():
            if isinstance(bc, NodeBC):
                for node in targets:
                    if key in essential:
                        prescribe(node, key, value)
                    elif key in natural:
                        if key not in node.dofdict:
                            raise ValueError(f"Node {node.id} has no dof '{key}'")
                        F[node[key].eq_id] += evaluate(value, node.coord, t)
                        if callable(value):
                            timed[node[key].eq_id] = True
                    else:
                        raise ValueError(f"Unknown node boundary condition key: '{key}'")
                continue

            for target in targets:
                node_ids = target.node_ids
                if key in essential:
                    for i in node_ids:
                        prescribe(domain.nodes[i], key, value)
                    continue
                if isinstance(bc, ElemBC):
                    elem, facet = target, None
                else:
                    elem, facet = domain.elems[target.owner_id], target
                Fd, map = elem.distributed_load(facet, key, value)
                np.add.at(F, map, Fd)
                if callable(value):
                    timed[map] = True

    if with_timed:
        return U, F, pmask, timed
    return U, F, pmask


def mark_prescribed(domain: 'Domain', pmask: np.ndarray) -> None:
    """Update the ``prescribed`` flag of every dof."""
    for dof in domain.dofs:
        dof.prescribed = bool(pmask[dof.eq_id])


def apply_dirichlet_bc(K: csr_matrix, F: np.ndarray,
                       bc_dofs: np.ndarray, bc_values: np.ndarray,
                       method: str = 'elimination',
                       penalty: float = 1e20) -> Tuple[csr_matrix, np.ndarray]:
    """
    Apply Dirichlet boundary conditions to the system.

    Args:
        K: system matrix, shape (n_dof, n_dof)
        F: right hand side, shape (n_dof,)
        bc_dofs: indices of constrained DOFs
        bc_values: prescribed values at bc_dofs
        method: 'elimination' or 'penalty'
        penalty: penalty coefficient (penalty method only)

    Returns:
        K_bc, F_bc: modified system with BCs applied
    """
    if len(bc_dofs) != len(bc_values):
        raise ValueError("bc_dofs and bc_values must have same length")

    if method == 'elimination':
        return _apply_bc_elimination(K, F, bc_dofs, bc_values)
    elif method == 'penalty':
        return _apply_bc_penalty(K, F, bc_dofs, bc_values, penalty)
    else:
        raise ValueError(f"Unknown method: {method}")


def _apply_bc_elimination(K: csr_matrix, F: np.ndarray,
                          bc_dofs: np.ndarray, bc_values: np.ndarray
                          ) -> Tuple[csr_matrix, np.ndarray]:
    """
    Apply BCs by row/column elimination.

    For each constrained DOF i: K[i,i] = 1, K[i,j] = K[j,i] = 0 and
    F[i] = bc_value. The RHS of the free rows is reduced by the
    contribution of the known values.
    """
    K = csr_matrix(K)
    F = np.array(F, dtype=np.float64)
    n = K.shape[0]

    bc_dofs = np.asarray(bc_dofs, dtype=np.int64)
    bc_values = np.asarray(bc_values, dtype=np.float64)

    # F_free -= K_free,constrained @ u_constrained
    u_known = np.zeros(n)
    u_known[bc_dofs] = bc_values
    F -= K @ u_known

    free = np.ones(n)
    free[bc_dofs] = 0.0
    D = diags(free)
    K_bc = (D @ K @ D + diags(1.0 - free)).tocsr()

    F[bc_dofs] = bc_values
    return K_bc, F


def _apply_bc_penalty(K: csr_matrix, F: np.ndarray,
                      bc_dofs: np.ndarray, bc_values: np.ndarray,
                      penalty: float = 1e20) -> Tuple[csr_matrix, np.ndarray]:
    """
    Apply BCs using penalty method.

        K[i,i] += penalty
        F[i] += penalty * bc_value
    """
    K = K.tolil()
    F = np.array(F, dtype=np.float64)

    for dof, val in zip(bc_dofs, bc_values):
        K[dof, dof] += penalty
        F[dof] += penalty * val

    return K.tocsr(), F


def get_free_dofs(n_dof: int, bc_dofs: np.ndarray) -> np.ndarray:
    """
    Get indices of free (unconstrained) DOFs.

    Args:
        n_dof: total number of DOFs
        bc_dofs: constrained DOF indices

    Returns:
        free_dofs: indices of free DOFs
    """
    all_dofs = set(range(n_dof))
    constrained = set(int(d) for d in bc_dofs)
    return np.array(sorted(all_dofs - constrained), dtype=np.int64)
