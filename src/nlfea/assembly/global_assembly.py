"""
Global Assembly
===============

Assembly of global sparse operators from element contributions.

K_global = Σ_e K^e scattered through the element equation maps.
"""

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix
from typing import Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..elements.element import Element
    from ..model.domain import Domain


def active_elements(domain: 'Domain') -> List['Element']:
    """Elements taking part in the analysis."""
    return [elem for elem in domain.elems if elem.active]


def assemble_matrix(ndofs: int, elems: Iterable['Element'], kind: Optional[str] = None
                    ) -> csr_matrix:
    """
    Assemble a global operator.

    Duplicated (row, col) entries are summed on conversion, which makes
    the result independent of the sparse storage order.

    Args:
        ndofs: number of equations
        elems: contributing elements
        kind: operator kind; when None each element contributes its
            ``tangent_kind`` operator

    Returns:
        K: sparse matrix, shape (ndofs, ndofs)
    """
    rows, cols, vals = [], [], []

    for elem in elems:
        K_e, rmap, cmap = elem.local_operator(kind or elem.tangent_kind)
        rmap = np.asarray(rmap, dtype=np.int64)
        cmap = np.asarray(cmap, dtype=np.int64)
        rows.append(np.repeat(rmap, len(cmap)))
        cols.append(np.tile(cmap, len(rmap)))
        vals.append(np.asarray(K_e, dtype=np.float64).ravel())

    if not rows:
        return csr_matrix((ndofs, ndofs))

    K = coo_matrix((np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
                   shape=(ndofs, ndofs))
    return K.tocsr()


def assemble_tangent(domain: 'Domain') -> csr_matrix:
    """
    Assemble the tangent operator of all active elements.

    Args:
        domain: Domain instance

    Returns:
        K: sparse matrix, shape (ndofs, ndofs)
    """
    return assemble_matrix(domain.ndofs, active_elements(domain))


def assemble_capacity(domain: 'Domain') -> csr_matrix:
    """
    Assemble the transient capacity operator (e.g. thermal heat capacity).

    Only elements declaring a ``capacity_kind`` contribute.

    Args:
        domain: Domain instance

    Returns:
        M: sparse matrix, shape (ndofs, ndofs)
    """
    elems = [elem for elem in active_elements(domain) if elem.capacity_kind]
    M = csr_matrix((domain.ndofs, domain.ndofs))
    for kind in sorted({elem.capacity_kind for elem in elems}):
        group = [elem for elem in elems if elem.capacity_kind == kind]
        M = M + assemble_matrix(domain.ndofs, group, kind)
    return M


def assemble_operator(domain: 'Domain', kind: str) -> csr_matrix:
    """
    Assemble an operator of a given kind over the elements that provide it.

    Args:
        domain: Domain instance
        kind: 'stiffness', 'mass' or 'conductivity'

    Returns:
        sparse matrix, shape (ndofs, ndofs)
    """
    elems = [elem for elem in active_elements(domain) if kind in elem.operators]
    return assemble_matrix(domain.ndofs, elems, kind)


def dof_vectors(domain: 'Domain'):
    """
    Current essential and natural dof values.

    Returns:
        U, F: shape (ndofs,)
    """
    U = np.zeros(domain.ndofs)
    F = np.zeros(domain.ndofs)
    for dof in domain.dofs:
        U[dof.eq_id] = dof.vals[dof.name]
        F[dof.eq_id] = dof.vals[dof.natname]
    return U, F
