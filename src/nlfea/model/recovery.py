"""
Nodal Recovery
==============

Reconstruction of smooth nodal fields from integration point values.

Patch recovery (solid elements):
    Every corner node defines a patch with the solid elements sharing it.
    Boundary nodes form boundary patches, used only by nodes that are not
    reached by any internal patch. For each field a polynomial is fitted
    by least squares to the values at the patch integration points and
    evaluated at the patch nodes. Contributions are averaged per node.

Local recovery (non-solid elements):
    Every element extrapolates its own values to its nodes; contributions
    are averaged per node.

Nodes without contributions get 0.
"""

from typing import Dict, List, Tuple, TYPE_CHECKING

import numpy as np

from ..mesh.shapes import ShapeFamily

if TYPE_CHECKING:
    from .domain import Domain

Contributions = Tuple[List[str], np.ndarray, np.ndarray]


def reg_terms(X: np.ndarray, ndim: int, nterms: int) -> np.ndarray:
    """
    Polynomial terms of the regression basis at a point.

    Args:
        X: shape (3,), coordinates
        ndim: analysis dimension
        nterms: 10, 7, 4 or 1 in 3D; 6, 4, 3 or 1 in 2D

    Returns:
        terms: shape (nterms,)
    """
    x, y, z = X
    if ndim == 3:
        if nterms == 10:
            return np.array([1.0, x, y, z, x * y, y * z, x * z, x * x, y * y, z * z])
        if nterms == 7:
            return np.array([1.0, x, y, z, x * y, y * z, x * z])
        if nterms == 4:
            return np.array([1.0, x, y, z])
        return np.array([1.0])

    if nterms == 6:
        return np.array([1.0, x, y, x * y, x * x, y * y])
    if nterms == 4:
        return np.array([1.0, x, y, x * y])
    if nterms == 3:
        return np.array([1.0, x, y])
    return np.array([1.0])


def n_terms(nips: int, ndim: int) -> int:
    """Number of regression terms for a patch with ``nips`` points."""
    if ndim == 3:
        return 10 if nips >= 10 else 7 if nips >= 7 else 4 if nips >= 4 else 1
    return 6 if nips >= 6 else 4 if nips >= 4 else 3 if nips >= 3 else 1


def build_patches(domain: 'Domain') -> List[List[int]]:
    """
    Element patches per node.

    Args:
        domain: Domain instance

    Returns:
        patches: list (one entry per node) of solid element ids
    """
    nnodes = len(domain.nodes)
    at_bound = np.zeros(nnodes, dtype=bool)
    for face in domain.faces:
        at_bound[face.node_ids] = True

    patches: List[List[int]] = [[] for _ in range(nnodes)]
    bry_patches: List[List[int]] = [[] for _ in range(nnodes)]
    for elem in domain.elems:
        if elem.shape.family != ShapeFamily.SOLID:
            continue
        for n in elem.node_ids[:elem.shape.basic_npoints]:
            if at_bound[n]:
                bry_patches[n].append(elem.id)
            else:
                patches[n].append(elem.id)

    haspatch = np.zeros(nnodes, dtype=bool)

    def mark(patch):
        for e in patch:
            haspatch[domain.elems[e].node_ids] = True

    for patch in patches:
        mark(patch)

    orphans = [n for n in range(nnodes) if at_bound[n] and not haspatch[n]]

    # Borrow boundary patches, preferring patches with more elements
    for threshold in (3, 2, 1):
        if not orphans:
            break
        for n in orphans:
            if len(bry_patches[n]) >= threshold:
                patches[n] = bry_patches[n]
        for n in orphans:
            mark(patches[n])
        orphans = [n for n in orphans if not haspatch[n]]

    return patches


def patch_contributions(domain: 'Domain') -> Contributions:
    """
    Accumulated patch recovery values.

    Returns:
        fields, V_vals (nnodes × nfields), V_reps (nnodes × nfields)
    """
    ndim = domain.env.ndim
    nnodes = len(domain.nodes)
    if not domain.faces:
        return [], np.zeros((nnodes, 0)), np.zeros((nnodes, 0), dtype=np.int64)

    patches = build_patches(domain)

    all_ip_vals: Dict[int, List[Dict[str, float]]] = {}
    fields: List[str] = []
    for elem in domain.elems:
        if elem.shape.family != ShapeFamily.SOLID or not elem.ips:
            continue
        ip_vals = elem.ip_values()
        all_ip_vals[elem.id] = ip_vals
        for key in ip_vals[0]:
            if key not in fields:
                fields.append(key)

    field_idx = {key: i for i, key in enumerate(fields)}
    V_vals = np.zeros((nnodes, len(fields)))
    V_reps = np.zeros((nnodes, len(fields)), dtype=np.int64)

    for patch in patches:
        patch = [e for e in patch if e in all_ip_vals]
        if not patch:
            continue

        patch_fields = []
        for e in patch:
            for key in all_ip_vals[e][0]:
                if key not in patch_fields:
                    patch_fields.append(key)

        last_subpatch = None
        for field in patch_fields:
            subpatch = [e for e in patch if field in all_ip_vals[e][0]]

            if subpatch != last_subpatch:
                last_subpatch = subpatch
                ips = [ip for e in subpatch for ip in domain.elems[e].ips]
                nodes = list(dict.fromkeys(n for e in subpatch for n in domain.elems[e].node_ids))
                nterms = n_terms(len(ips), ndim)

                M = np.array([reg_terms(ip.coord, ndim, nterms) for ip in ips])
                invM = np.linalg.pinv(M)
                N = np.array([reg_terms(domain.nodes[n].coord, ndim, nterms) for n in nodes])

            W = np.array([vals[field] for e in subpatch for vals in all_ip_vals[e]])
            V = N @ (invM @ W)

            j = field_idx[field]
            V_vals[nodes, j] += V
            V_reps[nodes, j] += 1

    return fields, V_vals, V_reps


def local_contributions(domain: 'Domain') -> Contributions:
    """
    Accumulated local recovery values of non-solid elements.

    Returns:
        fields, V_vals (nnodes × nfields), V_reps (nnodes × nfields)
    """
    nnodes = len(domain.nodes)
    rec: List[Tuple[List[int], Dict[str, np.ndarray]]] = []
    fields: List[str] = []

    for elem in domain.elems:
        if elem.shape.family == ShapeFamily.SOLID:
            continue
        node_vals = elem.extrapolated_node_values()
        if not node_vals:
            continue
        rec.append((elem.node_ids, node_vals))
        for key in node_vals:
            if key not in fields:
                fields.append(key)

    field_idx = {key: i for i, key in enumerate(fields)}
    V_vals = np.zeros((nnodes, len(fields)))
    V_reps = np.zeros((nnodes, len(fields)), dtype=np.int64)

    for node_ids, node_vals in rec:
        for field, vals in node_vals.items():
            j = field_idx[field]
            np.add.at(V_vals[:, j], node_ids, vals)
            np.add.at(V_reps[:, j], node_ids, 1)

    return fields, V_vals, V_reps


def average(fields: List[str], V_vals: np.ndarray, V_reps: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Mean of the accumulated values; entries without contributions are 0.

    Returns:
        dict field -> shape (nnodes,)
    """
    V = np.divide(V_vals, V_reps, out=np.zeros_like(V_vals), where=V_reps > 0)
    return {field: V[:, j] for j, field in enumerate(fields)}


def merge_contributions(*contributions: Contributions) -> Contributions:
    """Sum contributions of several recovery passes field by field."""
    fields: List[str] = []
    for cfields, _, _ in contributions:
        for key in cfields:
            if key not in fields:
                fields.append(key)

    nnodes = contributions[0][1].shape[0]
    V_vals = np.zeros((nnodes, len(fields)))
    V_reps = np.zeros((nnodes, len(fields)), dtype=np.int64)
    for cfields, cvals, creps in contributions:
        for j, key in enumerate(cfields):
            k = fields.index(key)
            V_vals[:, k] += cvals[:, j]
            V_reps[:, k] += creps[:, j]
    return fields, V_vals, V_reps


def nodal_patch_recovery(domain: 'Domain') -> Dict[str, np.ndarray]:
    """
    Superconvergent patch recovery of solid element fields.

    Args:
        domain: Domain instance

    Returns:
        dict field -> nodal values, shape (nnodes,)
    """
    return average(*patch_contributions(domain))


def nodal_local_recovery(domain: 'Domain') -> Dict[str, np.ndarray]:
    """
    Local extrapolation recovery of non-solid element fields.

    Args:
        domain: Domain instance

    Returns:
        dict field -> nodal values, shape (nnodes,)
    """
    return average(*local_contributions(domain))


def recover_node_fields(domain: 'Domain') -> Dict[str, np.ndarray]:
    """Patch and local recovery combined, averaged over all contributions."""
    return average(*merge_contributions(patch_contributions(domain),
                                        local_contributions(domain)))
