"""
Mechanical Rod Element
======================

Axial bar element (LIN2 or LIN3) in 1D, 2D or 3D analyses.

Strain-displacement operator for a line in ndim-space:
    B[0, i·ndim + j] = dN_i/dR · J_j / |J|²
with J = dX/dR and |J| the line Jacobian.
"""

import numpy as np
from typing import Dict, List, Optional, Tuple

from ..errors import Outcome, success
from ..mesh.shapes import ShapeFamily
from .element import Element, Facet, LoadValue, MECH_KEYS, MECH_NATURAL_KEYS, traction_load


class MechRod(Element):
    """Truss element with a single axial strain component."""

    shape_family = ShapeFamily.LINE
    tangent_kind = "stiffness"
    operators = {"stiffness": "stiffness_matrix", "mass": "mass_matrix"}

    def configure_dofs(self) -> None:
        ndim = self.env.ndim
        for node in self.nodes:
            for key, natkey in zip(MECH_KEYS[:ndim], MECH_NATURAL_KEYS[:ndim]):
                node.add_dof(key, natkey)

    def _map(self) -> List[int]:
        return self.dof_map(MECH_KEYS[:self.env.ndim])

    def _B(self, R: np.ndarray, C: np.ndarray) -> Tuple[np.ndarray, float]:
        """Strain-displacement row and line Jacobian at a point."""
        dNdR = self.shape.deriv(R)
        J = (dNdR @ C)[0]
        detJ = self.check_jacobian(np.linalg.norm(J))
        B = np.outer(dNdR[0], J).reshape(1, -1) / detJ ** 2
        return B, detJ

    def stiffness_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        K = ∫ Bᵀ E B A dL

        Returns:
            K, map, map
        """
        ndim = self.env.ndim
        nnodes = len(self.node_ids)
        C = self.coords()
        A = self.mat.A
        K = np.zeros((nnodes * ndim, nnodes * ndim))

        for ip in self.ips:
            B, detJ = self._B(ip.R, C)
            E = self.mat.tangent_operator(ip.current_state)[0, 0]
            K += E * A * detJ * ip.w * (B.T @ B)

        map = self._map()
        return K, map, map

    def mass_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        M = ∫ ρ A Nᵀ N dL

        Returns:
            M, map, map
        """
        ndim = self.env.ndim
        nnodes = len(self.node_ids)
        C = self.coords()
        coef0 = self.mat.rho * self.mat.A
        M = np.zeros((nnodes * ndim, nnodes * ndim))

        for ip in self.ips:
            Ni = self.shape.func(ip.R)
            J = (self.shape.deriv(ip.R) @ C)[0]
            detJ = self.check_jacobian(np.linalg.norm(J))
            N = np.kron(Ni, np.eye(ndim))
            M += coef0 * detJ * ip.w * (N.T @ N)

        map = self._map()
        return M, map, map

    def advance_state(self, dU: np.ndarray, dF: np.ndarray, dt: float = 0.0) -> Outcome:
        map = self._map()
        dUe = dU[map]
        dFe = np.zeros(len(map))
        C = self.coords()
        A = self.mat.A

        for ip in self.ips:
            B, detJ = self._B(ip.R, C)
            deps = float(B[0] @ dUe)
            dsig, outcome = self.mat.advance_state(ip.current_state, deps, dt=dt)
            if not outcome:
                return outcome
            dFe += A * detJ * ip.w * dsig * B[0]

        dF[map] += dFe
        return success()

    def distributed_load(self, facet: Optional[Facet], key: str,
                         value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        """Line load per unit length, scaled by the cross section area."""
        A = self.mat.A
        return traction_load(self, self.shape, self.node_ids, key, value, lambda X: A)

    def extrapolated_node_values(self) -> Dict[str, np.ndarray]:
        return self._fit_ip_values_to_nodes()
