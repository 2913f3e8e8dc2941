"""
Mechanical Solid Element
========================

Isoparametric continuum element for plane stress, plane strain,
axisymmetric and 3D analyses.

Strain vector (Voigt, engineering shear):
    ε = [ε_xx, ε_yy, ε_zz, γ_yz, γ_xz, γ_xy]
In axisymmetric models x is the radial coordinate and ε_zz holds the
hoop strain u_r / r.
"""

import numpy as np
from typing import List, Optional, Tuple

from ..errors import Outcome, success
from ..mesh.shapes import ShapeFamily
from .element import (Element, Facet, LoadValue, MECH_KEYS, MECH_NATURAL_KEYS,
                      evaluate, traction_load)


class MechSolid(Element):
    """Displacement based solid element."""

    shape_family = ShapeFamily.SOLID
    tangent_kind = "stiffness"
    operators = {"stiffness": "stiffness_matrix", "mass": "mass_matrix"}

    def configure_dofs(self) -> None:
        ndim = self.env.ndim
        for node in self.nodes:
            for key, natkey in zip(MECH_KEYS[:ndim], MECH_NATURAL_KEYS[:ndim]):
                node.add_dof(key, natkey)

    def _map(self) -> List[int]:
        return self.dof_map(MECH_KEYS[:self.env.ndim])

    def _kinematics(self, R: np.ndarray, C: np.ndarray, X: np.ndarray
                    ) -> Tuple[np.ndarray, float]:
        """
        Strain-displacement matrix at a point.

        Args:
            R: local coordinates
            C: shape (nnodes, ndim), node coordinates
            X: shape (3,), global point coordinates

        Returns:
            B: shape (6, nnodes·ndim)
            detJ: Jacobian determinant
        """
        ndim = self.env.ndim
        nnodes = len(self.node_ids)
        dNdR = self.shape.deriv(R)
        J = dNdR @ C
        detJ = self.check_jacobian(np.linalg.det(J))
        dNdX = np.linalg.solve(J, dNdR)

        B = np.zeros((6, nnodes * ndim))
        if ndim == 2:
            B[0, 0::2] = dNdX[0]
            B[1, 1::2] = dNdX[1]
            B[5, 0::2] = dNdX[1]
            B[5, 1::2] = dNdX[0]
            if self.env.axisymmetric:
                B[2, 0::2] = self.shape.func(R) / X[0]
        else:
            B[0, 0::3] = dNdX[0]
            B[1, 1::3] = dNdX[1]
            B[2, 2::3] = dNdX[2]
            B[3, 1::3] = dNdX[2]
            B[3, 2::3] = dNdX[1]
            B[4, 0::3] = dNdX[2]
            B[4, 2::3] = dNdX[0]
            B[5, 0::3] = dNdX[1]
            B[5, 1::3] = dNdX[0]
        return B, detJ

    def stiffness_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        K = ∫ Bᵀ D B th dΩ

        Returns:
            K, map, map
        """
        ndim = self.env.ndim
        n = len(self.node_ids) * ndim
        C = self.coords()
        K = np.zeros((n, n))

        for ip in self.ips:
            B, detJ = self._kinematics(ip.R, C, ip.coord)
            D = self.mat.tangent_operator(ip.current_state)
            coef = detJ * ip.w * self.thickness_at(ip.coord)
            K += coef * (B.T @ D @ B)

        map = self._map()
        return K, map, map

    def mass_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        M = ∫ ρ Nᵀ N th dΩ

        Returns:
            M, map, map
        """
        ndim = self.env.ndim
        n = len(self.node_ids) * ndim
        C = self.coords()
        M = np.zeros((n, n))

        for ip in self.ips:
            detJ = self.check_jacobian(np.linalg.det(self.shape.deriv(ip.R) @ C))
            N = np.kron(self.shape.func(ip.R), np.eye(ndim))
            coef = self.mat.rho * detJ * ip.w * self.thickness_at(ip.coord)
            M += coef * (N.T @ N)

        map = self._map()
        return M, map, map

    def advance_state(self, dU: np.ndarray, dF: np.ndarray, dt: float = 0.0) -> Outcome:
        map = self._map()
        dUe = dU[map]
        dFe = np.zeros(len(map))
        C = self.coords()

        for ip in self.ips:
            B, detJ = self._kinematics(ip.R, C, ip.coord)
            deps = B @ dUe
            dsig, outcome = self.mat.advance_state(ip.current_state, deps, dt=dt)
            if not outcome:
                return outcome
            coef = detJ * ip.w * self.thickness_at(ip.coord)
            dFe += coef * (B.T @ dsig)

        dF[map] += dFe
        return success()

    def distributed_load(self, facet: Optional[Facet], key: str,
                         value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        """
        Traction on a boundary facet (per unit area, or per unit length in 2D).

        Without a facet, 'tx', 'ty', 'tz' act as body forces per unit volume.
        """
        if facet is None:
            return self._body_load(key, value)
        return traction_load(self, facet.shape, facet.node_ids, key, value, self.thickness_at)

    def _body_load(self, key: str, value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        ndim = self.env.ndim
        keys = ('tx', 'ty', 'tz')[:ndim]
        if key not in keys:
            raise ValueError(f"Body load '{key}' is not applicable to MechSolid in {ndim}D")

        C = self.coords()
        X3 = np.array([node.coord for node in self.nodes])
        F = np.zeros((len(self.node_ids), ndim))
        for ip in self.ips:
            N = self.shape.func(ip.R)
            detJ = self.check_jacobian(np.linalg.det(self.shape.deriv(ip.R) @ C))
            q = evaluate(value, N @ X3, self.env.t)
            F[:, keys.index(key)] += N * q * detJ * ip.w * self.thickness_at(ip.coord)

        return F.reshape(-1), self._map()
