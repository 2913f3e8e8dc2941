"""
Thermal Solid Element
=====================

Heat conduction element with one temperature dof ('ut', natural 'ft')
per node.

    conductivity:  H = ∫ Btᵀ k Bt th dΩ
    capacity:      M = ∫ ρ cv N Nᵀ th dΩ
"""

import numpy as np
from typing import List, Optional, Tuple

from ..errors import Outcome, success
from ..mesh.shapes import ShapeFamily
from .element import Element, Facet, LoadValue, evaluate


class ThermoSolid(Element):
    """Isoparametric conduction element."""

    shape_family = ShapeFamily.SOLID
    tangent_kind = "conductivity"
    capacity_kind = "mass"
    operators = {"conductivity": "conductivity_matrix", "mass": "mass_matrix"}

    def configure_dofs(self) -> None:
        for node in self.nodes:
            node.add_dof('ut', 'ft')

    def _map(self) -> List[int]:
        return self.dof_map(('ut',))

    def _gradient_operator(self, R: np.ndarray, C: np.ndarray) -> Tuple[np.ndarray, float]:
        """Bt = dN/dX and the Jacobian determinant."""
        dNdR = self.shape.deriv(R)
        J = dNdR @ C
        detJ = self.check_jacobian(np.linalg.det(J))
        return np.linalg.solve(J, dNdR), detJ

    def conductivity_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        nnodes = len(self.node_ids)
        C = self.coords()
        H = np.zeros((nnodes, nnodes))

        for ip in self.ips:
            Bt, detJ = self._gradient_operator(ip.R, C)
            K = self.mat.tangent_operator(ip.current_state)
            coef = detJ * ip.w * self.thickness_at(ip.coord)
            H += coef * (Bt.T @ K @ Bt)

        map = self._map()
        return H, map, map

    def mass_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        nnodes = len(self.node_ids)
        C = self.coords()
        M = np.zeros((nnodes, nnodes))
        rho_cv = self.mat.rho * self.mat.cv

        for ip in self.ips:
            N = self.shape.func(ip.R)
            detJ = self.check_jacobian(np.linalg.det(self.shape.deriv(ip.R) @ C))
            coef = rho_cv * detJ * ip.w * self.thickness_at(ip.coord)
            M += coef * np.outer(N, N)

        map = self._map()
        return M, map, map

    def advance_state(self, dU: np.ndarray, dF: np.ndarray, dt: float = 0.0) -> Outcome:
        """
        Update temperatures and fluxes.

        The internal flux increment is -∫ Btᵀ Δq th dΩ, so that for a
        linear material it equals H ΔU.
        """
        map = self._map()
        dUt = dU[map]
        dFt = np.zeros(len(map))
        C = self.coords()

        for ip in self.ips:
            N = self.shape.func(ip.R)
            Bt, detJ = self._gradient_operator(ip.R, C)
            dut = float(N @ dUt)
            dG = Bt @ dUt
            dq, outcome = self.mat.advance_state(ip.current_state, dut, dG, dt)
            if not outcome:
                return outcome
            coef = detJ * ip.w * self.thickness_at(ip.coord)
            dFt -= coef * (Bt.T @ dq)

        dF[map] += dFt
        return success()

    def distributed_load(self, facet: Optional[Facet], key: str,
                         value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        """
        Heat flux 'tq' entering through a facet (or a volumetric source
        when no facet is given).
        """
        if key != 'tq':
            raise ValueError(f"Boundary condition '{key}' is not applicable to ThermoSolid")

        if facet is None:
            shape, node_ids = self.shape, self.node_ids
        else:
            shape, node_ids = facet.shape, facet.node_ids

        ndim = self.env.ndim
        C = self.coords(node_ids)
        X3 = np.array([self._nodes[i].coord for i in node_ids])
        F = np.zeros(len(node_ids))

        for R0, R1, R2, w in shape.ip_coords():
            R = np.array([R0, R1, R2])
            N = shape.func(R)
            J = shape.deriv(R) @ C
            X = N @ X3
            if shape.ndim == ndim:
                measure = self.check_jacobian(np.linalg.det(J))
            elif shape.ndim == 1:
                measure = np.linalg.norm(J[0])
            else:
                measure = np.linalg.norm(np.cross(J[0], J[1]))
            q = evaluate(value, X, self.env.t)
            F += q * measure * w * self.thickness_at(X) * N

        return F, self.dof_map(('ut',), node_ids)
