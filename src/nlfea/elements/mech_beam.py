"""
Mechanical Beam Element
=======================

Two-node Euler-Bernoulli beam for 2D analyses.

Local dofs: [u1, v1, θ1, u2, v2, θ2] (axial, transverse, rotation).
Transverse displacement uses cubic Hermite functions, x = (ξ+1)/2:
    H1 = 1 - 3x² + 2x³      H2 = L(x - 2x² + x³)
    H3 = 3x² - 2x³          H4 = L(x³ - x²)
"""

import numpy as np
from typing import Dict, List, Optional, Tuple

from ..errors import ConstructionError, Outcome, success
from ..mesh.quadrature import gauss_line
from ..mesh.shapes import ShapeFamily
from .element import Element, Facet, LoadValue, evaluate

BEAM_KEYS = ('ux', 'uy', 'rz')
BEAM_NATURAL_KEYS = ('fx', 'fy', 'mz')


class MechBeam(Element):
    """Plane frame element with axial and bending stiffness."""

    shape_family = ShapeFamily.LINE
    tangent_kind = "stiffness"
    operators = {"stiffness": "stiffness_matrix", "mass": "mass_matrix"}

    def configure_dofs(self) -> None:
        if self.env.ndim != 2:
            raise ConstructionError(
                f"MechBeam element {self.id}: only 2D analyses are supported"
            )
        if self.shape.npoints != 2:
            raise ConstructionError(
                f"MechBeam element {self.id}: requires a LIN2 cell, got {self.shape.name}"
            )
        for node in self.nodes:
            for key, natkey in zip(BEAM_KEYS, BEAM_NATURAL_KEYS):
                node.add_dof(key, natkey)

    def _map(self) -> List[int]:
        return self.dof_map(BEAM_KEYS)

    def _geometry(self) -> Tuple[float, np.ndarray]:
        """Length and rotation matrix T (local = T @ global)."""
        C = self.coords()
        L = self.check_jacobian(np.linalg.norm(C[1] - C[0]))
        c, s = (C[1] - C[0]) / L
        R = np.array([[c, s, 0.0],
                      [-s, c, 0.0],
                      [0.0, 0.0, 1.0]])
        T = np.zeros((6, 6))
        T[:3, :3] = R
        T[3:, 3:] = R
        return L, T

    @staticmethod
    def _hermite(xi: float, L: float) -> np.ndarray:
        x = (xi + 1) / 2
        return np.array([1 - 3 * x ** 2 + 2 * x ** 3,
                         L * (x - 2 * x ** 2 + x ** 3),
                         3 * x ** 2 - 2 * x ** 3,
                         L * (x ** 3 - x ** 2)])

    @staticmethod
    def _B(xi: float, L: float) -> np.ndarray:
        """Generalized strain operator [ε; κ] in local dofs."""
        x = (xi + 1) / 2
        B = np.zeros((2, 6))
        B[0, 0] = -1 / L
        B[0, 3] = 1 / L
        B[1, [1, 2, 4, 5]] = [(-6 + 12 * x) / L ** 2, (-4 + 6 * x) / L,
                              (6 - 12 * x) / L ** 2, (-2 + 6 * x) / L]
        return B

    def stiffness_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        Closed form stiffness rotated to global axes.

        Returns:
            K, map, map
        """
        L, T = self._geometry()
        EA = self.mat.E * self.mat.A
        EI = self.mat.E * self.mat.I
        L2, L3 = L * L, L * L * L

        K0 = np.array([
            [EA / L, 0, 0, -EA / L, 0, 0],
            [0, 12 * EI / L3, 6 * EI / L2, 0, -12 * EI / L3, 6 * EI / L2],
            [0, 6 * EI / L2, 4 * EI / L, 0, -6 * EI / L2, 2 * EI / L],
            [-EA / L, 0, 0, EA / L, 0, 0],
            [0, -12 * EI / L3, -6 * EI / L2, 0, 12 * EI / L3, -6 * EI / L2],
            [0, 6 * EI / L2, 2 * EI / L, 0, -6 * EI / L2, 4 * EI / L],
        ])

        map = self._map()
        return T.T @ K0 @ T, map, map

    def mass_matrix(self) -> Tuple[np.ndarray, List[int], List[int]]:
        """
        Consistent mass matrix rotated to global axes.

        Returns:
            M, map, map
        """
        L, T = self._geometry()
        L2 = L * L
        M0 = self.mat.rho * self.mat.A * L / 420.0 * np.array([
            [140, 0, 0, 70, 0, 0],
            [0, 156, 22 * L, 0, 54, -13 * L],
            [0, 22 * L, 4 * L2, 0, 13 * L, -3 * L2],
            [70, 0, 0, 140, 0, 0],
            [0, 54, 13 * L, 0, 156, -22 * L],
            [0, -13 * L, -3 * L2, 0, -22 * L, 4 * L2],
        ])

        map = self._map()
        return T.T @ M0 @ T, map, map

    def advance_state(self, dU: np.ndarray, dF: np.ndarray, dt: float = 0.0) -> Outcome:
        K, map, _ = self.stiffness_matrix()
        L, T = self._geometry()
        dUe = dU[map]
        dUl = T @ dUe

        for ip in self.ips:
            deps = self._B(ip.R[0], L) @ dUl
            _, outcome = self.mat.advance_state(ip.current_state, deps, dt=dt)
            if not outcome:
                return outcome

        dF[map] += K @ dUe
        return success()

    def distributed_load(self, facet: Optional[Facet], key: str,
                         value: LoadValue) -> Tuple[np.ndarray, List[int]]:
        """
        Line load along the beam.

        Keys 'tx' and 'ty' load global directions; 'tn' loads the local
        transverse direction.
        """
        if key not in ('tx', 'ty', 'tn'):
            raise ValueError(f"Boundary condition '{key}' is not applicable to MechBeam")

        L, T = self._geometry()
        c, s = T[0, 0], T[0, 1]
        X3 = np.array([node.coord for node in self.nodes])
        Fl = np.zeros(6)

        for xi, _, _, w in gauss_line(4):
            N = self.shape.func(np.array([xi, 0.0, 0.0]))
            q = evaluate(value, N @ X3, self.env.t)
            if key == 'tx':
                qa, qt = c * q, -s * q
            elif key == 'ty':
                qa, qt = s * q, c * q
            else:
                qa, qt = 0.0, q
            H = self._hermite(xi, L)
            coef = w * L / 2
            Fl[[0, 3]] += coef * qa * N
            Fl[[1, 2, 4, 5]] += coef * qt * H

        return T.T @ Fl, self._map()

    def extrapolated_node_values(self) -> Dict[str, np.ndarray]:
        return self._fit_ip_values_to_nodes()
