"""
Elastic Solid
=============

Isotropic linear elastic material for continuum elements.

Voigt notation with engineering shear strains:
    σ = [σ_xx, σ_yy, σ_zz, σ_yz, σ_xz, σ_xy]
    ε = [ε_xx, ε_yy, ε_zz, γ_yz, γ_xz, γ_xy]
"""

import numpy as np
from typing import Dict, Optional, Tuple

from ..errors import MaterialError, Outcome, success
from ..elements.mech_solid import MechSolid
from .material import IpState, Material, check_positive, check_non_negative


class SolidState(IpState):
    """
    Continuum state.

    Attributes:
        sigma: shape (6,), stress
        eps: shape (6,), strain
    """

    def __init__(self, env):
        super().__init__(env)
        self.sigma = np.zeros(6)
        self.eps = np.zeros(6)

    def duplicate(self) -> 'SolidState':
        new = SolidState(self.env)
        new.sigma = self.sigma.copy()
        new.eps = self.eps.copy()
        return new

    def commit_from(self, other: 'SolidState') -> None:
        self.sigma[:] = other.sigma
        self.eps[:] = other.eps


class ElasticSolid(Material):
    """
    Isotropic linear elastic solid.

    Attributes:
        E: Young's modulus
        nu: Poisson's ratio
        rho: density
    """

    element_type = MechSolid
    state_type = SolidState

    def __init__(self, E: float, nu: float = 0.0, rho: float = 0.0):
        self.E = check_positive("E", E)
        if not -1 < nu < 0.5:
            raise MaterialError(f"Poisson's ratio must be in (-1, 0.5), got {nu}")
        self.nu = float(nu)
        self.rho = check_non_negative("rho", rho)

    @property
    def lame_lambda(self) -> float:
        """λ = E·ν / ((1+ν)(1-2ν))"""
        return self.E * self.nu / ((1 + self.nu) * (1 - 2 * self.nu))

    @property
    def lame_mu(self) -> float:
        """μ = E / (2(1+ν))"""
        return self.E / (2 * (1 + self.nu))

    def constitutive_matrix(self, modeltype: str = "general") -> np.ndarray:
        """
        6×6 constitutive matrix.

        For plane stress the out-of-plane rows and columns are zero and
        the in-plane block is condensed (σ_zz = 0).

        Args:
            modeltype: analysis model type

        Returns:
            D: shape (6, 6)
        """
        E, nu = self.E, self.nu
        D = np.zeros((6, 6))

        if modeltype == "plane_stress":
            c = E / (1 - nu ** 2)
            D[:2, :2] = c * np.array([[1, nu], [nu, 1]])
            D[5, 5] = self.lame_mu
            return D

        lam, mu = self.lame_lambda, self.lame_mu
        D[:3, :3] = lam
        D[[0, 1, 2], [0, 1, 2]] += 2 * mu
        D[[3, 4, 5], [3, 4, 5]] = mu
        return D

    def tangent_operator(self, state: SolidState) -> np.ndarray:
        return self.constitutive_matrix(state.env.modeltype)

    def advance_state(self, state: SolidState, increment: np.ndarray,
                      gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[np.ndarray, Outcome]:
        deps = np.array(increment, dtype=np.float64)
        if state.env.modeltype == "plane_stress":
            deps[2] = -self.nu / (1 - self.nu) * (deps[0] + deps[1])

        dsigma = self.tangent_operator(state) @ deps
        state.eps += deps
        state.sigma += dsigma
        return dsigma, success()

    def output_values(self, state: SolidState) -> Dict[str, float]:
        s, e = state.sigma, state.eps
        svm = np.sqrt(0.5 * ((s[0] - s[1]) ** 2 + (s[1] - s[2]) ** 2 + (s[2] - s[0]) ** 2)
                      + 3 * (s[3] ** 2 + s[4] ** 2 + s[5] ** 2))

        vals = {'sxx': s[0], 'syy': s[1], 'szz': s[2], 'sxy': s[5]}
        if state.env.ndim == 3:
            vals.update({'syz': s[3], 'sxz': s[4]})
        vals.update({'exx': e[0], 'eyy': e[1], 'ezz': e[2], 'exy': e[5] / 2})
        if state.env.ndim == 3:
            vals.update({'eyz': e[3] / 2, 'exz': e[4] / 2})
        vals['svm'] = svm
        return vals
