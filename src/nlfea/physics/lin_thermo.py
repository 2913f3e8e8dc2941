"""
Linear Thermal Conduction
=========================

Fourier conduction with constant conductivity and heat capacity:

    q = -k ∇T
"""

import numpy as np
from typing import Dict, Optional, Tuple

from ..errors import Outcome, success
from ..elements.thermo_solid import ThermoSolid
from .material import IpState, Material, check_positive, check_non_negative


class ThermoState(IpState):
    """
    Thermal state.

    Attributes:
        ut: temperature
        QQ: shape (3,), heat flux
        D: shape (3,), temperature gradient
    """

    def __init__(self, env):
        super().__init__(env)
        self.ut = 0.0
        self.QQ = np.zeros(3)
        self.D = np.zeros(3)

    def duplicate(self) -> 'ThermoState':
        new = ThermoState(self.env)
        new.ut = self.ut
        new.QQ = self.QQ.copy()
        new.D = self.D.copy()
        return new

    def commit_from(self, other: 'ThermoState') -> None:
        self.ut = other.ut
        self.QQ[:] = other.QQ
        self.D[:] = other.D


class LinThermo(Material):
    """
    Linear isotropic thermal material.

    Attributes:
        k: thermal conductivity
        rho: density
        cv: specific heat
    """

    element_type = ThermoSolid
    state_type = ThermoState

    def __init__(self, k: float, rho: float = 0.0, cv: float = 0.0):
        self.k = check_positive("k", k)
        self.rho = check_non_negative("rho", rho)
        self.cv = check_non_negative("cv", cv)

    def tangent_operator(self, state: ThermoState) -> np.ndarray:
        """Conductivity matrix k·I (ndim × ndim)."""
        return self.k * np.eye(state.env.ndim)

    def advance_state(self, state: ThermoState, increment: float,
                      gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[np.ndarray, Outcome]:
        """
        Update temperature, gradient and flux.

        Args:
            state: thermal state
            increment: temperature increment at the point
            gradient: temperature gradient increment, shape (ndim,)
            dt: time increment

        Returns:
            flux increment, shape (ndim,), and Outcome
        """
        ndim = state.env.ndim
        dG = np.zeros(ndim) if gradient is None else np.asarray(gradient, dtype=np.float64)
        dq = -self.k * dG

        state.ut += increment
        state.D[:ndim] += dG
        state.QQ[:ndim] += dq
        return dq, success()

    def output_values(self, state: ThermoState) -> Dict[str, float]:
        vals = {'ut': state.ut, 'qx': state.QQ[0]}
        if state.env.ndim >= 2:
            vals['qy'] = state.QQ[1]
        if state.env.ndim == 3:
            vals['qz'] = state.QQ[2]
        return vals
