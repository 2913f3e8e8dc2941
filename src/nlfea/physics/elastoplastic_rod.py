"""
Elasto-Plastic Rod
==================

Uniaxial plasticity with linear isotropic hardening.

Yield function:
    f = |σ| - (fy + H·εpa)

where εpa is the accumulated plastic strain.
"""

import numpy as np
from typing import Dict, Optional, Tuple

from ..errors import Outcome, failure, success
from ..elements.mech_rod import MechRod
from .material import IpState, Material, check_positive, check_non_negative


class PlasticRodState(IpState):
    """
    Axial state with plastic variables.

    Attributes:
        sigma: axial stress
        eps: axial strain
        epa: accumulated plastic strain
        dgamma: plastic multiplier of the last update
    """

    def __init__(self, env):
        super().__init__(env)
        self.sigma = 0.0
        self.eps = 0.0
        self.epa = 0.0
        self.dgamma = 0.0

    def duplicate(self) -> 'PlasticRodState':
        new = PlasticRodState(self.env)
        new.commit_from(self)
        return new

    def commit_from(self, other: 'PlasticRodState') -> None:
        self.sigma = other.sigma
        self.eps = other.eps
        self.epa = other.epa
        self.dgamma = other.dgamma


class ElastoPlasticRod(Material):
    """
    Elasto-plastic rod.

    Attributes:
        E: Young's modulus
        A: cross section area
        fy: yield stress
        H: hardening modulus
        rho: density
    """

    element_type = MechRod
    state_type = PlasticRodState

    def __init__(self, E: float, A: float, fy: float, H: float = 0.0, rho: float = 0.0):
        self.E = check_positive("E", E)
        self.A = check_positive("A", A)
        self.fy = check_positive("fy", fy)
        self.H = check_non_negative("H", H)
        self.rho = check_non_negative("rho", rho)

    def yield_func(self, state: PlasticRodState, sigma: float) -> float:
        return abs(sigma) - (self.fy + self.H * state.epa)

    def tangent_operator(self, state: PlasticRodState) -> np.ndarray:
        if state.dgamma > 0.0:
            return np.array([[self.E * self.H / (self.E + self.H)]])
        return np.array([[self.E]])

    def advance_state(self, state: PlasticRodState, increment: float,
                      gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[float, Outcome]:
        sigma_ini = state.sigma
        sigma_tr = sigma_ini + self.E * increment
        ftr = self.yield_func(state, sigma_tr)

        if ftr < 0.0:
            state.dgamma = 0.0
            state.sigma = sigma_tr
        else:
            # Return mapping
            state.dgamma = ftr / (self.E + self.H)
            state.sigma = sigma_tr - self.E * state.dgamma * np.sign(sigma_tr)
            state.epa += state.dgamma

        state.eps += increment
        dsigma = state.sigma - sigma_ini

        if not np.isfinite(dsigma):
            return dsigma, failure("ElastoPlasticRod: non-finite stress update")
        return dsigma, success()

    def output_values(self, state: PlasticRodState) -> Dict[str, float]:
        return {
            'sa': state.sigma,
            'ea': state.eps,
            'epa': state.epa,
            'fa': state.sigma * self.A,
            'A': self.A,
        }
