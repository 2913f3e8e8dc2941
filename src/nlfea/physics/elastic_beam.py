"""
Elastic Beam
============

Linear elastic Euler-Bernoulli beam section.

The section works with generalized strains [ε, κ] (axial strain and
curvature) and generalized stresses [N, M] (axial force and bending
moment).
"""

import numpy as np
from typing import Dict, Optional, Tuple

from ..errors import Outcome, success
from ..elements.mech_beam import MechBeam
from .material import IpState, Material, check_positive, check_non_negative


class BeamState(IpState):
    """
    Section state.

    Attributes:
        sigma: shape (2,), [N, M]
        eps: shape (2,), [ε, κ]
    """

    def __init__(self, env):
        super().__init__(env)
        self.sigma = np.zeros(2)
        self.eps = np.zeros(2)

    def duplicate(self) -> 'BeamState':
        new = BeamState(self.env)
        new.sigma = self.sigma.copy()
        new.eps = self.eps.copy()
        return new

    def commit_from(self, other: 'BeamState') -> None:
        self.sigma[:] = other.sigma
        self.eps[:] = other.eps


class ElasticBeam(Material):
    """
    Elastic beam section.

    Attributes:
        E: Young's modulus
        A: cross section area
        I: second moment of area
        rho: density
    """

    element_type = MechBeam
    state_type = BeamState

    def __init__(self, E: float, A: float, I: float, rho: float = 0.0):
        self.E = check_positive("E", E)
        self.A = check_positive("A", A)
        self.I = check_positive("I", I)
        self.rho = check_non_negative("rho", rho)

    def tangent_operator(self, state: BeamState) -> np.ndarray:
        return np.diag([self.E * self.A, self.E * self.I])

    def advance_state(self, state: BeamState, increment: np.ndarray,
                      gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[np.ndarray, Outcome]:
        dsigma = self.tangent_operator(state) @ increment
        state.eps += increment
        state.sigma += dsigma
        return dsigma, success()

    def output_values(self, state: BeamState) -> Dict[str, float]:
        return {
            'N': state.sigma[0],
            'M': state.sigma[1],
            'ea': state.eps[0],
            'kappa': state.eps[1],
        }
