"""
Elastic Rod
===========

Linear elastic material for axial (truss) elements.
"""

import numpy as np
from typing import Dict, Optional, Tuple

from ..errors import MaterialError, Outcome, success
from ..elements.mech_rod import MechRod
from .material import IpState, Material, check_positive, check_non_negative


class RodState(IpState):
    """
    Axial state.

    Attributes:
        sigma: axial stress
        eps: axial strain
    """

    def __init__(self, env):
        super().__init__(env)
        self.sigma = 0.0
        self.eps = 0.0

    def duplicate(self) -> 'RodState':
        new = RodState(self.env)
        new.sigma = self.sigma
        new.eps = self.eps
        return new

    def commit_from(self, other: 'RodState') -> None:
        self.sigma = other.sigma
        self.eps = other.eps


class ElasticRod(Material):
    """
    Linear elastic rod.

    Attributes:
        E: Young's modulus
        A: cross section area (computed from the diameter ``dm`` if given)
        rho: density
    """

    element_type = MechRod
    state_type = RodState

    def __init__(self, E: float, A: Optional[float] = None, dm: Optional[float] = None,
                 rho: float = 0.0):
        self.E = check_positive("E", E)
        if dm is not None:
            A = np.pi * check_positive("dm", dm) ** 2 / 4
        if A is None:
            raise MaterialError("ElasticRod requires the area A or the diameter dm")
        self.A = check_positive("A", A)
        self.rho = check_non_negative("rho", rho)

    def tangent_operator(self, state: RodState) -> np.ndarray:
        return np.array([[self.E]])

    def advance_state(self, state: RodState, increment: float,
                      gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[float, Outcome]:
        dsigma = self.E * increment
        state.eps += increment
        state.sigma += dsigma
        return dsigma, success()

    def output_values(self, state: RodState) -> Dict[str, float]:
        return {
            'sa': state.sigma,
            'ea': state.eps,
            'fa': state.sigma * self.A,
            'A': self.A,
        }
