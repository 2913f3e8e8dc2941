"""
Material Contract
=================

Abstract material and integration point state.

A Material holds immutable parameters validated at construction and may
be shared by many integration points. Each integration point owns one
IpState. The solver never mutates a committed state directly: it works
on a duplicate (``duplicate()``) and copies it back on acceptance
(``commit_from()``).
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Type, TYPE_CHECKING

import numpy as np

from ..errors import MaterialError, Outcome

if TYPE_CHECKING:
    from ..model.env import ModelEnv


class IpState(ABC):
    """
    Path-dependent state stored at an integration point.

    Attributes:
        env: analysis environment
    """

    def __init__(self, env: 'ModelEnv'):
        self.env = env

    @abstractmethod
    def duplicate(self) -> 'IpState':
        """Deep copy of the state."""

    @abstractmethod
    def commit_from(self, other: 'IpState') -> None:
        """Copy every field of ``other`` into this state."""


class Material(ABC):
    """
    Constitutive model.

    Class attributes:
        element_type: element class used for regular cells
        embedded_element_type: element class used for embedded cells
            (None when the material cannot be embedded)
        state_type: IpState subclass allocated per integration point
    """

    element_type: Optional[type] = None
    embedded_element_type: Optional[type] = None
    state_type: Type[IpState] = IpState

    def allocate_state(self, env: 'ModelEnv') -> IpState:
        """Zero-initialized state for one integration point."""
        return self.state_type(env)

    @abstractmethod
    def tangent_operator(self, state: IpState) -> np.ndarray:
        """
        Tangent operator at the given state.

        Args:
            state: current state

        Returns:
            D: tangent matrix
        """

    @abstractmethod
    def advance_state(self, state: IpState, increment, gradient: Optional[np.ndarray] = None,
                      dt: float = 0.0) -> Tuple[np.ndarray, Outcome]:
        """
        Advance the state in place.

        Args:
            state: state to update (a trial copy)
            increment: strain increment (or field increment)
            gradient: field gradient increment (transport models)
            dt: time increment

        Returns:
            response increment and Outcome
        """

    @abstractmethod
    def output_values(self, state: IpState) -> Dict[str, float]:
        """Output quantities of a state."""

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v}" for k, v in vars(self).items())
        return f"{type(self).__name__}({params})"


def check_positive(name: str, value: float) -> float:
    """Validate a strictly positive parameter."""
    if not np.isfinite(value) or value <= 0:
        raise MaterialError(f"{name} must be positive, got {value}")
    return float(value)


def check_non_negative(name: str, value: float) -> float:
    """Validate a non-negative parameter."""
    if not np.isfinite(value) or value < 0:
        raise MaterialError(f"{name} must be non-negative, got {value}")
    return float(value)
