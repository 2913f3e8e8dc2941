"""
Errors
======

Exception taxonomy and the outcome value returned by state updates.

Construction and geometric errors are fatal. Material failures and
non-converged increments are reported as a failed ``Outcome`` and handled
by the solver (step reduction and retry) before escalating to
``ConvergenceError``.
"""

from dataclasses import dataclass


class FEAError(Exception):
    """Base class for all analysis errors."""


class ConstructionError(FEAError, ValueError):
    """Invalid model definition detected before any solve."""


class MaterialError(ConstructionError):
    """Invalid material parameters."""


class NegativeJacobianError(FEAError, ValueError):
    """Degenerate or inverted element geometry."""

    def __init__(self, elem_id: int, detJ: float = 0.0):
        self.elem_id = elem_id
        self.detJ = detJ
        super().__init__(
            f"Negative jacobian determinant in element {elem_id} (detJ = {detJ:.6g})"
        )


class ConvergenceError(FEAError, RuntimeError):
    """Increment could not be completed."""


class SingularSystemError(FEAError, RuntimeError):
    """Linear system could not be solved."""


@dataclass
class Outcome:
    """
    Result of a state update.

    Attributes:
        success: False when the update must be rejected
        message: reason for the failure
    """
    success: bool = True
    message: str = ""

    def __bool__(self) -> bool:
        return self.success


def success() -> Outcome:
    """Successful outcome."""
    return Outcome(True, "")


def failure(message: str) -> Outcome:
    """Failed outcome with a reason."""
    return Outcome(False, message)
