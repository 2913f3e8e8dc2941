"""
Solvers Module
==============

Incremental-iterative solver with automatic increments and rollback.
"""

from .nonlinear_solver import (
    NonlinearSolver,
    SolverConfig,
    IncrementRecord,
    SolveResult,
    solve,
)

__all__ = ["NonlinearSolver", "SolverConfig", "IncrementRecord", "SolveResult", "solve"]
