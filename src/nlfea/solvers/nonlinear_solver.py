"""
Nonlinear Solver
================

Incremental-iterative (Newton-Raphson) solver with automatic increments.

Algorithm:
    For each increment ΔT of the stage pseudo-time T ∈ [0, 1]:
        1. Interpolate the boundary targets at T + ΔT:
           ΔUex on prescribed dofs. On free dofs ΔFex is the external
           load at T + ΔT minus the committed internal forces
           (conduction fluxes in thermal analyses)
           Constant values ramp linearly over the stage; values given
           as functions of time are evaluated at the increment end time
        2. Iterate:
            a. Assemble the tangent (plus M/Δt in transient analyses)
            b. Apply the prescribed increment and solve
            c. Advance every element from a fresh trial copy of the
               committed states with the accumulated increment ΔU
            d. R = ΔFex - ΔFin on free dofs, minus M ΔU/Δt when
               transient (backward Euler)
        3. Converged: commit the trial states and the dof values
           Rejected: discard the trials and retry with a smaller ΔT
"""

import logging
import dataclasses
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
from scipy.sparse.linalg import spsolve

from ..errors import ConvergenceError, Outcome, SingularSystemError, failure, success
from ..assembly.global_assembly import (
    active_elements, assemble_capacity, assemble_tangent, dof_vectors,
)
from ..assembly.boundary_conditions import (
    BC, apply_dirichlet_bc, bc_targets, get_free_dofs, mark_prescribed,
)

if TYPE_CHECKING:
    from ..model.domain import Domain

logger = logging.getLogger(__name__)

_EPS = 1e-10


@dataclass
class SolverConfig:
    """Configuration for the nonlinear solver."""
    nincs: int = 1                # Initial number of increments
    maxits: int = 5               # Maximum iterations per increment
    tol: float = 1e-2             # Residual tolerance (max norm)
    rtol: float = 0.0             # Relative residual tolerance (0 disables)
    auto_inc: bool = False        # Automatic increment sizing
    maxincs: int = 1_000_000      # Maximum number of increments (including retries)
    min_dT: float = 1e-8          # Smallest pseudo-time increment
    max_dT: float = 1.0           # Largest pseudo-time increment
    grow_factor: float = 1.5      # Increment growth after fast convergence
    shrink_factor: float = 0.5    # Increment reduction after a rejection
    fast_its: int = 3             # Iterations regarded as fast convergence
    bc_method: str = "elimination"  # 'elimination' or 'penalty'
    end_time: float = 0.0         # Stage duration (> 0 enables transient terms)
    nouts: int = 0                # Number of output points for group loggers
    verbose: bool = False         # Log progress at INFO level

    def __post_init__(self):
        """Validate configuration."""
        if self.nincs < 1:
            raise ValueError(f"nincs must be at least 1, got {self.nincs}")
        if self.maxits < 1:
            raise ValueError(f"maxits must be at least 1, got {self.maxits}")
        if self.tol <= 0:
            raise ValueError(f"tol must be positive, got {self.tol}")
        if self.rtol < 0:
            raise ValueError(f"rtol must be non-negative, got {self.rtol}")
        if self.maxincs < 1:
            raise ValueError(f"maxincs must be at least 1, got {self.maxincs}")
        if not 0 < self.min_dT <= self.max_dT <= 1:
            raise ValueError("Increments must satisfy 0 < min_dT <= max_dT <= 1")
        if self.grow_factor < 1:
            raise ValueError(f"grow_factor must be >= 1, got {self.grow_factor}")
        if not 0 < self.shrink_factor < 1:
            raise ValueError(f"shrink_factor must be in (0, 1), got {self.shrink_factor}")
        if self.bc_method not in ("elimination", "penalty"):
            raise ValueError(f"Unknown bc_method: {self.bc_method}")
        if self.end_time < 0:
            raise ValueError(f"end_time must be non-negative, got {self.end_time}")
        if self.nouts < 0:
            raise ValueError(f"nouts must be non-negative, got {self.nouts}")


@dataclass
class IncrementRecord:
    """Result of one increment attempt."""
    inc: int
    T: float
    dT: float
    t: float
    iterations: int
    residual: float
    converged: bool
    message: str = ""


@dataclass
class SolveResult:
    """Result of a solve call (one stage)."""
    converged: bool
    stage: int
    increments: List[IncrementRecord] = field(default_factory=list)
    U: Optional[np.ndarray] = None
    F: Optional[np.ndarray] = None

    @property
    def n_increments(self) -> int:
        """Number of committed increments."""
        return sum(1 for rec in self.increments if rec.converged)

    @property
    def n_rejected(self) -> int:
        """Number of rejected increment attempts."""
        return sum(1 for rec in self.increments if not rec.converged)

    @property
    def residual(self) -> float:
        """Residual of the last committed increment."""
        committed = [rec for rec in self.increments if rec.converged]
        return committed[-1].residual if committed else 0.0


class NonlinearSolver:
    """
    Incremental-iterative solver for a Domain.

    Attributes:
        domain: Domain instance
        config: SolverConfig instance
    """

    def __init__(self, domain: 'Domain', config: Optional[SolverConfig] = None):
        """
        Initialize solver.

        Args:
            domain: Domain instance
            config: SolverConfig (optional)
        """
        self.domain = domain
        self.config = config or SolverConfig()
        self._level = logging.INFO if self.config.verbose else logging.DEBUG

    def solve(self, bcs: Sequence[BC]) -> SolveResult:
        """
        Run one stage of the analysis.

        Args:
            bcs: boundary conditions of the stage

        Returns:
            SolveResult

        Raises:
            ConvergenceError: increment could not be completed
            SingularSystemError: linear system could not be solved
            NegativeJacobianError: degenerate element geometry
        """
        cfg = self.config
        domain = self.domain
        env = domain.env
        bcs = list(bcs)

        env.stage += 1
        elems = active_elements(domain)
        env.transient = cfg.end_time > 0 and any(e.capacity_kind for e in elems)
        tspan = cfg.end_time if cfg.end_time > 0 else 1.0
        t0 = env.t

        U_start, F_now = dof_vectors(domain)
        # Reactions of formerly prescribed dofs are released gradually
        was_prescribed = np.zeros(domain.ndofs, dtype=bool)
        for dof in domain.dofs:
            was_prescribed[dof.eq_id] = dof.prescribed
        F_start = np.where(was_prescribed, F_now, domain.ext_loads)
        _, _, pmask = bc_targets(domain, bcs, t0)
        mark_prescribed(domain, pmask)
        pdofs = np.flatnonzero(pmask)

        logger.log(self._level, "Stage %d: %d dofs (%d prescribed), transient=%s",
                   env.stage, domain.ndofs, len(pdofs), env.transient)

        result = SolveResult(converged=False, stage=env.stage)
        out_times = [k / cfg.nouts for k in range(1, cfg.nouts + 1)] if cfg.nouts else []

        T = 0.0
        dT = min(1.0 / cfg.nincs, cfg.max_dT)
        attempts = 0

        while T < 1.0 - _EPS:
            if attempts >= cfg.maxincs:
                raise ConvergenceError(f"Maximum number of increments reached ({cfg.maxincs})")
            attempts += 1

            dT = min(dT, 1.0 - T)
            if out_times:
                next_out = next(tt for tt in out_times if tt > T + _EPS)
                dT = min(dT, next_out - T)

            t_prev = env.t
            env.t = t0 + (T + dT) * tspan
            dt = dT * tspan

            U_tgt, F_tgt, pmask_now, timed = bc_targets(domain, bcs, env.t, with_timed=True)
            if not np.array_equal(pmask_now, pmask):
                raise ValueError("The set of prescribed dofs must not change during a stage")

            U_cur, F_cur = dof_vectors(domain)
            Tn = T + dT
            ramp = np.where(timed, 1.0, Tn)
            dUex = np.where(pmask, U_start + ramp * (U_tgt - U_start) - U_cur, 0.0)
            F_ext = np.where(pmask, 0.0, F_start + ramp * (F_tgt - F_start))
            dFex = np.where(pmask, 0.0, F_ext - F_cur)

            converged, its, residue, message, dU, dFin = self._iterate(dUex, dFex, pdofs, dt)

            record = IncrementRecord(inc=env.inc + 1, T=Tn, dT=dT, t=env.t,
                                     iterations=its, residual=residue,
                                     converged=converged, message=message)
            result.increments.append(record)

            if converged:
                self._commit(dU, dFin)
                domain.ext_loads = F_ext
                T = Tn
                env.inc += 1
                logger.log(self._level, "  inc %d: T=%.6g dT=%.4g its=%d residue=%.4e",
                           env.inc, T, dT, its, residue)

                domain.update_single_loggers()
                if out_times and any(abs(T - tt) < _EPS for tt in out_times):
                    domain.update_composed_loggers()

                if cfg.auto_inc and its <= cfg.fast_its:
                    dT = min(dT * cfg.grow_factor, cfg.max_dT)
            else:
                self._discard()
                env.t = t_prev
                if not cfg.auto_inc:
                    raise ConvergenceError(
                        f"Increment at T={T:.6g} did not converge: {message}"
                    )
                dT *= cfg.shrink_factor
                logger.warning("Increment at T=%.6g rejected (%s); retrying with dT=%.4g",
                               T, message, dT)
                if dT < cfg.min_dT:
                    raise ConvergenceError(
                        f"Increment size below min_dT ({cfg.min_dT}) at T={T:.6g}: {message}"
                    )

        if not out_times:
            domain.update_composed_loggers()

        result.converged = True
        result.U, result.F = dof_vectors(domain)
        logger.log(self._level, "Stage %d finished: %d increments, %d rejected",
                   env.stage, result.n_increments, result.n_rejected)
        return result

    def _iterate(self, dUex: np.ndarray, dFex: np.ndarray, pdofs: np.ndarray, dt: float
                 ) -> Tuple[bool, int, float, str, np.ndarray, np.ndarray]:
        """
        Newton iterations of one increment.

        Returns:
            converged, iterations, residual, message, ΔU, ΔFin
        """
        cfg = self.config
        domain = self.domain
        transient = domain.env.transient
        ndofs = domain.ndofs
        free = np.zeros(ndofs, dtype=bool)
        free[get_free_dofs(ndofs, pdofs)] = True

        M = assemble_capacity(domain) if transient else None

        dUa = np.zeros(ndofs)        # accumulated increment
        dUi_bc = dUex[pdofs]         # prescribed part of the next correction
        R = dFex.copy()
        residue = np.inf
        last_residue = np.inf
        nincreases = 0
        dFin = np.zeros(ndofs)

        for it in range(1, cfg.maxits + 1):
            K = assemble_tangent(domain)
            if transient:
                K = K + M / dt

            K_bc, R_bc = apply_dirichlet_bc(K, R, pdofs, dUi_bc, method=cfg.bc_method)
            dUi = self._linear_solve(K_bc, R_bc)

            dUt = dUa + dUi
            dFin = np.zeros(ndofs)
            outcome = self._advance_elements(dUt, dFin, dt)
            if not outcome:
                return False, it, residue, outcome.message, dUt, dFin

            dFcap = M @ dUt / dt if transient else 0.0

            R = np.where(free, dFex - dFin - dFcap, 0.0)
            residue = float(np.max(np.abs(R))) if ndofs else 0.0
            dUa = dUt
            dUi_bc = np.zeros(len(pdofs))

            logger.log(self._level, "    it %d residue: %.4e", it, residue)

            if not np.isfinite(residue):
                return False, it, residue, "non-finite residual", dUt, dFin

            if residue < cfg.tol:
                return True, it, residue, "", dUt, dFin
            if cfg.rtol > 0:
                ref = max(np.max(np.abs(dFex)), np.max(np.abs(dFin)))
                if ref > 0 and residue < cfg.rtol * ref:
                    return True, it, residue, "", dUt, dFin

            nincreases = nincreases + 1 if residue > last_residue else 0
            if nincreases >= 2:
                return False, it, residue, "diverging residual", dUt, dFin
            last_residue = residue

        return False, cfg.maxits, residue, f"not converged in {cfg.maxits} iterations", dUa, dFin

    def _advance_elements(self, dU: np.ndarray, dFin: np.ndarray, dt: float) -> Outcome:
        """Evaluate every active element from fresh trial states."""
        for elem in active_elements(self.domain):
            for ip in elem.ips:
                ip.begin_trial()
        for elem in active_elements(self.domain):
            outcome = elem.advance_state(dU, dFin, dt)
            if not outcome:
                return failure(f"element {elem.id}: {outcome.message}")
        return success()

    @staticmethod
    def _linear_solve(K, F: np.ndarray) -> np.ndarray:
        if K.shape[0] == 0:
            return np.zeros(0)
        try:
            U = spsolve(K.tocsc(), F)
        except RuntimeError as exc:
            raise SingularSystemError(f"Linear solver failed: {exc}") from exc
        U = np.atleast_1d(U)
        if not np.all(np.isfinite(U)):
            raise SingularSystemError("Singular system: non-finite solution")
        return U

    def _commit(self, dU: np.ndarray, dFin: np.ndarray) -> None:
        """Accept trial states and accumulate dof values."""
        for elem in self.domain.elems:
            for ip in elem.ips:
                ip.commit()
        for dof in self.domain.dofs:
            dof.vals[dof.name] += dU[dof.eq_id]
            dof.vals[dof.natname] += dFin[dof.eq_id]

    def _discard(self) -> None:
        """Drop trial states."""
        for elem in self.domain.elems:
            for ip in elem.ips:
                ip.discard()


def solve(domain: 'Domain', bcs: Sequence[BC], config: Optional[SolverConfig] = None,
          **kwargs) -> SolveResult:
    """
    Solve one stage.

    Args:
        domain: Domain instance
        bcs: boundary conditions
        config: SolverConfig (optional)
        **kwargs: SolverConfig fields overriding ``config``

    Returns:
        SolveResult
    """
    if config is None:
        config = SolverConfig(**kwargs)
    elif kwargs:
        config = dataclasses.replace(config, **kwargs)
    return NonlinearSolver(domain, config).solve(bcs)
