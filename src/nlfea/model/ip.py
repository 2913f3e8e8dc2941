"""
Integration Points
==================
"""

import numpy as np
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..physics.material import IpState


class Ip:
    """
    Integration point.

    Holds the committed material state and, while an increment is being
    evaluated, a trial copy of it. The committed state only changes in
    ``commit()``.

    Attributes:
        R: shape (3,), local coordinates
        w: quadrature weight
        coord: shape (3,), global coordinates
        id: global index in the domain
        tag: user tag (owner element tag by default)
        owner_id: index of the owner element in the domain
        state: committed IpState
        trial: trial IpState or None
    """

    __slots__ = ('R', 'w', 'coord', 'id', 'tag', 'owner_id', 'state', 'trial')

    def __init__(self, R: np.ndarray, w: float, owner_id: int = -1, tag: str = ''):
        self.R = np.asarray(R, dtype=np.float64)
        self.w = float(w)
        self.coord = np.zeros(3)
        self.id = -1
        self.tag = tag
        self.owner_id = owner_id
        self.state: Optional['IpState'] = None
        self.trial: Optional['IpState'] = None

    @property
    def current_state(self) -> 'IpState':
        """Trial state while one exists, committed state otherwise."""
        return self.trial if self.trial is not None else self.state

    def begin_trial(self) -> 'IpState':
        """Install a fresh duplicate of the committed state as trial."""
        self.trial = self.state.duplicate()
        return self.trial

    def commit(self) -> None:
        """Accept the trial state."""
        if self.trial is not None:
            self.state.commit_from(self.trial)
            self.trial = None

    def discard(self) -> None:
        """Drop the trial state."""
        self.trial = None

    def __repr__(self) -> str:
        return f"Ip(id={self.id}, owner={self.owner_id}, coord={tuple(self.coord)})"
