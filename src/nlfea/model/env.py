"""
Model Environment
=================

Analysis-wide settings shared by elements and materials.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


MODEL_TYPES = ("general", "plane_stress", "plane_strain", "axisymmetric")


@dataclass
class ModelEnv:
    """
    Analysis environment.

    Attributes:
        ndim: analysis dimension (1, 2 or 3)
        modeltype: 'general', 'plane_stress', 'plane_strain' or 'axisymmetric'
        thickness: out-of-plane thickness for plane models
        t: current time
        stage: current stage counter
        inc: committed increment counter
        transient: True while a transient analysis runs
        params: extra numeric parameters
    """
    ndim: int = 3
    modeltype: str = "general"
    thickness: float = 1.0
    t: float = 0.0
    stage: int = 0
    inc: int = 0
    transient: bool = False
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.ndim not in (1, 2, 3):
            raise ValueError(f"ndim must be 1, 2 or 3, got {self.ndim}")
        if self.modeltype not in MODEL_TYPES:
            raise ValueError(f"Unknown model type: {self.modeltype}")
        if self.modeltype != "general" and self.ndim != 2:
            raise ValueError(f"Model type '{self.modeltype}' requires ndim = 2")
        if self.thickness <= 0:
            raise ValueError(f"thickness must be positive, got {self.thickness}")

    @property
    def axisymmetric(self) -> bool:
        return self.modeltype == "axisymmetric"
