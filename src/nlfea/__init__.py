"""
nlfea
=====

Nonlinear finite element analysis with incremental-iterative solution,
path-dependent material states and nodal field recovery.

Modules:
    mesh: Reference shapes, quadrature, mesh containers, generators and I/O
    model: Dofs, nodes, integration points, domain and nodal recovery
    physics: Material contract and material catalog
    elements: Rod, beam, solid and thermal elements
    assembly: Global operator assembly and boundary conditions
    solvers: Nonlinear incremental solver
    postprocess: Loggers and visualization
"""

from . import errors
from . import logging_config
from . import mesh
from . import model
from . import physics
from . import elements
from . import assembly
from . import solvers
from . import postprocess

from .errors import (
    FEAError,
    ConstructionError,
    MaterialError,
    NegativeJacobianError,
    ConvergenceError,
    SingularSystemError,
)
from .model import Domain
from .assembly import NodeBC, FaceBC, EdgeBC, ElemBC
from .solvers import SolverConfig, solve

__version__ = "0.1.0"
__all__ = [
    "errors", "logging_config", "mesh", "model", "physics", "elements",
    "assembly", "solvers", "postprocess",
    "FEAError", "ConstructionError", "MaterialError", "NegativeJacobianError",
    "ConvergenceError", "SingularSystemError",
    "Domain", "NodeBC", "FaceBC", "EdgeBC", "ElemBC", "SolverConfig", "solve",
]
