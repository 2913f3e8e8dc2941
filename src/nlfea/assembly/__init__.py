"""
Assembly Module
===============

Global operator assembly and boundary condition application.
"""

from .global_assembly import (
    active_elements,
    assemble_matrix,
    assemble_tangent,
    assemble_capacity,
    assemble_operator,
    dof_vectors,
)
from .boundary_conditions import (
    BC,
    NodeBC,
    FaceBC,
    EdgeBC,
    ElemBC,
    bc_targets,
    mark_prescribed,
    apply_dirichlet_bc,
    get_free_dofs,
)

__all__ = [
    "active_elements",
    "assemble_matrix",
    "assemble_tangent",
    "assemble_capacity",
    "assemble_operator",
    "dof_vectors",
    "BC",
    "NodeBC",
    "FaceBC",
    "EdgeBC",
    "ElemBC",
    "bc_targets",
    "mark_prescribed",
    "apply_dirichlet_bc",
    "get_free_dofs",
]
