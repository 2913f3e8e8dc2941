"""
Model Module
============

Degrees of freedom, nodes, integration points, the analysis environment,
the Domain and nodal recovery.
"""

from .env import ModelEnv
from .node import Dof, Node
from .ip import Ip
from .recovery import (
    reg_terms,
    build_patches,
    nodal_patch_recovery,
    nodal_local_recovery,
    recover_node_fields,
)
from .domain import Domain, select

__all__ = [
    "ModelEnv",
    "Dof",
    "Node",
    "Ip",
    "reg_terms",
    "build_patches",
    "nodal_patch_recovery",
    "nodal_local_recovery",
    "recover_node_fields",
    "Domain",
    "select",
]
