"""
Elements Module
===============

Element contract and concrete element kernels.
"""

from .element import Element, Facet, evaluate, traction_load
from .mech_rod import MechRod
from .mech_beam import MechBeam
from .mech_solid import MechSolid
from .thermo_solid import ThermoSolid

__all__ = [
    "Element",
    "Facet",
    "evaluate",
    "traction_load",
    "MechRod",
    "MechBeam",
    "MechSolid",
    "ThermoSolid",
]
