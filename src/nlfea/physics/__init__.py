"""
Physics Module
==============

Material contract and constitutive models.
"""

from .material import IpState, Material
from .elastic_rod import ElasticRod, RodState
from .elastoplastic_rod import ElastoPlasticRod, PlasticRodState
from .elastic_beam import ElasticBeam, BeamState
from .elastic_solid import ElasticSolid, SolidState
from .lin_thermo import LinThermo, ThermoState

__all__ = [
    "IpState",
    "Material",
    "ElasticRod",
    "RodState",
    "ElastoPlasticRod",
    "PlasticRodState",
    "ElasticBeam",
    "BeamState",
    "ElasticSolid",
    "SolidState",
    "LinThermo",
    "ThermoState",
]
