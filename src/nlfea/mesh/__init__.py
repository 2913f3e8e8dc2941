"""
Mesh Module
===========

Reference shapes, quadrature, mesh containers, generators and I/O.
"""

from .shapes import ShapeFamily, ShapeType, SHAPES, get_shape, shape_from_meshio
from .mesh import Cell, Mesh
from .mesh_generators import (
    create_line_mesh,
    create_rectangle_mesh,
    create_box_mesh,
    create_single_element,
    perturb_interior_nodes,
)
from .mesh_io import read_mesh, write_mesh, save_domain

__all__ = [
    "ShapeFamily",
    "ShapeType",
    "SHAPES",
    "get_shape",
    "shape_from_meshio",
    "Cell",
    "Mesh",
    "create_line_mesh",
    "create_rectangle_mesh",
    "create_box_mesh",
    "create_single_element",
    "perturb_interior_nodes",
    "read_mesh",
    "write_mesh",
    "save_domain",
]
