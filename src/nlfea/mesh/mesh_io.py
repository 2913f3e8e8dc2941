"""
Mesh I/O Functions
==================

Read meshes and write analysis results through meshio.
"""

import numpy as np
from typing import Dict, List, Tuple, TYPE_CHECKING

import meshio

from .mesh import Cell, Mesh
from .shapes import shape_from_meshio

if TYPE_CHECKING:
    from ..model.domain import Domain


def read_mesh(filename: str, ndim: int = None) -> Mesh:
    """
    Read a mesh file (any format supported by meshio).

    Cells of unsupported types (e.g. vertices) are skipped. Integer cell
    data named 'tag', 'gmsh:physical' or 'cell_tags' becomes the cell tag.

    Args:
        filename: path to the mesh file
        ndim: analysis dimension (inferred when None)

    Returns:
        Mesh instance
    """
    mesh_data = meshio.read(filename)

    tag_key = next((key for key in ('tag', 'gmsh:physical', 'cell_tags')
                    if key in mesh_data.cell_data), None)

    cells = []
    for block_idx, cell_block in enumerate(mesh_data.cells):
        try:
            shape = shape_from_meshio(cell_block.type)
        except ValueError:
            continue
        tags = None
        if tag_key is not None:
            tags = mesh_data.cell_data[tag_key][block_idx]
        for i, conn in enumerate(cell_block.data):
            tag = '' if tags is None else str(int(tags[i]))
            cells.append(Cell(shape, list(conn), tag=tag))

    if not cells:
        raise ValueError(f"No supported cells found in {filename}")

    return Mesh(mesh_data.points, cells, ndim=ndim)


def _cell_blocks(cells: List[Cell]) -> List[Tuple[str, List[int]]]:
    """Group consecutive cells of the same type into blocks of cell ids."""
    blocks = []
    for cell in cells:
        if blocks and blocks[-1][0] == cell.shape.meshio_type:
            blocks[-1][1].append(cell.id)
        else:
            blocks.append((cell.shape.meshio_type, [cell.id]))
    return blocks


def to_meshio(points: np.ndarray, cells: List[Cell],
              point_data: Dict[str, np.ndarray],
              cell_data: Dict[str, np.ndarray]) -> meshio.Mesh:
    """
    Build a meshio.Mesh keeping the cell order.

    Args:
        points: shape (n_points, 3)
        cells: cells with ids equal to their position
        point_data: arrays with n_points rows
        cell_data: arrays with one row per cell

    Returns:
        meshio.Mesh instance
    """
    blocks = _cell_blocks(cells)
    meshio_cells = [(ctype, np.array([cells[i].node_ids for i in ids], dtype=np.int64))
                    for ctype, ids in blocks]
    meshio_cell_data = {
        name: [np.asarray(values)[ids] for _, ids in blocks]
        for name, values in cell_data.items()
    }
    return meshio.Mesh(points=np.asarray(points, dtype=np.float64),
                       cells=meshio_cells,
                       point_data={name: np.asarray(v) for name, v in point_data.items()},
                       cell_data=meshio_cell_data)


def write_mesh(mesh: Mesh, filename: str) -> None:
    """
    Write a mesh with its point and cell data.

    Args:
        mesh: Mesh instance
        filename: output path; the extension selects the format
    """
    meshio.write(filename, to_meshio(mesh.points, mesh.cells, mesh.point_data, mesh.cell_data))


def save_domain(domain: 'Domain', filename: str) -> None:
    """
    Write the domain geometry and its output tables.

    The output tables are rebuilt before writing.

    Args:
        domain: Domain instance
        filename: output path, e.g. 'out.vtu'
    """
    domain.update_output_data()
    points = np.array([node.coord for node in domain.nodes])
    cells = [Cell(elem.shape, list(elem.node_ids), tag=elem.tag, id=elem.id)
             for elem in domain.elems]
    meshio.write(filename, to_meshio(points, cells, domain.node_data, domain.elem_data))
