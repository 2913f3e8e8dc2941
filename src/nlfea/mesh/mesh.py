"""
Mesh
====

Cell and mesh containers with boundary face/edge extraction.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .shapes import ShapeType, ShapeFamily, get_shape


@dataclass(eq=False)
class Cell:
    """
    Mesh cell.

    Attributes:
        shape: ShapeType of the cell
        node_ids: point indices (connectivity)
        tag: user tag
        id: cell index in the mesh
        embedded: True for line cells embedded in solid cells
        linked_cells: ids of cells linked to this one
        nips: requested number of integration points (0 = shape default)
        owner_id: owner cell id (only for boundary facets)
    """
    shape: ShapeType
    node_ids: List[int]
    tag: str = ""
    id: int = -1
    embedded: bool = False
    linked_cells: List[int] = field(default_factory=list)
    nips: int = 0
    owner_id: int = -1

    def __post_init__(self):
        if isinstance(self.shape, str):
            self.shape = get_shape(self.shape)
        self.node_ids = [int(n) for n in self.node_ids]
        if len(self.node_ids) != self.shape.npoints:
            raise ValueError(
                f"{self.shape.name} cell requires {self.shape.npoints} nodes, "
                f"got {len(self.node_ids)}"
            )


class Mesh:
    """
    Unstructured mesh made of cells of any supported shape.

    Boundary faces are the facets of solid cells that belong to exactly
    one cell. In 3D, boundary edges are the unique edges of those faces.

    Attributes:
        points: shape (n_points, 3), point coordinates
        point_tags: list of point tags
        cells: list of Cell
        faces: boundary facets of solid cells
        edges: boundary edges (3D meshes only)
        ndim: analysis dimension
    """

    def __init__(self, points: np.ndarray, cells: Sequence[Cell],
                 ndim: Optional[int] = None,
                 point_tags: Optional[Sequence[str]] = None):
        """
        Initialize mesh and compute boundary entities.

        Args:
            points: shape (n_points, d) with d in 1..3
            cells: cells referencing point indices
            ndim: analysis dimension (inferred when None)
            point_tags: optional tag per point
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            points = points.reshape(-1, 1)
        if points.ndim != 2 or not 1 <= points.shape[1] <= 3:
            raise ValueError("points must have shape (n_points, 1..3)")

        self.points = np.zeros((len(points), 3))
        self.points[:, :points.shape[1]] = points

        if point_tags is None:
            point_tags = [""] * len(self.points)
        if len(point_tags) != len(self.points):
            raise ValueError("point_tags must have one entry per point")
        self.point_tags = list(point_tags)

        self.cells = list(cells)
        for i, cell in enumerate(self.cells):
            cell.id = i
            if max(cell.node_ids) >= len(self.points) or min(cell.node_ids) < 0:
                raise ValueError(f"Cell {i} references a missing point")

        self.ndim = ndim if ndim is not None else self._infer_ndim()

        self.point_data: Dict[str, np.ndarray] = {}
        self.cell_data: Dict[str, np.ndarray] = {}

        self._build_faces()
        self._build_edges()

    @property
    def n_points(self) -> int:
        """Number of points."""
        return len(self.points)

    @property
    def n_cells(self) -> int:
        """Number of cells."""
        return len(self.cells)

    def _infer_ndim(self) -> int:
        solid_dims = [cell.shape.ndim for cell in self.cells
                      if cell.shape.family == ShapeFamily.SOLID]
        if solid_dims:
            return max(solid_dims)
        if np.any(self.points[:, 2] != 0.0):
            return 3
        if np.any(self.points[:, 1] != 0.0):
            return 2
        return 1

    def _build_faces(self) -> None:
        """
        Find boundary facets of solid cells.

        A facet is on the boundary if it belongs to exactly one cell.
        """
        facet_count: Dict[Tuple[int, ...], int] = {}
        facet_first: Dict[Tuple[int, ...], Cell] = {}

        for cell in self.cells:
            if cell.shape.family != ShapeFamily.SOLID:
                continue
            for local in cell.shape.facet_idxs:
                conn = [cell.node_ids[i] for i in local]
                key = tuple(sorted(conn))
                facet_count[key] = facet_count.get(key, 0) + 1
                if key not in facet_first:
                    facet_first[key] = Cell(cell.shape.facet, conn, tag=cell.tag,
                                            owner_id=cell.id)

        self.faces = [face for key, face in facet_first.items() if facet_count[key] == 1]
        for i, face in enumerate(self.faces):
            face.id = i

    def _build_edges(self) -> None:
        """Collect unique edges of boundary faces (3D only)."""
        self.edges = []
        if self.ndim != 3:
            return

        seen = set()
        for face in self.faces:
            for local in face.shape.facet_idxs:
                conn = [face.node_ids[i] for i in local]
                key = tuple(sorted(conn))
                if key in seen:
                    continue
                seen.add(key)
                self.edges.append(Cell(face.shape.facet, conn, tag=face.tag,
                                       owner_id=face.owner_id))
        for i, edge in enumerate(self.edges):
            edge.id = i

    def cell_centroids(self) -> np.ndarray:
        """
        Compute the centroid of every cell.

        Returns:
            centroids: shape (n_cells, 3)
        """
        return np.array([self.points[cell.node_ids].mean(axis=0) for cell in self.cells])

    def tag_points(self, selector, tag: str) -> List[int]:
        """
        Tag points selected by a coordinate predicate.

        Args:
            selector: function(x, y, z) -> bool
            tag: tag to assign

        Returns:
            ids of tagged points
        """
        ids = [i for i, (x, y, z) in enumerate(self.points) if selector(x, y, z)]
        for i in ids:
            self.point_tags[i] = tag
        return ids

    def tag_cells(self, selector, tag: str) -> List[int]:
        """
        Tag cells whose points all satisfy a coordinate predicate.

        Args:
            selector: function(x, y, z) -> bool
            tag: tag to assign

        Returns:
            ids of tagged cells
        """
        ids = []
        for cell in self.cells:
            if all(selector(*self.points[n]) for n in cell.node_ids):
                cell.tag = tag
                ids.append(cell.id)
        return ids

    def __repr__(self) -> str:
        return (f"Mesh(ndim={self.ndim}, points={self.n_points}, cells={self.n_cells}, "
                f"faces={len(self.faces)}, edges={len(self.edges)})")
