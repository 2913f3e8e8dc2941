"""
Domain
======

Finite element model built from a mesh and material bindings.

The domain owns the nodes, the elements and the boundary facets, assigns
the global equation numbers and keeps the nodal and element output tables.

Construction steps:
    1. Nodes from mesh points
    2. Material binding (every cell must be bound; the last matching
       binding wins when a cell matches several selectors)
    3. Elements, linked elements, boundary faces and edges
    4. Dof registration, integration points and ip numbering
    5. Equation numbering (node order, then dof registration order)
    6. Element initialization
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConstructionError
from ..elements.element import Element, Facet
from ..mesh.mesh import Mesh
from ..mesh.shapes import ShapeFamily
from ..physics.material import Material
from .env import ModelEnv
from .ip import Ip
from .node import Dof, Node
from .recovery import recover_node_fields

logger = logging.getLogger(__name__)

Selector = Union[None, str, ShapeFamily, Callable[..., bool], Sequence[int]]


def _is_id_list(selector) -> bool:
    return isinstance(selector, (list, tuple, range, np.ndarray)) and \
        all(isinstance(i, (int, np.integer)) for i in selector)


def select(items: Sequence[Any], selector: Selector,
           points: Callable[[Any], np.ndarray],
           family: Optional[Callable[[Any], ShapeFamily]] = None) -> List[Any]:
    """
    Filter entities.

    Args:
        items: entities with ``tag`` attributes
        selector: None or 'all' (everything), a tag, a ShapeFamily,
            a function(x, y, z) -> bool that must hold at every point of
            the entity, or a sequence of indices
        points: function(item) -> shape (n, 3) coordinates
        family: function(item) -> ShapeFamily (required for family selectors)

    Returns:
        selected items in their original order
    """
    if selector is None or (isinstance(selector, str) and selector == 'all'):
        return list(items)
    if isinstance(selector, str):
        return [item for item in items if item.tag == selector]
    if isinstance(selector, ShapeFamily):
        if family is None:
            raise ValueError("Shape family selectors are not applicable here")
        return [item for item in items if family(item) == selector]
    if callable(selector):
        return [item for item in items
                if all(selector(*X) for X in points(item))]
    if _is_id_list(selector):
        return [items[int(i)] for i in selector]
    raise TypeError(f"Invalid selector: {selector!r}")


class Domain:
    """
    Finite element domain.

    Attributes:
        env: ModelEnv
        nodes: list of Node
        elems: list of Element
        faces: boundary faces (edges in 2D) as Facet
        edges: boundary edges in 3D as Facet
        ndofs: number of equations
        ext_loads: external loads on free dofs at the last committed increment
        loggers: registered loggers
        node_data: dict field -> nodal array
        elem_data: dict field -> element array
    """

    def __init__(self, mesh: Mesh, materials: Sequence[Tuple[Selector, Material]],
                 modeltype: str = "general", thickness: float = 1.0,
                 verbose: bool = False, **params):
        """
        Build the domain.

        Args:
            mesh: Mesh instance
            materials: ordered (selector, material) bindings
            modeltype: 'general', 'plane_stress', 'plane_strain' or 'axisymmetric'
            thickness: thickness for plane models
            verbose: log the domain summary at INFO level
            **params: extra numeric parameters stored in env.params
        """
        self.verbose = verbose
        self.env = ModelEnv(
            ndim=mesh.ndim, modeltype=modeltype, thickness=thickness,
            params={k: v for k, v in params.items() if isinstance(v, (int, float))},
        )

        self.nodes: List[Node] = [
            Node(X, tag=mesh.point_tags[i], id=i) for i, X in enumerate(mesh.points)
        ]

        cell_mats = self._bind_materials(mesh, materials)
        self.elems: List[Element] = [
            self._new_element(cell, cell_mats[cell.id]) for cell in mesh.cells
        ]

        for cell in mesh.cells:
            self.elems[cell.id].linked_ids = list(cell.linked_cells)

        self.faces = [Facet(f.shape, f.node_ids, tag=f.tag, owner_id=f.owner_id, id=i)
                      for i, f in enumerate(mesh.faces)]
        self.edges = [Facet(e.shape, e.node_ids, tag=e.tag, owner_id=e.owner_id, id=i)
                      for i, e in enumerate(mesh.edges)]

        # Dofs and integration points
        ip_id = 0
        for cell, elem in zip(mesh.cells, self.elems):
            elem.configure_dofs()
            elem.configure_ips(cell.nips)
            for ip in elem.ips:
                ip.id = ip_id
                ip_id += 1

        self.ndofs = self._number_equations()
        self.ext_loads = np.zeros(self.ndofs)

        for elem in self.elems:
            elem.initialize()

        self.loggers: List[Any] = []
        self.node_data: Dict[str, np.ndarray] = {}
        self.elem_data: Dict[str, np.ndarray] = {}

        self.info()

    # Construction
    # ============

    def _bind_materials(self, mesh: Mesh,
                        materials: Sequence[Tuple[Selector, Material]]) -> List[Optional[Material]]:
        cell_mats: List[Optional[Material]] = [None] * mesh.n_cells

        for selector, mat in materials:
            if not isinstance(mat, Material):
                raise ConstructionError(f"Invalid material binding: {mat!r}")
            cells = select(mesh.cells, selector,
                           points=lambda c: mesh.points[c.node_ids],
                           family=lambda c: c.shape.family)
            if not cells:
                logger.warning("Binding %s to an empty list of cells (selector: %r)",
                               type(mat).__name__, selector)
            for cell in cells:
                if cell_mats[cell.id] is not None:
                    logger.debug("Cell %d matched by several bindings; %s replaces %s",
                                 cell.id, type(mat).__name__, type(cell_mats[cell.id]).__name__)
                cell_mats[cell.id] = mat

        missing = sorted({cell.shape.name for cell in mesh.cells if cell_mats[cell.id] is None})
        if missing:
            raise ConstructionError(
                f"Missing material definition for cells with shape: {', '.join(missing)}"
            )
        return cell_mats

    def _new_element(self, cell, mat: Material) -> Element:
        if cell.embedded:
            etype = mat.embedded_element_type
            if etype is None:
                raise ConstructionError(
                    f"Material {type(mat).__name__} cannot be used in embedded cell {cell.id}"
                )
        else:
            etype = mat.element_type
            if etype is None:
                raise ConstructionError(f"Material {type(mat).__name__} has no element type")

        if etype.shape_family != cell.shape.family:
            raise ConstructionError(
                f"Material {type(mat).__name__} cannot be used with shape "
                f"{cell.shape.name} (cell id: {cell.id})"
            )
        return etype(cell.shape, cell.node_ids, mat, self.env, self.nodes,
                     id=cell.id, tag=cell.tag)

    def _number_equations(self) -> int:
        eq_id = 0
        for node in self.nodes:
            for dof in node.dofs:
                dof.eq_id = eq_id
                eq_id += 1
        return eq_id

    # Queries
    # =======

    @property
    def dofs(self) -> List[Dof]:
        """All dofs in equation order."""
        return [dof for node in self.nodes for dof in node.dofs]

    @property
    def ips(self) -> List[Ip]:
        """All integration points in id order."""
        return [ip for elem in self.elems for ip in elem.ips]

    def select_nodes(self, selector: Selector = None) -> List[Node]:
        """Nodes by tag, coordinate predicate or index list."""
        return select(self.nodes, selector, points=lambda n: [n.coord])

    def select_elems(self, selector: Selector = None) -> List[Element]:
        """Elements by tag, shape family, coordinate predicate or index list."""
        return select(self.elems, selector,
                      points=lambda e: [self.nodes[i].coord for i in e.node_ids],
                      family=lambda e: e.shape.family)

    def select_faces(self, selector: Selector = None) -> List[Facet]:
        """Boundary faces by tag, coordinate predicate or index list."""
        return select(self.faces, selector,
                      points=lambda f: [self.nodes[i].coord for i in f.node_ids])

    def select_edges(self, selector: Selector = None) -> List[Facet]:
        """Boundary edges (3D) by tag, coordinate predicate or index list."""
        return select(self.edges, selector,
                      points=lambda f: [self.nodes[i].coord for i in f.node_ids])

    def select_ips(self, selector: Selector = None) -> List[Ip]:
        """Integration points by tag, coordinate predicate or index list."""
        return select(self.ips, selector, points=lambda ip: [ip.coord])

    def info(self) -> None:
        """Log a summary of the domain."""
        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(level, "%dD domain, %s model: %d nodes, %d elements, %d faces, "
                   "%d edges, %d dofs, %d ips",
                   self.env.ndim, self.env.modeltype, len(self.nodes), len(self.elems),
                   len(self.faces), len(self.edges), self.ndofs, len(self.ips))

    # Loggers
    # =======

    def set_loggers(self, loggers: Sequence[Tuple[Selector, Any]]) -> None:
        """
        Register loggers.

        Args:
            loggers: (selector, logger) pairs
        """
        self.loggers = []
        for selector, log in loggers:
            log.bind(self, selector)
            self.loggers.append(log)

    def update_single_loggers(self) -> None:
        """Record the current state in single (node or ip) loggers."""
        for log in self.loggers:
            if not log.composed:
                log.update()

    def update_composed_loggers(self) -> None:
        """Record the current state in group loggers."""
        for log in self.loggers:
            if log.composed:
                log.update()

    # Output
    # ======

    def update_output_data(self) -> None:
        """
        Rebuild ``node_data`` and ``elem_data``.

        Nodal tables hold the dof values, the recovered integration point
        fields and the vector fields 'U' (and 'V') when available.
        Recovered fields never replace dof values with the same name.
        """
        nnodes = len(self.nodes)
        node_data: Dict[str, np.ndarray] = {}

        for node in self.nodes:
            for dof in node.dofs:
                for field in dof.vals:
                    if field not in node_data:
                        node_data[field] = np.zeros(nnodes)
        for node in self.nodes:
            for dof in node.dofs:
                for field, val in dof.vals.items():
                    node_data[field][node.id] = val

        for field, vals in recover_node_fields(self).items():
            if field not in node_data:
                node_data[field] = vals

        for name, keys in (('U', ('ux', 'uy', 'uz')), ('V', ('vx', 'vy', 'vz'))):
            if keys[0] in node_data:
                node_data[name] = np.column_stack([
                    node_data.get(key, np.zeros(nnodes)) for key in keys
                ])

        nelems = len(self.elems)
        all_vals = [elem.output_values() for elem in self.elems]
        elem_data: Dict[str, np.ndarray] = {}
        for e, vals in enumerate(all_vals):
            for field, val in vals.items():
                if field not in elem_data:
                    elem_data[field] = np.zeros(nelems)
                elem_data[field][e] = val

        self.node_data = node_data
        self.elem_data = elem_data

    def __repr__(self) -> str:
        return (f"Domain(ndim={self.env.ndim}, nodes={len(self.nodes)}, "
                f"elems={len(self.elems)}, ndofs={self.ndofs})")
