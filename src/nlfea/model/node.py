"""
Nodes and Degrees of Freedom
============================
"""

import numpy as np
from typing import Dict, List, Sequence


class Dof:
    """
    Degree of freedom of a node.

    A Dof pairs an essential variable (e.g. 'ux') with its natural
    counterpart (e.g. 'fx'). Both values are stored in ``vals``.

    Attributes:
        name: essential variable name
        natname: natural variable name
        eq_id: equation number in the global system (-1 if unassigned)
        prescribed: True while an essential condition binds the dof
        vals: ordered mapping name -> value
    """

    __slots__ = ('name', 'natname', 'eq_id', 'prescribed', 'vals')

    def __init__(self, name: str, natname: str):
        self.name = name
        self.natname = natname
        self.eq_id = -1
        self.prescribed = False
        self.vals: Dict[str, float] = {name: 0.0, natname: 0.0}

    @property
    def value(self) -> float:
        """Essential value."""
        return self.vals[self.name]

    @property
    def natural_value(self) -> float:
        """Natural value."""
        return self.vals[self.natname]

    def copy(self) -> 'Dof':
        dof = Dof(self.name, self.natname)
        dof.eq_id = self.eq_id
        dof.prescribed = self.prescribed
        dof.vals = dict(self.vals)
        return dof

    def __repr__(self) -> str:
        return f"Dof({self.name}/{self.natname}, eq_id={self.eq_id})"


def round_coord(value: float) -> float:
    """Round a coordinate to 8 decimals dropping the sign of zero."""
    return round(float(value), 8) + 0.0


class Node:
    """
    Mesh node owning its degrees of freedom.

    Coordinates are rounded to 8 decimals so equal points hash equally.

    Attributes:
        id: node index in the domain
        coord: shape (3,), coordinates
        tag: user tag
        dofs: ordered list of Dof
        dofdict: maps essential and natural names to Dof
    """

    def __init__(self, coord: Sequence[float], tag: str = '', id: int = -1):
        if not 1 <= len(coord) <= 3:
            raise ValueError("Node coordinates must have 1 to 3 components")
        X = np.zeros(3)
        X[:len(coord)] = [round_coord(x) for x in coord]
        X.flags.writeable = False
        self._coord = X
        self.tag = tag
        self.id = id
        self.dofs: List[Dof] = []
        self.dofdict: Dict[str, Dof] = {}

    @property
    def coord(self) -> np.ndarray:
        """Read-only coordinates."""
        return self._coord

    def set_coord(self, coord: Sequence[float]) -> None:
        """Explicitly reposition the node."""
        X = np.zeros(3)
        X[:len(coord)] = [round_coord(x) for x in coord]
        X.flags.writeable = False
        self._coord = X

    def add_dof(self, name: str, natname: str) -> Dof:
        """
        Register a dof. Registering an existing name is a no-op.

        Args:
            name: essential variable name
            natname: natural variable name

        Returns:
            the registered Dof
        """
        if name not in self.dofdict:
            dof = Dof(name, natname)
            self.dofs.append(dof)
            self.dofdict[name] = dof
            self.dofdict[natname] = dof
        return self.dofdict[name]

    def has_dof(self, name: str) -> bool:
        """True if a dof is registered under the essential or natural name."""
        return name in self.dofdict

    def __getitem__(self, name: str) -> Dof:
        return self.dofdict[name]

    def values(self) -> Dict[str, float]:
        """
        Node coordinates and dof values.

        Returns:
            dictionary with 'x', 'y', 'z' and every dof value
        """
        vals = {'x': self.coord[0], 'y': self.coord[1], 'z': self.coord[2]}
        for dof in self.dofs:
            vals.update(dof.vals)
        return vals

    def __hash__(self) -> int:
        return hash((self.coord[0] + 1, self.coord[1] + 2, self.coord[2] + 3))

    def __eq__(self, other) -> bool:
        return self is other

    def __repr__(self) -> str:
        return f"Node(id={self.id}, coord={tuple(self.coord)}, dofs={[d.name for d in self.dofs]})"
