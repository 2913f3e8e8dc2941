"""
Loggers
=======

Record node and integration point values during an analysis.

Single loggers (NodeLogger, IpLogger) follow one entity and append a row
at every committed increment. Composed loggers (NodeGroupLogger,
IpGroupLogger) follow a group of entities and store a snapshot table of
the whole group at every output point of a stage.

Usage:
    log = NodeLogger()
    domain.set_loggers([(lambda x, y, z: x == 1.0, log)])
    solve(domain, bcs, nincs=10)
    log.table['ux']
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from ..model.domain import Domain, Selector

logger = logging.getLogger(__name__)


def _stack(rows: List[Dict[str, float]]) -> Dict[str, np.ndarray]:
    """Turn a list of rows into a column table; missing entries are NaN."""
    keys: List[str] = []
    for row in rows:
        for key in row:
            if key not in keys:
                keys.append(key)
    return {key: np.array([row.get(key, np.nan) for row in rows]) for key in keys}


def _save_table(table: Dict[str, np.ndarray], filename: Optional[str]) -> None:
    if not filename:
        raise ValueError("No filename given")
    keys = list(table)
    data = np.column_stack([table[key] for key in keys]) if keys else np.zeros((0, 0))
    np.savetxt(filename, data, header=' '.join(keys), comments='', fmt='%.10e')


class Logger:
    """
    Base logger.

    Attributes:
        composed: True for group loggers
        domain: bound Domain (None before binding)
    """

    composed = False

    def __init__(self, filename: Optional[str] = None):
        """
        Args:
            filename: optional file written by ``save()`` when no name is given
        """
        self.filename = filename
        self.domain: Optional['Domain'] = None

    def bind(self, domain: 'Domain', selector: 'Selector') -> None:
        raise NotImplementedError

    def update(self) -> None:
        raise NotImplementedError

    def _header(self) -> Dict[str, float]:
        env = self.domain.env
        return {'stage': float(env.stage), 'inc': float(env.inc), 't': env.t}

    def save(self, filename: Optional[str] = None) -> None:
        raise NotImplementedError


class NodeLogger(Logger):
    """Follow the values of one node."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__(filename)
        self.node = None
        self.rows: List[Dict[str, float]] = []

    def bind(self, domain: 'Domain', selector: 'Selector') -> None:
        nodes = domain.select_nodes(selector)
        if not nodes:
            raise ValueError(f"NodeLogger: no node matches selector {selector!r}")
        if len(nodes) > 1:
            logger.warning("NodeLogger: %d nodes match selector %r; using node %d",
                           len(nodes), selector, nodes[0].id)
        self.domain = domain
        self.node = nodes[0]

    def update(self) -> None:
        row = self._header()
        row.update(self.node.values())
        self.rows.append(row)

    @property
    def table(self) -> Dict[str, np.ndarray]:
        """Column table of the recorded rows."""
        return _stack(self.rows)

    def save(self, filename: Optional[str] = None) -> None:
        """
        Write the table as text (one column per field).

        Args:
            filename: output filename
        """
        _save_table(self.table, filename or self.filename)


class IpLogger(Logger):
    """Follow the material output of one integration point."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__(filename)
        self.ip = None
        self.rows: List[Dict[str, float]] = []

    def bind(self, domain: 'Domain', selector: 'Selector') -> None:
        ips = domain.select_ips(selector)
        if not ips:
            raise ValueError(f"IpLogger: no integration point matches selector {selector!r}")
        if len(ips) > 1:
            logger.warning("IpLogger: %d ips match selector %r; using ip %d",
                           len(ips), selector, ips[0].id)
        self.domain = domain
        self.ip = ips[0]

    def update(self) -> None:
        ip = self.ip
        row = self._header()
        row.update(x=ip.coord[0], y=ip.coord[1], z=ip.coord[2])
        row.update(self.domain.elems[ip.owner_id].mat.output_values(ip.current_state))
        self.rows.append(row)

    @property
    def table(self) -> Dict[str, np.ndarray]:
        """Column table of the recorded rows."""
        return _stack(self.rows)

    def save(self, filename: Optional[str] = None) -> None:
        _save_table(self.table, filename or self.filename)


@dataclass
class Snapshot:
    """Group table at one output point."""
    stage: int
    inc: int
    t: float
    table: Dict[str, np.ndarray] = field(default_factory=dict)


class GroupLogger(Logger):
    """
    Base group logger.

    Entities keep their selection order; the column 's' holds the
    cumulative distance from the first entity.
    """

    composed = True

    def __init__(self, filename: Optional[str] = None):
        super().__init__(filename)
        self.items: List[Any] = []
        self.snapshots: List[Snapshot] = []

    def _select(self, domain: 'Domain', selector: 'Selector') -> List[Any]:
        raise NotImplementedError

    def _row(self, item) -> Dict[str, float]:
        raise NotImplementedError

    def _coord(self, item) -> np.ndarray:
        raise NotImplementedError

    def bind(self, domain: 'Domain', selector: 'Selector') -> None:
        items = self._select(domain, selector)
        if not items:
            raise ValueError(f"{type(self).__name__}: selector {selector!r} matches nothing")
        self.domain = domain
        self.items = items

    def update(self) -> None:
        X = np.array([self._coord(item) for item in self.items])
        s = np.concatenate([[0.0], np.cumsum(np.linalg.norm(np.diff(X, axis=0), axis=1))])
        rows = []
        for si, item in zip(s, self.items):
            row = {'s': si}
            row.update(self._row(item))
            rows.append(row)
        env = self.domain.env
        self.snapshots.append(Snapshot(stage=env.stage, inc=env.inc, t=env.t, table=_stack(rows)))

    @property
    def table(self) -> Dict[str, np.ndarray]:
        """Table of the last snapshot."""
        return self.snapshots[-1].table if self.snapshots else {}

    def save(self, filename: Optional[str] = None, index: int = -1) -> None:
        """
        Write one snapshot as text.

        Args:
            filename: output filename
            index: snapshot index (last by default)
        """
        _save_table(self.snapshots[index].table, filename or self.filename)


class NodeGroupLogger(GroupLogger):
    """Values of a group of nodes (e.g. along a line) at output points."""

    def _select(self, domain, selector):
        return domain.select_nodes(selector)

    def _coord(self, node):
        return node.coord

    def _row(self, node):
        return node.values()


class IpGroupLogger(GroupLogger):
    """Material output of a group of integration points at output points."""

    def _select(self, domain, selector):
        return domain.select_ips(selector)

    def _coord(self, ip):
        return ip.coord

    def _row(self, ip):
        row = {'x': ip.coord[0], 'y': ip.coord[1], 'z': ip.coord[2]}
        row.update(self.domain.elems[ip.owner_id].mat.output_values(ip.current_state))
        return row
