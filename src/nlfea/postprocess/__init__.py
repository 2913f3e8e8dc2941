"""
Postprocessing Module
=====================

Loggers and visualization.
"""

from .loggers import (
    Logger,
    NodeLogger,
    IpLogger,
    GroupLogger,
    NodeGroupLogger,
    IpGroupLogger,
    Snapshot,
)
from .visualization import (
    plot_domain,
    plot_node_field,
    plot_history,
    plot_increments,
)

__all__ = [
    "Logger",
    "NodeLogger",
    "IpLogger",
    "GroupLogger",
    "NodeGroupLogger",
    "IpGroupLogger",
    "Snapshot",
    "plot_domain",
    "plot_node_field",
    "plot_history",
    "plot_increments",
]
