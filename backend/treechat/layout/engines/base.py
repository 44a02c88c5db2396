"""Abstract layout engine interface and engine errors."""

import logging
from abc import ABC, abstractmethod

from treechat.layout.config import (
    DEFAULT_DENSITY,
    DEFAULT_DIRECTION,
    DENSITY_PRESETS,
    DIRECTIONS,
)
from treechat.layout.schemas import LayoutEdge, LayoutNode, Position

logger = logging.getLogger(__name__)


class LayoutEngine(ABC):
    """Pure computation: nodes + edges -> top-left positions.

    Engines hold only their direction and density. Nothing else survives
    between calls.
    """

    name: str = ""

    def __init__(
        self, direction: str = DEFAULT_DIRECTION, density: str = DEFAULT_DENSITY,
    ) -> None:
        self.direction = DEFAULT_DIRECTION
        self.density = DEFAULT_DENSITY
        self.set_direction(direction)
        self.set_density(density)

    def set_direction(self, direction: str) -> None:
        """Set the growth direction. Unknown values reset to TB."""
        if direction in DIRECTIONS:
            self.direction = direction
        else:
            logger.warning("Invalid direction: %r. Using default %s.", direction, DEFAULT_DIRECTION)
            self.direction = DEFAULT_DIRECTION

    def set_density(self, density: str) -> None:
        """Set the spacing preset. Unknown values reset to normal."""
        if density in DENSITY_PRESETS:
            self.density = density
        else:
            logger.warning("Invalid density mode: %r. Using %s.", density, DEFAULT_DENSITY)
            self.density = DEFAULT_DENSITY

    @abstractmethod
    def calculate_layout(
        self, nodes: list[LayoutNode], edges: list[LayoutEdge],
    ) -> dict[str, Position]:
        """Compute positions for every node in `nodes`."""
        ...


class LayoutEngineError(Exception):
    pass


class StructuralError(LayoutEngineError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Cycle detected in graph starting from node: {node_id}")


class UnknownEdgeEndpointError(LayoutEngineError):
    def __init__(self, source: str, target: str, missing: str) -> None:
        self.source = source
        self.target = target
        self.missing = missing
        super().__init__(f"Edge {source} -> {target} references unknown node: {missing}")
