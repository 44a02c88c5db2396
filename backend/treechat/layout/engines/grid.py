"""Deterministic square-grid layout. Used as the fallback when an engine fails."""

import math

from treechat.layout.config import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    HORIZONTAL_PADDING,
    VERTICAL_PADDING,
)
from treechat.layout.engines.base import LayoutEngine
from treechat.layout.schemas import LayoutEdge, LayoutNode, Position


class GridLayoutEngine(LayoutEngine):
    """Places nodes row by row in input order. Ignores edges and never fails."""

    name = "grid"

    def calculate_layout(
        self, nodes: list[LayoutNode], edges: list[LayoutEdge],
    ) -> dict[str, Position]:
        if not nodes:
            return {}
        cols = math.ceil(math.sqrt(len(nodes)))
        return {
            node.id: Position(
                x=(i % cols) * (DEFAULT_NODE_WIDTH + HORIZONTAL_PADDING),
                y=(i // cols) * (DEFAULT_NODE_HEIGHT + VERTICAL_PADDING),
            )
            for i, node in enumerate(nodes)
        }
