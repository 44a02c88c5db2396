"""Layout orchestration: pinned/unpinned split, engine call, grid fallback.

Layout is a UX enhancement. calculate_layout always returns a complete
position map, whatever the engine does.
"""

import logging
import time

from treechat.layout.config import DEFAULT_ENGINE, performance_target_ms
from treechat.layout.engines.grid import GridLayoutEngine
from treechat.layout.engines.registry import create_engine, list_engines
from treechat.layout.schemas import (
    LayoutEdge,
    LayoutMetadata,
    LayoutNode,
    LayoutOptions,
    LayoutResult,
    Position,
)

logger = logging.getLogger(__name__)

NO_ENGINE = "none"


class LayoutService:
    """Runs a named layout engine over the unpinned part of a tree.

    A fresh engine instance is created per call, so one service can serve
    concurrent requests for different conversations.
    """

    def __init__(
        self, engine: str = DEFAULT_ENGINE, config: LayoutOptions | None = None,
    ) -> None:
        self._config = config or LayoutOptions()
        self._engine_name = DEFAULT_ENGINE
        self._fallback = GridLayoutEngine()
        self.set_engine(engine)

    @property
    def engine_name(self) -> str:
        return self._engine_name

    def set_engine(self, engine_name: str) -> None:
        """Select the engine by name. Unknown names fall back to the default."""
        if engine_name not in list_engines():
            logger.warning(
                "Unknown layout engine: %s. Available engines: %s",
                engine_name, ", ".join(list_engines()),
            )
            engine_name = DEFAULT_ENGINE
        self._engine_name = engine_name

    def available_engines(self) -> list[str]:
        return list_engines()

    def update_config(self, **changes: str) -> LayoutOptions:
        self._config = LayoutOptions.model_validate(
            {**self._config.model_dump(), **changes},
        )
        return self.get_config()

    def get_config(self) -> LayoutOptions:
        return self._config.model_copy()

    def calculate_layout(
        self,
        nodes: list[LayoutNode],
        edges: list[LayoutEdge],
        options: LayoutOptions | None = None,
    ) -> LayoutResult:
        """Positions for every node. Pinned nodes keep their stored x, y.

        The engine sees only unpinned nodes and the edges between them. If
        it raises, the unpinned nodes get the grid fallback and the result
        carries success=False.
        """
        start = time.perf_counter()
        layout_options = options or self._config

        pinned = [n for n in nodes if n.is_pinned]
        unpinned = [n for n in nodes if not n.is_pinned]
        pinned_positions = {n.id: Position(x=n.x, y=n.y) for n in pinned}

        if not unpinned:
            return LayoutResult(
                positions=pinned_positions,
                success=True,
                metadata=self._metadata(nodes, pinned, unpinned, start, NO_ENGINE),
            )

        unpinned_ids = {n.id for n in unpinned}
        layout_edges = [
            e for e in edges
            if e.source in unpinned_ids and e.target in unpinned_ids
        ]

        try:
            engine = create_engine(
                self._engine_name,
                direction=layout_options.direction,
                density=layout_options.density,
            )
            computed = engine.calculate_layout(unpinned, layout_edges)
        except Exception as e:
            logger.exception(
                "Layout calculation failed with engine %r; using grid fallback",
                self._engine_name,
            )
            positions = self._fallback.calculate_layout(unpinned, [])
            positions.update(pinned_positions)
            return LayoutResult(
                positions=positions,
                success=False,
                error=str(e),
                metadata=self._metadata(
                    nodes, pinned, unpinned, start, self._fallback.name,
                ),
            )

        positions = {
            node_id: position
            for node_id, position in computed.items()
            if node_id not in pinned_positions
        }
        positions.update(pinned_positions)

        metadata = self._metadata(nodes, pinned, unpinned, start, engine.name)
        self._check_performance_targets(len(nodes), metadata.calculation_time_ms)
        return LayoutResult(positions=positions, success=True, metadata=metadata)

    @staticmethod
    def _metadata(
        nodes: list[LayoutNode],
        pinned: list[LayoutNode],
        unpinned: list[LayoutNode],
        start: float,
        engine_used: str,
    ) -> LayoutMetadata:
        return LayoutMetadata(
            node_count=len(nodes),
            pinned_count=len(pinned),
            unpinned_count=len(unpinned),
            calculation_time_ms=(time.perf_counter() - start) * 1000,
            engine_used=engine_used,
        )

    @staticmethod
    def _check_performance_targets(node_count: int, elapsed_ms: float) -> None:
        target = performance_target_ms(node_count)
        if elapsed_ms > target:
            logger.warning(
                "Layout calculation took %.2fms for %d nodes (target: %.0fms)",
                elapsed_ms, node_count, target,
            )
