"""Rank-based (layered) tree layout.

Pipeline:
  1. Build a DiGraph and reject edges with unknown endpoints.
  2. Cycle check (DFS with an explicit recursion stack).
  3. Rank assignment: longest path from the sources.
  4. Sibling-axis placement: every subtree owns a disjoint interval; parents
     are centered over their children.
  5. Rank-axis placement: one band per rank, as thick as its thickest node.
  6. Orientation, then center -> top-left conversion.

Coordinates are computed in an abstract (sibling, rank) frame and mapped to
(x, y) at the end, so all four directions share one code path.
"""

import logging
from statistics import fmean

import networkx as nx

from treechat.layout.config import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    LAYOUT_MARGIN,
    rank_separation,
    sibling_separation,
)
from treechat.layout.engines.base import (
    LayoutEngine,
    StructuralError,
    UnknownEdgeEndpointError,
)
from treechat.layout.schemas import LayoutEdge, LayoutNode, Position

logger = logging.getLogger(__name__)


class RankLayoutEngine(LayoutEngine):
    """Default engine: ranks by depth, packs subtrees side by side."""

    name = "rank"

    def calculate_layout(
        self, nodes: list[LayoutNode], edges: list[LayoutEdge],
    ) -> dict[str, Position]:
        if not nodes:
            return {}

        try:
            return self._layout(nodes, edges)
        except Exception:
            logger.exception(
                "Rank layout failed (%d nodes, %d edges, direction=%s)",
                len(nodes), len(edges), self.direction,
            )
            raise

    def _layout(
        self, nodes: list[LayoutNode], edges: list[LayoutEdge],
    ) -> dict[str, Position]:
        sizes = {
            n.id: (n.width or DEFAULT_NODE_WIDTH, n.height or DEFAULT_NODE_HEIGHT)
            for n in nodes
        }
        graph = self._build_graph(nodes, edges)
        self._validate_acyclic(graph)
        ranks = self._assign_ranks(graph)

        vertical = self.direction in ("TB", "BT")
        # (sibling-axis dimension, rank-axis dimension) per node
        dims = {
            node_id: (w, h) if vertical else (h, w)
            for node_id, (w, h) in sizes.items()
        }
        sibling_sep = sibling_separation(
            fmean(d[0] for d in dims.values()), self.density,
        )
        rank_sep = rank_separation(
            fmean(d[1] for d in dims.values()), self.density, self.direction,
        )
        logger.debug(
            "Rank layout: %d nodes, direction=%s, density=%s, "
            "sibling_sep=%.1f, rank_sep=%.1f",
            len(sizes), self.direction, self.density, sibling_sep, rank_sep,
        )

        sibling_centers = self._place_siblings(graph, dims, sibling_sep)
        rank_centers, rank_extent = self._place_ranks(ranks, dims, rank_sep)

        positions: dict[str, Position] = {}
        for node_id, (w, h) in sizes.items():
            s = sibling_centers[node_id]
            r = rank_centers[ranks[node_id]]
            if self.direction in ("BT", "RL"):
                r = rank_extent - r
            cx, cy = (s, r) if vertical else (r, s)
            positions[node_id] = Position(x=cx - w / 2, y=cy - h / 2)
        return positions

    @staticmethod
    def _build_graph(nodes: list[LayoutNode], edges: list[LayoutEdge]) -> nx.DiGraph:
        graph = nx.DiGraph()
        graph.add_nodes_from(n.id for n in nodes)
        for edge in edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in graph:
                    raise UnknownEdgeEndpointError(edge.source, edge.target, endpoint)
            graph.add_edge(edge.source, edge.target)
        return graph

    @staticmethod
    def _validate_acyclic(graph: nx.DiGraph) -> None:
        """Raise StructuralError on the first cycle found.

        Iterative so that very deep conversations don't hit the recursion limit.
        """
        visited: set[str] = set()
        on_stack: set[str] = set()

        for start in graph.nodes:
            if start in visited:
                continue
            visited.add(start)
            on_stack.add(start)
            stack = [(start, iter(graph.successors(start)))]
            while stack:
                node, successors = stack[-1]
                for child in successors:
                    if child in on_stack:
                        raise StructuralError(start)
                    if child not in visited:
                        visited.add(child)
                        on_stack.add(child)
                        stack.append((child, iter(graph.successors(child))))
                        break
                else:
                    on_stack.discard(node)
                    stack.pop()

    @staticmethod
    def _assign_ranks(graph: nx.DiGraph) -> dict[str, int]:
        """rank(v) = max(rank(u) + 1) over predecessors u; sources get 0."""
        ranks: dict[str, int] = {}
        for node in nx.topological_sort(graph):
            ranks[node] = max(
                (ranks[pred] + 1 for pred in graph.predecessors(node)), default=0,
            )
        return ranks

    @staticmethod
    def _place_siblings(
        graph: nx.DiGraph,
        dims: dict[str, tuple[float, float]],
        sibling_sep: float,
    ) -> dict[str, float]:
        """Sibling-axis centers. Each subtree occupies its own interval.

        A node's first incoming edge names its layout parent, which turns a
        DAG into a spanning forest. Roots keep input order, children keep
        edge order.
        """
        children: dict[str, list[str]] = {node: [] for node in graph.nodes}
        roots: list[str] = []
        for node in graph.nodes:
            parent = next(iter(graph.predecessors(node)), None)
            if parent is None:
                roots.append(node)
            else:
                children[parent].append(node)

        # Pre-order: parents before descendants.
        order: list[str] = []
        stack = list(reversed(roots))
        while stack:
            node = stack.pop()
            order.append(node)
            stack.extend(reversed(children[node]))

        span: dict[str, float] = {}  # children block width
        extent: dict[str, float] = {}  # whole subtree width
        for node in reversed(order):
            kids = children[node]
            span[node] = (
                sum(extent[k] for k in kids) + sibling_sep * (len(kids) - 1)
                if kids else 0.0
            )
            extent[node] = max(dims[node][0], span[node])

        start: dict[str, float] = {}
        cursor = LAYOUT_MARGIN
        for root in roots:
            start[root] = cursor
            cursor += extent[root] + sibling_sep

        centers: dict[str, float] = {}
        for node in order:
            centers[node] = start[node] + extent[node] / 2
            child_cursor = start[node] + (extent[node] - span[node]) / 2
            for kid in children[node]:
                start[kid] = child_cursor
                child_cursor += extent[kid] + sibling_sep
        return centers

    @staticmethod
    def _place_ranks(
        ranks: dict[str, int],
        dims: dict[str, tuple[float, float]],
        rank_sep: float,
    ) -> tuple[dict[int, float], float]:
        """Rank-axis band centers, plus the total extent including margins."""
        thickness: dict[int, float] = {}
        for node_id, rank in ranks.items():
            thickness[rank] = max(thickness.get(rank, 0.0), dims[node_id][1])

        centers: dict[int, float] = {}
        cursor = LAYOUT_MARGIN
        for rank in range(max(thickness) + 1):
            band = thickness.get(rank, 0.0)
            centers[rank] = cursor + band / 2
            cursor += band + rank_sep
        return centers, cursor - rank_sep + LAYOUT_MARGIN
