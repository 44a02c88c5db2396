"""Tests for the rank-based layout engine and the grid fallback."""

import pytest

from treechat.layout.config import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    LR_RANK_MULTIPLIER,
    rank_separation,
    sibling_separation,
)
from treechat.layout.engines import (
    GridLayoutEngine,
    RankLayoutEngine,
    StructuralError,
    UnknownEdgeEndpointError,
)
from treechat.layout.schemas import LayoutEdge, LayoutNode
from tests.fixtures import layout_chain, layout_tree

BRANCHING = {"r": None, "a": "r", "b": "a", "c": "r"}


def _boxes_overlap(p, q, w=DEFAULT_NODE_WIDTH, h=DEFAULT_NODE_HEIGHT) -> bool:
    return p.x < q.x + w and q.x < p.x + w and p.y < q.y + h and q.y < p.y + h


class TestRankLayoutDirections:
    def test_tb_chain_strictly_descends(self):
        nodes, edges = layout_chain("a", "b", "c", "d", "e")
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        ys = [positions[n].y for n in "abcde"]
        assert ys == sorted(ys)
        assert len(set(ys)) == 5
        assert len({positions[n].x for n in "abcde"}) == 1

    def test_bt_chain_ascends(self):
        nodes, edges = layout_chain("n0", "n1", "n2")
        positions = RankLayoutEngine("BT").calculate_layout(nodes, edges)
        assert positions["n0"].y > positions["n1"].y > positions["n2"].y

    def test_lr_chain_moves_right(self):
        nodes, edges = layout_chain("n0", "n1", "n2")
        positions = RankLayoutEngine("LR").calculate_layout(nodes, edges)
        assert positions["n0"].x < positions["n1"].x < positions["n2"].x
        assert len({positions[n].y for n in ("n0", "n1", "n2")}) == 1

    def test_rl_chain_moves_left(self):
        nodes, edges = layout_chain("n0", "n1", "n2")
        positions = RankLayoutEngine("RL").calculate_layout(nodes, edges)
        assert positions["n0"].x > positions["n1"].x > positions["n2"].x

    @pytest.mark.parametrize("direction", ["TB", "LR", "BT", "RL"])
    def test_siblings_distinct_and_disjoint(self, direction):
        nodes, edges = layout_tree(BRANCHING)
        positions = RankLayoutEngine(direction).calculate_layout(nodes, edges)
        assert set(positions) == set(BRANCHING)
        for first in BRANCHING:
            for second in BRANCHING:
                if first < second:
                    assert not _boxes_overlap(positions[first], positions[second])

    def test_tb_siblings_share_rank(self):
        nodes, edges = layout_tree(BRANCHING)
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        assert positions["a"].y == positions["c"].y
        assert positions["a"].x != positions["c"].x

    def test_parent_centered_over_children(self):
        nodes, edges = layout_tree({"r": None, "a": "r", "c": "r"})
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        assert positions["r"].x == pytest.approx((positions["a"].x + positions["c"].x) / 2)

    def test_separate_roots_do_not_overlap(self):
        nodes, edges = layout_tree({"r1": None, "a": "r1", "r2": None, "b": "r2"})
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        assert positions["r1"].y == positions["r2"].y
        assert not _boxes_overlap(positions["a"], positions["b"])


class TestRankLayoutSizing:
    def test_tall_node_pushes_next_rank(self):
        nodes = [LayoutNode(id="r"), LayoutNode(id="a", height=300), LayoutNode(id="b")]
        edges = [LayoutEdge(source="r", target="a"), LayoutEdge(source="a", target="b")]
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        assert positions["b"].y > positions["a"].y + 300

    def test_wide_siblings_spread_further(self):
        narrow_nodes, edges = layout_tree({"r": None, "a": "r", "c": "r"})
        wide_nodes = [n.model_copy(update={"width": 600}) for n in narrow_nodes]

        narrow = RankLayoutEngine("TB").calculate_layout(narrow_nodes, edges)
        wide = RankLayoutEngine("TB").calculate_layout(wide_nodes, edges)

        assert wide["c"].x - wide["a"].x > narrow["c"].x - narrow["a"].x

    def test_density_changes_spacing(self):
        nodes, edges = layout_chain("n0", "n1")
        compact = RankLayoutEngine("TB", "compact").calculate_layout(nodes, edges)
        spacious = RankLayoutEngine("TB", "spacious").calculate_layout(nodes, edges)
        assert (spacious["n1"].y - spacious["n0"].y) > (compact["n1"].y - compact["n0"].y)

    def test_separation_math(self):
        assert sibling_separation(250, "normal") == 290
        assert rank_separation(100, "compact") == pytest.approx(120 * 0.7)
        assert rank_separation(100, "normal", "LR") == pytest.approx(120 * LR_RANK_MULTIPLIER)


class TestRankLayoutEdgeCases:
    def test_empty_input(self):
        assert RankLayoutEngine().calculate_layout([], []) == {}

    def test_single_node(self):
        positions = RankLayoutEngine().calculate_layout([LayoutNode(id="solo")], [])
        assert set(positions) == {"solo"}

    def test_deterministic(self):
        nodes, edges = layout_tree(BRANCHING)
        engine = RankLayoutEngine("LR", "spacious")
        assert engine.calculate_layout(nodes, edges) == engine.calculate_layout(nodes, edges)

    def test_cycle_raises_structural_error(self):
        nodes = [LayoutNode(id="a"), LayoutNode(id="b")]
        edges = [LayoutEdge(source="a", target="b"), LayoutEdge(source="b", target="a")]
        with pytest.raises(StructuralError):
            RankLayoutEngine().calculate_layout(nodes, edges)

    def test_self_loop_raises_structural_error(self):
        with pytest.raises(StructuralError):
            RankLayoutEngine().calculate_layout(
                [LayoutNode(id="a")], [LayoutEdge(source="a", target="a")],
            )

    def test_unknown_edge_endpoint(self):
        with pytest.raises(UnknownEdgeEndpointError) as exc_info:
            RankLayoutEngine().calculate_layout(
                [LayoutNode(id="a")], [LayoutEdge(source="a", target="ghost")],
            )
        assert exc_info.value.missing == "ghost"

    def test_deep_chain(self):
        ids = [f"n{i}" for i in range(1500)]
        nodes, edges = layout_chain(*ids)
        positions = RankLayoutEngine().calculate_layout(nodes, edges)
        assert positions["n1499"].y > positions["n0"].y

    def test_dag_uses_first_parent(self):
        nodes = [LayoutNode(id=i) for i in ("p1", "p2", "child")]
        edges = [
            LayoutEdge(source="p1", target="child"),
            LayoutEdge(source="p2", target="child"),
        ]
        positions = RankLayoutEngine("TB").calculate_layout(nodes, edges)
        assert positions["child"].y > positions["p1"].y
        assert positions["child"].x == positions["p1"].x

    def test_invalid_options_fall_back(self):
        engine = RankLayoutEngine("diagonal", "cramped")
        assert engine.direction == "TB"
        assert engine.density == "normal"


class TestGridLayout:
    def test_square_grid(self):
        nodes = [LayoutNode(id=f"n{i}") for i in range(5)]
        positions = GridLayoutEngine().calculate_layout(nodes, [])
        assert positions["n0"].model_dump() == {"x": 0, "y": 0}
        assert positions["n1"].model_dump() == {"x": 290, "y": 0}
        assert positions["n2"].model_dump() == {"x": 580, "y": 0}
        assert positions["n3"].model_dump() == {"x": 0, "y": 120}
        assert positions["n4"].model_dump() == {"x": 290, "y": 120}

    def test_ignores_cycles(self):
        nodes = [LayoutNode(id="a"), LayoutNode(id="b")]
        edges = [LayoutEdge(source="a", target="b"), LayoutEdge(source="b", target="a")]
        assert len(GridLayoutEngine().calculate_layout(nodes, edges)) == 2

    def test_empty(self):
        assert GridLayoutEngine().calculate_layout([], []) == {}
