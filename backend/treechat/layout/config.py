"""Layout constants and spacing math shared by the layout engines."""

from typing import NamedTuple

from treechat.models import NODE_WIDTH_DEFAULT

DEFAULT_NODE_WIDTH = NODE_WIDTH_DEFAULT
DEFAULT_NODE_HEIGHT = 100.0

# Fixed gaps added to a node's dimension before the density multiplier.
HORIZONTAL_PADDING = 40.0
VERTICAL_PADDING = 20.0
SIBLING_PADDING = HORIZONTAL_PADDING
RANK_PADDING = VERTICAL_PADDING

LAYOUT_MARGIN = 20.0

# Extra rank spacing in left-right layouts so connecting arrows stay legible.
LR_RANK_MULTIPLIER = 1.8

DIRECTIONS = ("TB", "LR", "BT", "RL")
DEFAULT_DIRECTION = "TB"
DEFAULT_DENSITY = "normal"
DEFAULT_ENGINE = "rank"


class DensityPreset(NamedTuple):
    sibling_multiplier: float
    rank_multiplier: float


DENSITY_PRESETS: dict[str, DensityPreset] = {
    "compact": DensityPreset(sibling_multiplier=0.8, rank_multiplier=0.7),
    "normal": DensityPreset(sibling_multiplier=1.0, rank_multiplier=1.0),
    "spacious": DensityPreset(sibling_multiplier=1.3, rank_multiplier=1.5),
}

# Advisory calculation-time targets (ms) by tree size.
SMALL_TREE_NODES = 50
MEDIUM_TREE_NODES = 100
PERFORMANCE_TARGETS_MS = {
    "small": 50.0,
    "medium": 100.0,
    "large": 500.0,
}


def sibling_separation(dimension: float, density: str = DEFAULT_DENSITY) -> float:
    """Gap between neighbouring subtrees along the breadth axis."""
    preset = DENSITY_PRESETS[density]
    return (dimension + SIBLING_PADDING) * preset.sibling_multiplier


def rank_separation(
    dimension: float,
    density: str = DEFAULT_DENSITY,
    direction: str = DEFAULT_DIRECTION,
) -> float:
    """Gap between consecutive rank bands along the depth axis."""
    preset = DENSITY_PRESETS[density]
    separation = (dimension + RANK_PADDING) * preset.rank_multiplier
    if direction == "LR":
        separation *= LR_RANK_MULTIPLIER
    return separation


def performance_target_ms(node_count: int) -> float:
    if node_count < SMALL_TREE_NODES:
        return PERFORMANCE_TARGETS_MS["small"]
    if node_count < MEDIUM_TREE_NODES:
        return PERFORMANCE_TARGETS_MS["medium"]
    return PERFORMANCE_TARGETS_MS["large"]
