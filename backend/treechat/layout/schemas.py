"""Request and response schemas for layout computation."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["TB", "LR", "BT", "RL"]
Density = Literal["compact", "normal", "spacious"]


class Position(BaseModel):
    """Top-left corner of a node box."""

    x: float
    y: float


class LayoutNode(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: str
    x: float = 0.0
    y: float = 0.0
    width: float | None = Field(default=None, gt=0)  # None -> default width
    height: float | None = Field(default=None, gt=0)  # measured render height; None -> default
    is_pinned: bool = False


class LayoutEdge(BaseModel):
    source: str  # parent
    target: str  # child


class LayoutOptions(BaseModel):
    direction: Direction = "TB"
    density: Density = "normal"


class LayoutRequest(LayoutOptions):
    nodes: list[LayoutNode] = Field(default_factory=list)
    edges: list[LayoutEdge] = Field(default_factory=list)


class LayoutMetadata(BaseModel):
    node_count: int
    pinned_count: int = 0
    unpinned_count: int = 0
    calculation_time_ms: float
    engine_used: str


class LayoutResult(BaseModel):
    positions: dict[str, Position]
    success: bool
    error: str | None = None
    metadata: LayoutMetadata
