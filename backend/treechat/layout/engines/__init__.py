"""Pluggable layout engines, looked up by name."""

from treechat.layout.engines.base import (
    LayoutEngine,
    LayoutEngineError,
    StructuralError,
    UnknownEdgeEndpointError,
)
from treechat.layout.engines.grid import GridLayoutEngine
from treechat.layout.engines.rank import RankLayoutEngine

__all__ = [
    "GridLayoutEngine",
    "LayoutEngine",
    "LayoutEngineError",
    "RankLayoutEngine",
    "StructuralError",
    "UnknownEdgeEndpointError",
]
