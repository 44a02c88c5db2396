"""Layout engine registry: maps engine names to engine classes."""

from treechat.layout.engines.base import LayoutEngine
from treechat.layout.engines.grid import GridLayoutEngine
from treechat.layout.engines.rank import RankLayoutEngine

_BUILTIN_ENGINES: dict[str, type[LayoutEngine]] = {
    RankLayoutEngine.name: RankLayoutEngine,
    GridLayoutEngine.name: GridLayoutEngine,
}

_engines: dict[str, type[LayoutEngine]] = dict(_BUILTIN_ENGINES)


def register_engine(name: str, engine_cls: type[LayoutEngine]) -> None:
    """Register an engine class by name. Replaces any existing entry."""
    _engines[name] = engine_cls


def get_engine_class(name: str) -> type[LayoutEngine]:
    """Get a registered engine class. Raises EngineNotFoundError if not found."""
    try:
        return _engines[name]
    except KeyError:
        available = ", ".join(_engines.keys()) or "(none)"
        raise EngineNotFoundError(
            f"Layout engine '{name}' not registered. Available: {available}"
        )


def create_engine(name: str, **config: str) -> LayoutEngine:
    return get_engine_class(name)(**config)


def list_engines() -> list[str]:
    """Return names of all registered engines."""
    return list(_engines.keys())


def reset_engines() -> None:
    """Drop custom registrations, keeping the built-ins. Used in tests."""
    _engines.clear()
    _engines.update(_BUILTIN_ENGINES)


class EngineNotFoundError(Exception):
    pass
