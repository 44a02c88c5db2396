"""FastAPI routes for layout computation."""

from fastapi import APIRouter, Depends

from treechat.layout.schemas import LayoutOptions, LayoutRequest, LayoutResult
from treechat.layout.service import LayoutService

router = APIRouter(prefix="/api/layout", tags=["layout"])


def get_layout_service() -> LayoutService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("LayoutService not initialized")


@router.post("")
async def calculate_layout(
    request: LayoutRequest,
    service: LayoutService = Depends(get_layout_service),
) -> LayoutResult:
    options = LayoutOptions(direction=request.direction, density=request.density)
    return service.calculate_layout(request.nodes, request.edges, options)


@router.get("/engines")
async def list_layout_engines(
    service: LayoutService = Depends(get_layout_service),
) -> dict:
    return {"engines": service.available_engines(), "current": service.engine_name}
