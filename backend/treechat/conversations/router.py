"""FastAPI routes for conversations, nodes, transcripts and conversation layout."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from treechat.conversations.schemas import (
    ChatMessage,
    ConversationDetailResponse,
    ConversationLayoutRequest,
    ConversationSummary,
    CreateConversationRequest,
    CreateNodeRequest,
    NodeResponse,
    SetLastActiveNodeRequest,
    SetPinnedRequest,
    UpdatePositionsRequest,
    UpdateWidthsRequest,
)
from treechat.conversations.service import (
    ConversationNotFoundError,
    InvalidNodeReferenceError,
    InvalidParentError,
    InvalidWidthError,
    NodeNotFoundError,
    NodeStore,
)
from treechat.layout.router import get_layout_service
from treechat.layout.schemas import LayoutOptions, LayoutResult
from treechat.layout.service import LayoutService

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def get_node_store() -> NodeStore:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("NodeStore not initialized")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: CreateConversationRequest,
    store: NodeStore = Depends(get_node_store),
) -> ConversationDetailResponse:
    return await store.create_conversation(request)


@router.get("")
async def list_conversations(
    store: NodeStore = Depends(get_node_store),
) -> list[ConversationSummary]:
    return await store.list_conversations()


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    store: NodeStore = Depends(get_node_store),
) -> ConversationDetailResponse:
    conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}",
        )
    return conversation


@router.patch("/{conversation_id}/last-active-node")
async def set_last_active_node(
    conversation_id: str,
    request: SetLastActiveNodeRequest,
    store: NodeStore = Depends(get_node_store),
) -> ConversationDetailResponse:
    try:
        return await store.set_last_active_node(
            conversation_id, request.last_active_node_id,
        )
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidNodeReferenceError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{conversation_id}/nodes")
async def list_nodes(
    conversation_id: str,
    include_hidden: bool = False,
    store: NodeStore = Depends(get_node_store),
) -> list[NodeResponse]:
    try:
        return await store.get_nodes(conversation_id, include_hidden=include_hidden)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{conversation_id}/nodes", status_code=status.HTTP_201_CREATED)
async def create_node(
    conversation_id: str,
    request: CreateNodeRequest,
    store: NodeStore = Depends(get_node_store),
) -> NodeResponse:
    try:
        return await store.create_node(conversation_id, request)
    except (ConversationNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidParentError, InvalidWidthError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{conversation_id}/nodes/positions")
async def update_positions(
    conversation_id: str,
    request: UpdatePositionsRequest,
    store: NodeStore = Depends(get_node_store),
) -> list[NodeResponse]:
    try:
        return await store.update_positions(conversation_id, request.updates)
    except (ConversationNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{conversation_id}/nodes/widths")
async def update_widths(
    conversation_id: str,
    request: UpdateWidthsRequest,
    store: NodeStore = Depends(get_node_store),
) -> list[NodeResponse]:
    try:
        return await store.update_widths(conversation_id, request.updates)
    except (ConversationNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidWidthError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{conversation_id}/nodes/{node_id}/pinned")
async def set_pinned(
    conversation_id: str,
    node_id: str,
    request: SetPinnedRequest,
    store: NodeStore = Depends(get_node_store),
) -> NodeResponse:
    try:
        return await store.set_pinned(conversation_id, node_id, request.is_pinned)
    except (ConversationNotFoundError, NodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete(
    "/{conversation_id}/nodes/{node_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_node(
    conversation_id: str,
    node_id: str,
    store: NodeStore = Depends(get_node_store),
) -> Response:
    try:
        await store.soft_delete_subtree(conversation_id, node_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/nodes/{node_id}/messages")
async def get_messages(
    conversation_id: str,
    node_id: str,
    store: NodeStore = Depends(get_node_store),
) -> list[ChatMessage]:
    try:
        return await store.reconstruct_messages(conversation_id, node_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{conversation_id}/layout")
async def layout_conversation(
    conversation_id: str,
    request: ConversationLayoutRequest,
    store: NodeStore = Depends(get_node_store),
    layout: LayoutService = Depends(get_layout_service),
) -> LayoutResult:
    """Compute positions for the visible nodes. Nothing is persisted."""
    try:
        nodes, edges = await store.get_layout_input(conversation_id, request.heights)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    options = LayoutOptions(direction=request.direction, density=request.density)
    return layout.calculate_layout(nodes, edges, options)
