"""Request and response schemas for conversation and node endpoints."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from treechat.models import PositionUpdate, WidthUpdate

# -- Requests --


class CreateConversationRequest(BaseModel):
    title: str | None = None


class SetLastActiveNodeRequest(BaseModel):
    last_active_node_id: str | None = None


class CreateNodeRequest(BaseModel):
    """A finalized user/assistant exchange. Width bounds are checked by the service."""

    model_config = ConfigDict(allow_inf_nan=False)

    parent_id: str | None = None
    user_message: str
    assistant_message: str
    x: float = 0.0
    y: float = 0.0
    width: float | None = None
    is_pinned: bool = False


class UpdatePositionsRequest(BaseModel):
    updates: list[PositionUpdate]


class UpdateWidthsRequest(BaseModel):
    updates: list[WidthUpdate]


class SetPinnedRequest(BaseModel):
    is_pinned: bool


class ConversationLayoutRequest(BaseModel):
    """Layout the visible nodes of a conversation.

    heights carries measured render heights by node_id; unmeasured nodes
    use the default height.
    """

    direction: Literal["TB", "LR", "BT", "RL"] = "TB"
    density: Literal["compact", "normal", "spacious"] = "normal"
    heights: dict[str, Annotated[float, Field(gt=0, allow_inf_nan=False)]] = Field(
        default_factory=dict,
    )


# -- Responses --


class NodeResponse(BaseModel):
    node_id: str
    conversation_id: str
    parent_id: str | None = None
    user_message: str
    assistant_message: str
    summary: str | None = None
    x: float
    y: float
    width: float
    is_pinned: bool = False
    path: list[str]
    visible: bool = True
    created_at: str
    sibling_count: int = 1
    sibling_index: int = 0


class ChatMessage(BaseModel):
    role: Literal["developer", "user", "assistant"]
    content: str


class ConversationSummary(BaseModel):
    conversation_id: str
    title: str | None = None
    created_at: str
    updated_at: str


class ConversationDetailResponse(BaseModel):
    conversation_id: str
    title: str | None = None
    last_active_node_id: str | None = None
    created_at: str
    updated_at: str
    nodes: list[NodeResponse] = Field(default_factory=list)
