"""Canonical data structures and event types for TreeChat.

Defined once here, referenced everywhere else. Event payloads represent the
type-specific content of each event; the EventEnvelope wraps them with
metadata.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Node width bounds in pixels. Enforced on create and on every width update.
NODE_WIDTH_MIN = 150.0
NODE_WIDTH_MAX = 800.0
NODE_WIDTH_DEFAULT = 250.0


def width_in_bounds(width: float) -> bool:
    return NODE_WIDTH_MIN <= width <= NODE_WIDTH_MAX


# ---------------------------------------------------------------------------
# Canonical data structures
# ---------------------------------------------------------------------------


class ChatConfig(BaseModel):
    """Preamble prepended to every reconstructed transcript."""

    prompt: str = (
        "You are a helpful assistant. Your goal is to help the user with"
        " whatever queries they have."
    )
    initial_message: str = "Hello! How can I help you today?"


class PositionUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    node_id: str
    x: float
    y: float


class WidthUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    node_id: str
    width: float


# ---------------------------------------------------------------------------
# Event payloads, one per event type
# ---------------------------------------------------------------------------


class ConversationCreatedPayload(BaseModel):
    title: str | None = None


class ConversationMetadataUpdatedPayload(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class NodeCreatedPayload(BaseModel):
    node_id: str
    parent_id: str | None = None
    user_message: str
    assistant_message: str
    summary: str | None = None
    x: float = 0.0
    y: float = 0.0
    width: float = NODE_WIDTH_DEFAULT
    is_pinned: bool = False
    path: list[str]  # root -> this node, inclusive. Frozen at creation.


class NodePositionsUpdatedPayload(BaseModel):
    updates: list[PositionUpdate]


class NodeWidthsUpdatedPayload(BaseModel):
    updates: list[WidthUpdate]


class NodePinnedUpdatedPayload(BaseModel):
    node_id: str
    is_pinned: bool


class SubtreeHiddenPayload(BaseModel):
    root_node_id: str
    node_ids: list[str]


# ---------------------------------------------------------------------------
# Event type registry
# ---------------------------------------------------------------------------

EVENT_TYPES: dict[str, type[BaseModel]] = {
    "ConversationCreated": ConversationCreatedPayload,
    "ConversationMetadataUpdated": ConversationMetadataUpdatedPayload,
    "NodeCreated": NodeCreatedPayload,
    "NodePositionsUpdated": NodePositionsUpdatedPayload,
    "NodeWidthsUpdated": NodeWidthsUpdatedPayload,
    "NodePinnedUpdated": NodePinnedUpdatedPayload,
    "SubtreeHidden": SubtreeHiddenPayload,
}


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class EventEnvelope(BaseModel):
    """Wraps every event with metadata. Stored in the events table."""

    event_id: str
    conversation_id: str
    timestamp: datetime
    device_id: str = "local"
    user_id: str | None = None
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    sequence_num: int | None = None  # assigned by DB on insert

    def typed_payload(self) -> BaseModel:
        """Deserialize payload into the correct Pydantic model based on event_type."""
        payload_cls = EVENT_TYPES[self.event_type]
        return payload_cls.model_validate(self.payload)
