"""Shared test helpers."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

from treechat.layout.schemas import LayoutEdge, LayoutNode
from treechat.models import (
    ConversationCreatedPayload,
    EventEnvelope,
    NodeCreatedPayload,
)


def make_envelope(conversation_id: str, event_type: str, payload: dict) -> EventEnvelope:
    return EventEnvelope(
        event_id=str(uuid4()),
        conversation_id=conversation_id,
        timestamp=datetime.now(UTC),
        device_id="test",
        event_type=event_type,
        payload=payload,
    )


def make_conversation_created_envelope(
    conversation_id: str | None = None,
    title: str | None = "Test Conversation",
) -> EventEnvelope:
    """Create a ConversationCreated EventEnvelope for testing."""
    conversation_id = conversation_id or str(uuid4())
    payload = ConversationCreatedPayload(title=title)
    return make_envelope(conversation_id, "ConversationCreated", payload.model_dump())


def make_node_created_envelope(
    conversation_id: str,
    node_id: str | None = None,
    parent_path: list[str] | None = None,
    user_message: str = "Hello",
    assistant_message: str = "Hi there",
    **payload_overrides: Any,
) -> EventEnvelope:
    """Create a NodeCreated EventEnvelope for testing.

    parent_path is the parent's path; the new node's path and parent_id are
    derived from it.
    """
    node_id = node_id or str(uuid4())
    parent_path = parent_path or []
    payload = NodeCreatedPayload(
        node_id=node_id,
        parent_id=parent_path[-1] if parent_path else None,
        user_message=user_message,
        assistant_message=assistant_message,
        path=[*parent_path, node_id],
        **payload_overrides,
    )
    return make_envelope(conversation_id, "NodeCreated", payload.model_dump())


def layout_chain(*ids: str, pinned: set[str] | None = None) -> tuple[list[LayoutNode], list[LayoutEdge]]:
    """A single path ids[0] -> ids[1] -> ... as layout input."""
    pinned = pinned or set()
    nodes = [LayoutNode(id=i, is_pinned=i in pinned) for i in ids]
    edges = [LayoutEdge(source=a, target=b) for a, b in zip(ids, ids[1:])]
    return nodes, edges


def layout_tree(parents: dict[str, str | None]) -> tuple[list[LayoutNode], list[LayoutEdge]]:
    """Layout input from a {node_id: parent_id} mapping, in mapping order."""
    nodes = [LayoutNode(id=node_id) for node_id in parents]
    edges = [
        LayoutEdge(source=parent_id, target=node_id)
        for node_id, parent_id in parents.items()
        if parent_id is not None
    ]
    return nodes, edges


# -- API-level helpers --


async def create_test_conversation(
    client: AsyncClient, title: str | None = "Test Conversation",
) -> dict:
    """Create a conversation via the API and return the response JSON."""
    resp = await client.post("/api/conversations", json={"title": title})
    assert resp.status_code == 201
    return resp.json()


async def create_test_node(
    client: AsyncClient,
    conversation_id: str,
    parent_id: str | None = None,
    user_message: str = "Hello",
    assistant_message: str = "Hi there",
    **fields: Any,
) -> dict:
    body: dict = {
        "user_message": user_message,
        "assistant_message": assistant_message,
        **fields,
    }
    if parent_id is not None:
        body["parent_id"] = parent_id
    resp = await client.post(f"/api/conversations/{conversation_id}/nodes", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_branching_conversation(client: AsyncClient) -> dict:
    """Create a conversation with branches: r -> a -> b, r -> c.

    a and c are siblings (both children of r).

    Returns {"conversation_id": str, "node_ids": {"r": str, "a": str, "b": str, "c": str}}
    """
    conversation = await create_test_conversation(client, title="Branching")
    conversation_id = conversation["conversation_id"]

    r = await create_test_node(client, conversation_id, user_message="u-r", assistant_message="a-r")
    a = await create_test_node(
        client, conversation_id, parent_id=r["node_id"],
        user_message="u-a", assistant_message="a-a",
    )
    b = await create_test_node(
        client, conversation_id, parent_id=a["node_id"],
        user_message="u-b", assistant_message="a-b",
    )
    c = await create_test_node(
        client, conversation_id, parent_id=r["node_id"],
        user_message="u-c", assistant_message="a-c",
    )
    return {
        "conversation_id": conversation_id,
        "node_ids": {
            "r": r["node_id"], "a": a["node_id"], "b": b["node_id"], "c": c["node_id"],
        },
    }
