"""Contract tests for the EventStore and StateProjector.

test_event_roundtrip is THE CANARY: if it ever fails, something
fundamental is broken.
"""

import json

import pytest

from treechat.models import (
    NodePinnedUpdatedPayload,
    NodePositionsUpdatedPayload,
    NodeWidthsUpdatedPayload,
    PositionUpdate,
    SubtreeHiddenPayload,
    WidthUpdate,
)
from tests.fixtures import (
    make_conversation_created_envelope,
    make_envelope,
    make_node_created_envelope,
)


async def _seed(event_store, projector, *events):
    for event in events:
        await event_store.append(event)
    await projector.project(list(events))


class TestEventStore:
    async def test_event_roundtrip(self, event_store):
        """Append a ConversationCreated event, get_events returns it intact."""
        event = make_conversation_created_envelope(title="Canary")

        await event_store.append(event)
        events = await event_store.get_events(event.conversation_id)

        assert len(events) == 1
        assert events[0].event_type == "ConversationCreated"
        assert events[0].payload["title"] == "Canary"
        assert events[0].event_id == event.event_id

    async def test_append_assigns_sequence_num(self, event_store):
        event = make_conversation_created_envelope()
        seq = await event_store.append(event)
        assert seq > 0
        assert event.sequence_num == seq

    async def test_append_duplicate_event_id_fails(self, event_store):
        event = make_conversation_created_envelope()
        await event_store.append(event)
        with pytest.raises(Exception):  # IntegrityError
            await event_store.append(event)

    async def test_get_events_by_type(self, event_store):
        conv = make_conversation_created_envelope()
        node = make_node_created_envelope(conv.conversation_id)
        await event_store.append(conv)
        await event_store.append(node)

        events = await event_store.get_events_by_type(conv.conversation_id, "NodeCreated")
        assert [e.event_id for e in events] == [node.event_id]

    async def test_typed_payload(self, event_store):
        conv = make_conversation_created_envelope()
        node = make_node_created_envelope(conv.conversation_id, node_id="n1")
        await event_store.append(node)

        (stored,) = await event_store.get_events(conv.conversation_id)
        assert stored.typed_payload().path == ["n1"]


class TestProjectorNodes:
    async def test_node_fields_match_payload(self, event_store, projector):
        conv = make_conversation_created_envelope()
        root = make_node_created_envelope(conv.conversation_id, node_id="r", x=10, y=20)
        child = make_node_created_envelope(
            conv.conversation_id, node_id="c", parent_path=["r"], width=300,
        )
        await _seed(event_store, projector, conv, root, child)

        node = await projector.get_node("c")
        assert node["parent_id"] == "r"
        assert json.loads(node["path"]) == ["r", "c"]
        assert node["width"] == 300
        assert node["visible"] == 1
        assert node["is_pinned"] == 0

        root_row = await projector.get_node("r")
        assert (root_row["x"], root_row["y"]) == (10, 20)

    async def test_positions_batch(self, event_store, projector):
        conv = make_conversation_created_envelope()
        a = make_node_created_envelope(conv.conversation_id, node_id="a")
        b = make_node_created_envelope(conv.conversation_id, node_id="b")
        update = make_envelope(
            conv.conversation_id, "NodePositionsUpdated",
            NodePositionsUpdatedPayload(updates=[
                PositionUpdate(node_id="a", x=1, y=2),
                PositionUpdate(node_id="b", x=3, y=4),
                PositionUpdate(node_id="a", x=5, y=6),
            ]).model_dump(),
        )
        await _seed(event_store, projector, conv, a, b, update)

        a_row = await projector.get_node("a")
        b_row = await projector.get_node("b")
        assert (a_row["x"], a_row["y"]) == (5, 6)  # last entry wins
        assert (b_row["x"], b_row["y"]) == (3, 4)

    async def test_widths_and_pinned(self, event_store, projector):
        conv = make_conversation_created_envelope()
        a = make_node_created_envelope(conv.conversation_id, node_id="a")
        widths = make_envelope(
            conv.conversation_id, "NodeWidthsUpdated",
            NodeWidthsUpdatedPayload(updates=[WidthUpdate(node_id="a", width=640)]).model_dump(),
        )
        pinned = make_envelope(
            conv.conversation_id, "NodePinnedUpdated",
            NodePinnedUpdatedPayload(node_id="a", is_pinned=True).model_dump(),
        )
        await _seed(event_store, projector, conv, a, widths, pinned)

        row = await projector.get_node("a")
        assert row["width"] == 640
        assert row["is_pinned"] == 1

    async def test_subtree_hidden_leaves_path(self, event_store, projector):
        conv = make_conversation_created_envelope()
        r = make_node_created_envelope(conv.conversation_id, node_id="r")
        a = make_node_created_envelope(conv.conversation_id, node_id="a", parent_path=["r"])
        hidden = make_envelope(
            conv.conversation_id, "SubtreeHidden",
            SubtreeHiddenPayload(root_node_id="a", node_ids=["a"]).model_dump(),
        )
        await _seed(event_store, projector, conv, r, a, hidden)

        visible = await projector.get_nodes(conv.conversation_id, include_hidden=False)
        assert [n["node_id"] for n in visible] == ["r"]
        everything = await projector.get_nodes(conv.conversation_id)
        assert len(everything) == 2
        assert json.loads((await projector.get_node("a"))["path"]) == ["r", "a"]

    async def test_subtree_hidden_beyond_variable_limit(self, event_store, projector):
        """A hide set larger than SQLite's bound-variable limit projects in one go."""
        conv = make_conversation_created_envelope()
        r = make_node_created_envelope(conv.conversation_id, node_id="r")
        a = make_node_created_envelope(conv.conversation_id, node_id="a", parent_path=["r"])
        node_ids = ["a"] + [f"gone-{i}" for i in range(40_000)]
        hidden = make_envelope(
            conv.conversation_id, "SubtreeHidden",
            SubtreeHiddenPayload(root_node_id="a", node_ids=node_ids).model_dump(),
        )
        await _seed(event_store, projector, conv, r, a, hidden)

        visible = await projector.get_nodes(conv.conversation_id, include_hidden=False)
        assert [n["node_id"] for n in visible] == ["r"]

    async def test_unknown_event_type_is_skipped(self, projector):
        conv = make_conversation_created_envelope()
        await projector.project([
            conv, make_envelope(conv.conversation_id, "SomethingElse", {}),
        ])
        assert await projector.get_conversation(conv.conversation_id) is not None


class TestProjectorConversations:
    async def test_metadata_update(self, event_store, projector):
        conv = make_conversation_created_envelope(title="Old")
        update = make_envelope(
            conv.conversation_id, "ConversationMetadataUpdated",
            {"field": "title", "old_value": "Old", "new_value": "New"},
        )
        await _seed(event_store, projector, conv, update)

        row = await projector.get_conversation(conv.conversation_id)
        assert row["title"] == "New"

    async def test_metadata_update_ignores_unknown_field(self, event_store, projector):
        conv = make_conversation_created_envelope(title="Kept")
        update = make_envelope(
            conv.conversation_id, "ConversationMetadataUpdated",
            {"field": "created_at", "old_value": None, "new_value": "nope"},
        )
        await _seed(event_store, projector, conv, update)

        row = await projector.get_conversation(conv.conversation_id)
        assert row["created_at"] != "nope"

    async def test_conversation_not_found_returns_none(self, projector):
        assert await projector.get_conversation("nonexistent-id") is None
