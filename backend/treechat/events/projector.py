"""State projector: projects events into materialized tables.

The read side of the CQRS pattern. Node visibility only ever moves from
visible to hidden here; no handler writes visible = 1 to an existing row.
"""

import json
import logging
from collections.abc import Awaitable, Callable

from treechat.db.connection import Database
from treechat.models import (
    ConversationCreatedPayload,
    ConversationMetadataUpdatedPayload,
    EventEnvelope,
    NodeCreatedPayload,
    NodePinnedUpdatedPayload,
    NodePositionsUpdatedPayload,
    NodeWidthsUpdatedPayload,
    SubtreeHiddenPayload,
)

logger = logging.getLogger(__name__)


def _iso(event: EventEnvelope) -> str:
    return (
        event.timestamp.isoformat()
        if hasattr(event.timestamp, "isoformat")
        else str(event.timestamp)
    )


class StateProjector:
    """Projects events into materialized SQL tables (conversations, nodes)."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._handlers: dict[str, Callable[[EventEnvelope], Awaitable[None]]] = {
            "ConversationCreated": self._handle_conversation_created,
            "ConversationMetadataUpdated": self._handle_conversation_metadata_updated,
            "NodeCreated": self._handle_node_created,
            "NodePositionsUpdated": self._handle_node_positions_updated,
            "NodeWidthsUpdated": self._handle_node_widths_updated,
            "NodePinnedUpdated": self._handle_node_pinned_updated,
            "SubtreeHidden": self._handle_subtree_hidden,
        }

    async def project(self, events: list[EventEnvelope]) -> None:
        """Project a batch of events into materialized tables."""
        for event in events:
            handler = self._handlers.get(event.event_type)
            if handler:
                await handler(event)
            else:
                logger.warning("No projection for event type %r", event.event_type)

    async def get_conversation(self, conversation_id: str) -> dict | None:
        """Read projected conversation state. Returns None if not found."""
        row = await self._db.fetchone(
            "SELECT * FROM conversations WHERE conversation_id = ?",
            (conversation_id,),
        )
        if row is None:
            return None
        return dict(row)

    async def list_conversations(self) -> list[dict]:
        rows = await self._db.fetchall(
            "SELECT * FROM conversations ORDER BY updated_at DESC, created_at DESC"
        )
        return [dict(row) for row in rows]

    async def get_nodes(
        self, conversation_id: str, *, include_hidden: bool = True,
    ) -> list[dict]:
        """Read projected nodes for a conversation, ordered by creation time."""
        sql = "SELECT * FROM nodes WHERE conversation_id = ?"
        if not include_hidden:
            sql += " AND visible = 1"
        rows = await self._db.fetchall(
            sql + " ORDER BY created_at, rowid", (conversation_id,),
        )
        return [dict(row) for row in rows]

    async def get_node(self, node_id: str) -> dict | None:
        row = await self._db.fetchone(
            "SELECT * FROM nodes WHERE node_id = ?", (node_id,)
        )
        if row is None:
            return None
        return dict(row)

    async def _handle_conversation_created(self, event: EventEnvelope) -> None:
        """Project a ConversationCreated event into the conversations table."""
        payload = ConversationCreatedPayload.model_validate(event.payload)
        timestamp = _iso(event)
        await self._db.execute(
            """
            INSERT OR REPLACE INTO conversations
                (conversation_id, title, last_active_node_id, created_at, updated_at)
            VALUES (?, ?, NULL, ?, ?)
            """,
            (event.conversation_id, payload.title, timestamp, timestamp),
        )

    _UPDATABLE_CONVERSATION_FIELDS = {"title", "last_active_node_id"}

    async def _handle_conversation_metadata_updated(self, event: EventEnvelope) -> None:
        """Project a ConversationMetadataUpdated event: update a single column."""
        payload = ConversationMetadataUpdatedPayload.model_validate(event.payload)

        if payload.field not in self._UPDATABLE_CONVERSATION_FIELDS:
            logger.warning(
                "ConversationMetadataUpdated: unknown field %r, skipping",
                payload.field,
            )
            return

        await self._db.execute(
            f"UPDATE conversations SET {payload.field} = ?, updated_at = ? "
            "WHERE conversation_id = ?",
            (payload.new_value, _iso(event), event.conversation_id),
        )

    async def _handle_node_created(self, event: EventEnvelope) -> None:
        """Project a NodeCreated event into the nodes table."""
        payload = NodeCreatedPayload.model_validate(event.payload)
        timestamp = _iso(event)
        await self._db.execute(
            """
            INSERT OR REPLACE INTO nodes
                (node_id, conversation_id, parent_id, user_message,
                 assistant_message, summary, x, y, width, is_pinned, path,
                 visible, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
            """,
            (
                payload.node_id,
                event.conversation_id,
                payload.parent_id,
                payload.user_message,
                payload.assistant_message,
                payload.summary,
                payload.x,
                payload.y,
                payload.width,
                int(payload.is_pinned),
                json.dumps(payload.path),
                timestamp,
            ),
        )
        await self._touch(event.conversation_id, timestamp)

    async def _handle_node_positions_updated(self, event: EventEnvelope) -> None:
        payload = NodePositionsUpdatedPayload.model_validate(event.payload)
        await self._db.executemany(
            "UPDATE nodes SET x = ?, y = ? WHERE node_id = ? AND conversation_id = ?",
            [(u.x, u.y, u.node_id, event.conversation_id) for u in payload.updates],
        )

    async def _handle_node_widths_updated(self, event: EventEnvelope) -> None:
        payload = NodeWidthsUpdatedPayload.model_validate(event.payload)
        await self._db.executemany(
            "UPDATE nodes SET width = ? WHERE node_id = ? AND conversation_id = ?",
            [(u.width, u.node_id, event.conversation_id) for u in payload.updates],
        )

    async def _handle_node_pinned_updated(self, event: EventEnvelope) -> None:
        payload = NodePinnedUpdatedPayload.model_validate(event.payload)
        await self._db.execute(
            "UPDATE nodes SET is_pinned = ? WHERE node_id = ? AND conversation_id = ?",
            (int(payload.is_pinned), payload.node_id, event.conversation_id),
        )

    async def _handle_subtree_hidden(self, event: EventEnvelope) -> None:
        """Hide every node in the payload in one statement. path is untouched."""
        payload = SubtreeHiddenPayload.model_validate(event.payload)
        if not payload.node_ids:
            return
        await self._db.execute(
            "UPDATE nodes SET visible = 0 WHERE conversation_id = ? "
            "AND node_id IN (SELECT value FROM json_each(?))",
            (event.conversation_id, json.dumps(payload.node_ids)),
        )
        await self._touch(event.conversation_id, _iso(event))

    async def _touch(self, conversation_id: str, timestamp: str) -> None:
        await self._db.execute(
            "UPDATE conversations SET updated_at = ? WHERE conversation_id = ?",
            (timestamp, conversation_id),
        )
