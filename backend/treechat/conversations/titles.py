"""Conversation titles derived from the first visible root's summary."""

import logging
from datetime import UTC, datetime
from uuid import uuid4

from treechat.db.connection import Database
from treechat.events.projector import StateProjector
from treechat.events.store import EventStore
from treechat.models import ConversationMetadataUpdatedPayload, EventEnvelope
from treechat.utils.text import sanitize_content

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Conversation"
MAX_TITLE_LENGTH = 255


def compute_title_from_summary(summary: str | None) -> str:
    title = sanitize_content(summary)
    if not title:
        return UNTITLED
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


class ConversationTitleService:
    """Recomputes a conversation's title after its set of roots changes."""

    def __init__(self, db: Database) -> None:
        self._store = EventStore(db)
        self._projector = StateProjector(db)
        self._db = db

    async def refresh(self, conversation_id: str) -> str | None:
        """Recompute the title and persist it if it changed.

        Returns the current title, or None if the conversation doesn't exist.
        """
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            return None

        root = await self._db.fetchone(
            "SELECT summary FROM nodes WHERE conversation_id = ? "
            "AND parent_id IS NULL AND visible = 1 "
            "ORDER BY created_at, rowid LIMIT 1",
            (conversation_id,),
        )
        title = compute_title_from_summary(root["summary"]) if root else UNTITLED
        if title == conversation["title"]:
            return title

        payload = ConversationMetadataUpdatedPayload(
            field="title",
            old_value=conversation["title"],
            new_value=title,
        )
        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=conversation_id,
            timestamp=datetime.now(UTC),
            device_id="local",
            event_type="ConversationMetadataUpdated",
            payload=payload.model_dump(),
        )
        await self._store.append(event)
        await self._projector.project([event])
        logger.debug("Conversation %s retitled to %r", conversation_id, title)
        return title
