"""Append-only event store backed by SQLite."""

import json

from treechat.db.connection import Database
from treechat.models import EventEnvelope


class EventStore:
    """Append-only event store. The write side of the CQRS pattern."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def append(self, envelope: EventEnvelope) -> int:
        """Append an event and return the assigned sequence_num.

        Raises IntegrityError if event_id is not unique.
        """
        cursor = await self._db.execute(
            """
            INSERT INTO events
                (event_id, conversation_id, timestamp, device_id, user_id,
                 event_type, payload)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                envelope.event_id,
                envelope.conversation_id,
                envelope.timestamp.isoformat(),
                envelope.device_id,
                envelope.user_id,
                envelope.event_type,
                json.dumps(envelope.payload),
            ),
        )
        assert cursor.lastrowid is not None
        envelope.sequence_num = cursor.lastrowid
        return cursor.lastrowid

    async def get_events(self, conversation_id: str) -> list[EventEnvelope]:
        """Get all events for a conversation, ordered by sequence_num."""
        rows = await self._db.fetchall(
            "SELECT * FROM events WHERE conversation_id = ? ORDER BY sequence_num",
            (conversation_id,),
        )
        return [self._row_to_envelope(row) for row in rows]

    async def get_events_by_type(
        self, conversation_id: str, event_type: str,
    ) -> list[EventEnvelope]:
        """Get a conversation's events of one type, ordered by sequence_num."""
        rows = await self._db.fetchall(
            "SELECT * FROM events WHERE conversation_id = ? AND event_type = ? "
            "ORDER BY sequence_num",
            (conversation_id, event_type),
        )
        return [self._row_to_envelope(row) for row in rows]

    @staticmethod
    def _row_to_envelope(row) -> EventEnvelope:
        """Convert a database row to an EventEnvelope."""
        return EventEnvelope(
            event_id=row["event_id"],
            conversation_id=row["conversation_id"],
            timestamp=row["timestamp"],
            device_id=row["device_id"],
            user_id=row["user_id"],
            event_type=row["event_type"],
            payload=json.loads(row["payload"]),
            sequence_num=row["sequence_num"],
        )
