"""Node store: conversation and node lifecycle on top of the event store.

Every mutation is appended as an event and projected immediately. The
caller (routing/auth layer) is expected to serialize writes per
conversation; nothing here takes locks.
"""

import json
import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel

from treechat.conversations.messages import MessageReconstructor
from treechat.conversations.schemas import (
    ChatMessage,
    ConversationDetailResponse,
    ConversationSummary,
    CreateConversationRequest,
    CreateNodeRequest,
    NodeResponse,
)
from treechat.conversations.summaries import SummaryGenerator
from treechat.conversations.titles import ConversationTitleService
from treechat.conversations.tree_index import build_children_index, edges, sibling_info
from treechat.db.connection import Database
from treechat.events.projector import StateProjector
from treechat.events.store import EventStore
from treechat.layout.schemas import LayoutEdge, LayoutNode
from treechat.models import (
    NODE_WIDTH_DEFAULT,
    NODE_WIDTH_MAX,
    NODE_WIDTH_MIN,
    ConversationCreatedPayload,
    ConversationMetadataUpdatedPayload,
    EventEnvelope,
    NodeCreatedPayload,
    NodePinnedUpdatedPayload,
    NodePositionsUpdatedPayload,
    NodeWidthsUpdatedPayload,
    PositionUpdate,
    SubtreeHiddenPayload,
    WidthUpdate,
    width_in_bounds,
)
from treechat.utils.json import parse_json_list
from treechat.utils.text import sanitize_content

logger = logging.getLogger(__name__)


class NodeStore:
    """Owns conversations and the lifecycle of their nodes."""

    def __init__(
        self,
        db: Database,
        *,
        summary_generator: SummaryGenerator | None = None,
        title_service: ConversationTitleService | None = None,
        reconstructor: MessageReconstructor | None = None,
    ) -> None:
        self._store = EventStore(db)
        self._projector = StateProjector(db)
        self._db = db
        self._summary_generator = summary_generator
        self._title_service = title_service or ConversationTitleService(db)
        self._reconstructor = reconstructor or MessageReconstructor()

    # -- Conversations --

    async def create_conversation(
        self, request: CreateConversationRequest,
    ) -> ConversationDetailResponse:
        conversation_id = str(uuid4())
        title = sanitize_content(request.title) or None
        await self._emit(
            conversation_id, "ConversationCreated",
            ConversationCreatedPayload(title=title),
        )
        conversation = await self._projector.get_conversation(conversation_id)
        assert conversation is not None
        return self._conversation_detail_from_row(conversation, [])

    async def get_conversation(
        self, conversation_id: str,
    ) -> ConversationDetailResponse | None:
        """Get a conversation with its visible nodes. Returns None if not found."""
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            return None
        nodes = await self.get_nodes(conversation_id)
        return self._conversation_detail_from_row(conversation, nodes)

    async def list_conversations(self) -> list[ConversationSummary]:
        rows = await self._projector.list_conversations()
        return [
            ConversationSummary(
                conversation_id=row["conversation_id"],
                title=row["title"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def set_last_active_node(
        self, conversation_id: str, node_id: str | None,
    ) -> ConversationDetailResponse:
        """Record the node a viewer last had open.

        The pointer is advisory: it may later name a hidden node.
        """
        conversation = await self._require_conversation(conversation_id)
        if node_id is not None:
            node = await self._projector.get_node(node_id)
            if node is None or node["conversation_id"] != conversation_id:
                raise InvalidNodeReferenceError(node_id)

        if node_id != conversation["last_active_node_id"]:
            await self._emit(
                conversation_id, "ConversationMetadataUpdated",
                ConversationMetadataUpdatedPayload(
                    field="last_active_node_id",
                    old_value=conversation["last_active_node_id"],
                    new_value=node_id,
                ),
            )
        result = await self.get_conversation(conversation_id)
        assert result is not None
        return result

    # -- Nodes --

    async def create_node(
        self, conversation_id: str, request: CreateNodeRequest,
    ) -> NodeResponse:
        """Persist a finalized exchange as a new node.

        The path is computed once here by walking the parent chain and is
        never recomputed.
        """
        width = NODE_WIDTH_DEFAULT if request.width is None else request.width
        if not width_in_bounds(width):
            raise InvalidWidthError(width)

        await self._require_conversation(conversation_id)
        if request.parent_id is not None:
            parent = await self._projector.get_node(request.parent_id)
            if parent is None or parent["conversation_id"] != conversation_id:
                raise ParentNotFoundError(request.parent_id)

        node_id = str(uuid4())
        path = await self._compute_path(conversation_id, node_id, request.parent_id)

        summary = None
        if self._summary_generator is not None:
            summary = await self._summary_generator.generate(
                request.user_message, request.assistant_message,
            )

        await self._emit(
            conversation_id, "NodeCreated",
            NodeCreatedPayload(
                node_id=node_id,
                parent_id=request.parent_id,
                user_message=request.user_message,
                assistant_message=request.assistant_message,
                summary=summary,
                x=request.x,
                y=request.y,
                width=width,
                is_pinned=request.is_pinned,
                path=path,
            ),
        )
        logger.info(
            "Created node %s in conversation %s at depth %d",
            node_id, conversation_id, len(path) - 1,
        )

        if request.parent_id is None:
            await self._refresh_title(conversation_id)

        nodes = await self.get_nodes(conversation_id)
        return next(n for n in nodes if n.node_id == node_id)

    async def get_nodes(
        self, conversation_id: str, *, include_hidden: bool = False,
    ) -> list[NodeResponse]:
        """Nodes ordered by creation time. Sibling info is computed over the returned set."""
        await self._require_conversation(conversation_id)
        rows = await self._projector.get_nodes(
            conversation_id, include_hidden=include_hidden,
        )
        info = sibling_info(build_children_index(rows))
        return [self._node_from_row(row, siblings=info) for row in rows]

    async def update_positions(
        self, conversation_id: str, updates: list[PositionUpdate],
    ) -> list[NodeResponse]:
        """Apply a batch of position updates. Fails whole if any id is unknown."""
        await self._require_nodes(conversation_id, [u.node_id for u in updates])
        if not updates:
            return []
        await self._emit(
            conversation_id, "NodePositionsUpdated",
            NodePositionsUpdatedPayload(updates=updates),
        )
        return await self._read_back(conversation_id, [u.node_id for u in updates])

    async def update_widths(
        self, conversation_id: str, updates: list[WidthUpdate],
    ) -> list[NodeResponse]:
        """Apply a batch of width updates. Fails whole on any bad width or id."""
        for update in updates:
            if not width_in_bounds(update.width):
                raise InvalidWidthError(update.width)
        await self._require_nodes(conversation_id, [u.node_id for u in updates])
        if not updates:
            return []
        await self._emit(
            conversation_id, "NodeWidthsUpdated",
            NodeWidthsUpdatedPayload(updates=updates),
        )
        return await self._read_back(conversation_id, [u.node_id for u in updates])

    async def set_pinned(
        self, conversation_id: str, node_id: str, is_pinned: bool,
    ) -> NodeResponse:
        await self._require_nodes(conversation_id, [node_id])
        await self._emit(
            conversation_id, "NodePinnedUpdated",
            NodePinnedUpdatedPayload(node_id=node_id, is_pinned=is_pinned),
        )
        (node,) = await self._read_back(conversation_id, [node_id])
        return node

    async def soft_delete_subtree(self, conversation_id: str, node_id: str) -> list[str]:
        """Hide a node and every node whose path contains it.

        Reads the node snapshot once, then hides the whole set in one
        event. A node created after the snapshot read is not captured.
        Returns the ids that were hidden.
        """
        target = await self._projector.get_node(node_id)
        if target is None or target["conversation_id"] != conversation_id:
            raise NodeNotFoundError(node_id)

        rows = await self._projector.get_nodes(conversation_id)
        node_ids = [node_id] + [
            row["node_id"]
            for row in rows
            if row["node_id"] != node_id and node_id in parse_json_list(row["path"])
        ]

        await self._emit(
            conversation_id, "SubtreeHidden",
            SubtreeHiddenPayload(root_node_id=node_id, node_ids=node_ids),
        )
        logger.info(
            "Soft deleted node %s and %d descendants", node_id, len(node_ids) - 1,
        )

        if target["parent_id"] is None:
            await self._refresh_title(conversation_id)
        return node_ids

    async def reconstruct_messages(
        self, conversation_id: str, node_id: str,
    ) -> list[ChatMessage]:
        """Transcript for a node over the visible snapshot. Unknown nodes yield the preamble."""
        await self._require_conversation(conversation_id)
        rows = await self._projector.get_nodes(conversation_id, include_hidden=False)
        nodes = [{**row, "path": parse_json_list(row["path"])} for row in rows]
        return [
            ChatMessage(**message)
            for message in self._reconstructor.reconstruct(node_id, nodes)
        ]

    async def get_layout_input(
        self, conversation_id: str, heights: dict[str, float] | None = None,
    ) -> tuple[list[LayoutNode], list[LayoutEdge]]:
        """Layout nodes and parent -> child edges for the visible nodes."""
        await self._require_conversation(conversation_id)
        heights = heights or {}
        rows = await self._projector.get_nodes(conversation_id, include_hidden=False)
        index = build_children_index(rows)
        nodes = [
            LayoutNode(
                id=row["node_id"],
                x=row["x"],
                y=row["y"],
                width=row["width"],
                height=heights.get(row["node_id"]),
                is_pinned=bool(row["is_pinned"]),
            )
            for row in rows
        ]
        return nodes, [LayoutEdge(source=s, target=t) for s, t in edges(index)]

    # -- Internals --

    async def _emit(
        self, conversation_id: str, event_type: str, payload: BaseModel,
    ) -> EventEnvelope:
        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=conversation_id,
            timestamp=datetime.now(UTC),
            device_id="local",
            event_type=event_type,
            payload=payload.model_dump(),
        )
        await self._store.append(event)
        await self._projector.project([event])
        return event

    async def _require_conversation(self, conversation_id: str) -> dict:
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def _require_nodes(self, conversation_id: str, node_ids: list[str]) -> None:
        """Every id must name a node (visible or hidden) in the conversation."""
        await self._require_conversation(conversation_id)
        wanted = set(node_ids)
        if not wanted:
            return
        rows = await self._db.fetchall(
            "SELECT node_id FROM nodes WHERE conversation_id = ? "
            "AND node_id IN (SELECT value FROM json_each(?))",
            (conversation_id, json.dumps(sorted(wanted))),
        )
        found = {row["node_id"] for row in rows}
        for node_id in node_ids:
            if node_id not in found:
                raise NodeNotFoundError(node_id)

    async def _compute_path(
        self, conversation_id: str, node_id: str, parent_id: str | None,
    ) -> list[str]:
        """Walk parent -> grandparent -> ... to a root. One lookup per level."""
        ancestors: list[str] = []
        seen: set[str] = set()
        current_id = parent_id
        while current_id is not None:
            if current_id in seen:
                raise InvalidParentError(current_id)
            row = await self._db.fetchone(
                "SELECT node_id, parent_id FROM nodes "
                "WHERE node_id = ? AND conversation_id = ?",
                (current_id, conversation_id),
            )
            if row is None:
                raise InvalidParentError(current_id)
            seen.add(current_id)
            ancestors.append(row["node_id"])
            current_id = row["parent_id"]
        ancestors.reverse()
        return [*ancestors, node_id]

    async def _read_back(
        self, conversation_id: str, node_ids: list[str],
    ) -> list[NodeResponse]:
        """Current state of the given nodes, first-seen order, no duplicates."""
        nodes = await self.get_nodes(conversation_id, include_hidden=True)
        by_id = {n.node_id: n for n in nodes}
        return [by_id[node_id] for node_id in dict.fromkeys(node_ids)]

    async def _refresh_title(self, conversation_id: str) -> None:
        """Title upkeep never fails the node operation that triggered it."""
        try:
            await self._title_service.refresh(conversation_id)
        except Exception:
            logger.exception("Error updating title for conversation %s", conversation_id)

    @staticmethod
    def _conversation_detail_from_row(
        row: dict, nodes: list[NodeResponse],
    ) -> ConversationDetailResponse:
        return ConversationDetailResponse(
            conversation_id=row["conversation_id"],
            title=row["title"],
            last_active_node_id=row["last_active_node_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            nodes=nodes,
        )

    @staticmethod
    def _node_from_row(
        row: dict,
        *,
        siblings: dict[str, tuple[int, int]] | None = None,
    ) -> NodeResponse:
        """Convert a projected node row to a response."""
        si, sc = (0, 1)
        if siblings is not None and row["node_id"] in siblings:
            si, sc = siblings[row["node_id"]]

        return NodeResponse(
            node_id=row["node_id"],
            conversation_id=row["conversation_id"],
            parent_id=row["parent_id"],
            user_message=row["user_message"],
            assistant_message=row["assistant_message"],
            summary=row["summary"],
            x=row["x"],
            y=row["y"],
            width=row["width"],
            is_pinned=bool(row["is_pinned"]),
            path=parse_json_list(row["path"]),
            visible=bool(row["visible"]),
            created_at=row["created_at"],
            sibling_index=si,
            sibling_count=sc,
        )


class ConversationNotFoundError(Exception):
    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class NodeNotFoundError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class ParentNotFoundError(NodeNotFoundError):
    def __init__(self, parent_id: str) -> None:
        super().__init__(parent_id)
        self.args = (f"Parent node not found: {parent_id}",)


class InvalidParentError(Exception):
    """The parent chain is broken or loops. Only reachable with corrupt data."""

    def __init__(self, parent_id: str) -> None:
        self.parent_id = parent_id
        super().__init__(f"Invalid parent reference: {parent_id}")


class InvalidNodeReferenceError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Invalid node reference: {node_id}")


class InvalidWidthError(Exception):
    def __init__(self, width: float) -> None:
        self.width = width
        super().__init__(
            f"Width must be between {NODE_WIDTH_MIN:g} and {NODE_WIDTH_MAX:g} pixels."
            f" Got: {width:g}"
        )
