"""Transcript reconstruction from a node's stored lineage.

Each node carries its full root-to-self path, so rebuilding the chat
history for a node costs O(depth) regardless of how wide the tree is.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from treechat.models import ChatConfig


class MessageReconstructor:
    """Turns a node's path into the ordered messages array sent to the model."""

    def __init__(self, config: ChatConfig | None = None) -> None:
        self._config = config or ChatConfig()

    def preamble(self) -> list[dict[str, str]]:
        return [
            {"role": "developer", "content": self._config.prompt},
            {"role": "assistant", "content": self._config.initial_message},
        ]

    def reconstruct(
        self, node_id: str, nodes: Iterable[Mapping[str, Any]],
    ) -> list[dict[str, str]]:
        """Preamble, then a user/assistant pair per node on the target's path.

        An unknown target (or an empty collection) yields only the preamble.
        Path entries missing from `nodes` are skipped.
        """
        messages = self.preamble()
        node_map = {n["node_id"]: n for n in nodes}
        target = node_map.get(node_id)
        if target is None:
            return messages

        for path_id in target["path"]:
            node = node_map.get(path_id)
            if node is None:
                continue
            messages.append({"role": "user", "content": node["user_message"]})
            messages.append({"role": "assistant", "content": node["assistant_message"]})
        return messages
