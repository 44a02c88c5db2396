"""Event sourcing: append-only event store and state projection."""

from treechat.events.projector import StateProjector
from treechat.events.store import EventStore

__all__ = ["EventStore", "StateProjector"]
