"""
Presence events broadcast between workers.
"""

import time
import uuid
from typing import Literal

from pydantic import BaseModel, Field


class PresenceEvent(BaseModel):
    """A client joined or left a room."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    namespace: str
    room_name: str
    client_id: str
    action: Literal["join", "leave"]
    created_at: float = Field(default_factory=time.time)

    @property
    def channel(self) -> str:
        return presence_channel(self.namespace, self.room_name)


def presence_channel(namespace: str, room_name: str) -> str:
    """Redis pub/sub channel of a room."""
    return f"presence:{namespace}:{room_name}"
