"""
Define Room structure as it is stored in Redis.

Each namespace is a Redis hash. Field names are room names and
field values are the serialized rooms:

    chat -> {
        lobby: '{"clients": ["u1", "u2"], "active": true}',
        games: '{"clients": [], "active": false}',
    }
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, StrictBool, StrictStr

from src.core.errors import InvalidNameError

_NUMERIC_NAME = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


class Room(BaseModel):
    """Membership state of a single room."""

    # Ordered, duplicates are separate entries
    clients: List[StrictStr]
    active: StrictBool

    @classmethod
    def new(cls) -> "Room":
        """An empty, active room."""
        return cls(clients=[], active=True)

    def dumps(self) -> str:
        """Serialized form written to the namespace hash."""
        return self.model_dump_json()

    @classmethod
    def loads(cls, raw: str) -> "Room":
        """Parses a stored room. Raises pydantic.ValidationError on malformed data."""
        return cls.model_validate_json(raw)


class LookupStatus(str, Enum):
    FOUND = "found"
    MISSING = "missing"
    CORRUPTED = "corrupted"


@dataclass
class RoomLookup:
    """
    Result of reading a room from the store.
    Callers outside the registry only see `room` (None unless FOUND).
    """

    status: LookupStatus
    room: Optional[Room] = None


def validate_name(kind: str, value: str) -> None:
    """
    Rejects names that can't be used as namespace keys or room fields:
    empty strings and bare numbers.
    """
    if not isinstance(value, str) or not value:
        raise InvalidNameError(f"{kind} name must be a non-empty string")
    if _NUMERIC_NAME.fullmatch(value):
        raise InvalidNameError(f"{kind} name can't be a number: {value!r}")
