"""
Room registry backed by Redis.

Synchronizes rooms and their membership across every worker in the cluster.
Rooms can be activated and deactivated: the flag doesn't change how the
registry behaves, it only lets other components control the room.

Every mutation is a read-modify-write of the whole room. Two workers mutating
the same room at the same time can lose one of the updates (the last HSET wins).
Mutations on different rooms or namespaces don't interfere.
"""

import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from src.config.settings import settings
from src.core.errors import RegistryClosedError
from src.core.helpers import async_for_each
from src.core.room import LookupStatus, Room, RoomLookup, validate_name

logger = logging.getLogger(__name__)

LOG_IDENTIFIER = "roomRegistry"


def create_client(keyspace: int) -> redis.Redis:
    """Builds a client for the given keyspace from the settings. Doesn't connect."""
    password = settings.redis_password if settings.redis_auth else None
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=password,
        db=keyspace,
        decode_responses=True,
    )


class RoomRegistry:
    """
    Owns one Redis keyspace and one connection to it.
    The keyspace is wiped by init(), so don't reuse it for anything else.
    """

    def __init__(self, keyspace: int, client: Optional[redis.Redis] = None) -> None:
        self.keyspace = keyspace
        self._client: Optional[redis.Redis] = client if client is not None else create_client(keyspace)
        self._ready = False

    @property
    def is_ready(self) -> bool:
        """True after a successful init() and until destroy()."""
        return self._ready and self._client is not None

    @property
    def _store(self) -> redis.Redis:
        if self._client is None:
            raise RegistryClosedError("The room registry has been destroyed")
        return self._client

    async def init(self) -> bool:
        """
        Selects the keyspace and flushes it.
        Returns False if anything went wrong while talking to Redis.
        """
        try:
            await self._store.select(self.keyspace)
            await self._store.flushdb()
        except RedisError as e:
            logger.error(
                "Failed to initialize the room registry: %s",
                e,
                extra={"identifier": LOG_IDENTIFIER, "meta": {"error": e, "keyspace": self.keyspace}},
            )
            self._ready = False
            return False

        self._ready = True
        logger.info("Room registry ready on keyspace %d", self.keyspace, extra={"identifier": LOG_IDENTIFIER})
        return True

    async def destroy(self) -> None:
        """Closes the connection. Does nothing if it's already closed."""
        if self._client is None:
            return
        client, self._client = self._client, None
        self._ready = False
        await client.aclose()

    async def get_rooms(self, namespace: str) -> Optional[Dict[str, Room]]:
        """
        Returns every room in the namespace keyed by room name,
        or None if there are none. A single malformed room makes the whole result None.
        """
        try:
            raw_rooms = await self._store.hgetall(namespace)
        except UnicodeDecodeError as e:
            self._log_malformed(namespace, None, e.object)
            return None
        if not raw_rooms:
            return None

        rooms: Dict[str, Room] = {}
        for room_name, raw in raw_rooms.items():
            lookup = self._parse_room(namespace, room_name, raw)
            if lookup.room is None:
                return None
            rooms[room_name] = lookup.room
        return rooms

    async def get_room(self, namespace: str, room_name: str) -> Optional[Room]:
        """Returns the room, or None if it doesn't exist or can't be parsed."""
        return (await self._lookup_room(namespace, room_name)).room

    async def room_exists(self, namespace: str, room_name: str) -> bool:
        return await self.get_room(namespace, room_name) is not None

    async def room_empty(self, namespace: str, room_name: str) -> bool:
        """True if the room doesn't exist or has no clients."""
        room = await self.get_room(namespace, room_name)
        return room is None or len(room.clients) == 0

    async def add_room(self, namespace: str, room_name: str) -> bool:
        """
        Creates an empty, active room.
        Returns False if the room already existed.
        """
        if await self.room_exists(namespace, room_name):
            return False
        await self._save_room(namespace, room_name, Room.new())
        return True

    async def activate_room(self, namespace: str, room_name: str) -> None:
        """Sets the active flag, creating the room first if needed."""
        room = await self._ensure_room(namespace, room_name)
        room.active = True
        await self._save_room(namespace, room_name, room)

    async def deactivate_room(self, namespace: str, room_name: str) -> None:
        """Clears the active flag, creating the room first if needed."""
        room = await self._ensure_room(namespace, room_name)
        room.active = False
        await self._save_room(namespace, room_name, room)

    async def add_client(self, namespace: str, room_name: str, client_id: str) -> None:
        """
        Appends client_id to the room, creating the room if needed.
        Duplicates are not checked.
        """
        room = await self._ensure_room(namespace, room_name)
        room.clients.append(client_id)
        await self._save_room(namespace, room_name, room)

    async def remove_client_from_room(self, namespace: str, room_name: str, client_id: str) -> bool:
        """
        Removes one occurrence of client_id from the room.
        Returns False if the room doesn't exist or the client isn't in it.
        """
        room = await self.get_room(namespace, room_name)
        if room is None:
            return False
        try:
            room.clients.remove(client_id)
        except ValueError:
            return False
        await self._save_room(namespace, room_name, room)
        return True

    async def remove_client_from_namespace(self, namespace: str, client_id: str) -> bool:
        """
        Removes one occurrence of client_id from every room in the namespace.
        Returns False if the namespace has no rooms, True if the client was removed
        from at least one room.
        """
        rooms = await self.get_rooms(namespace)
        if not rooms:
            return False

        removed_from = []

        async def remove(_room: Room, room_name: str, _rooms: Dict[str, Room]) -> None:
            if await self.remove_client_from_room(namespace, room_name, client_id):
                removed_from.append(room_name)

        await async_for_each(rooms, remove)
        logger.debug(
            "Removed %s from %d room(s) in %s",
            client_id,
            len(removed_from),
            namespace,
            extra={"identifier": LOG_IDENTIFIER, "meta": {"rooms": removed_from}},
        )
        return len(removed_from) > 0

    async def _ensure_room(self, namespace: str, room_name: str) -> Room:
        """Returns the room, creating it first if it doesn't exist."""
        await self.add_room(namespace, room_name)
        room = await self.get_room(namespace, room_name)
        if room is None:
            # Overwritten with garbage or removed between the two calls
            room = Room.new()
        return room

    async def _lookup_room(self, namespace: str, room_name: str) -> RoomLookup:
        try:
            raw = await self._store.hget(namespace, room_name)
        except UnicodeDecodeError as e:
            # Not UTF-8, the client fails before the parser sees it
            self._log_malformed(namespace, room_name, e.object)
            return RoomLookup(LookupStatus.CORRUPTED)
        if raw is None:
            return RoomLookup(LookupStatus.MISSING)
        return self._parse_room(namespace, room_name, raw)

    def _parse_room(self, namespace: str, room_name: str, raw: str) -> RoomLookup:
        try:
            return RoomLookup(LookupStatus.FOUND, Room.loads(raw))
        except ValidationError:
            self._log_malformed(namespace, room_name, raw)
            return RoomLookup(LookupStatus.CORRUPTED)

    def _log_malformed(self, namespace: str, room_name: Optional[str], raw: Any) -> None:
        logger.warning(
            "A malformed room in namespace: %s",
            namespace,
            extra={
                "identifier": LOG_IDENTIFIER,
                "meta": {"namespace": namespace, "room_name": room_name, "raw": repr(raw)},
            },
        )

    async def _save_room(self, namespace: str, room_name: str, room: Room) -> int:
        """The only write path: overwrites the room's field in the namespace hash."""
        validate_name("Namespace", namespace)
        validate_name("Room", room_name)
        return await self._store.hset(namespace, room_name, room.dumps())


# Singleton used by the application, initialized in the app lifespan
room_registry = RoomRegistry(settings.room_registry_db)
