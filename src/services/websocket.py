"""
WebSocket Connection Manager with Redis Pub/Sub.
Tracks this worker's connections, keeps the room registry in sync with them
and broadcasts presence events across all the workers.
"""

import asyncio
import json
import logging
from typing import Dict, List, Tuple

import redis.asyncio as redis
from fastapi import WebSocket
from redis.exceptions import RedisError

from src.config.settings import settings
from src.core.events import PresenceEvent, presence_channel
from src.services.room_registry import RoomRegistry, room_registry

logger = logging.getLogger(__name__)

# Separate from the registry's connection, which owns its keyspace
redis_client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]

RoomKey = Tuple[str, str]


class ConnectionManager:
    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry
        self.active_connections: Dict[RoomKey, List[WebSocket]] = {}
        self.pubsub_tasks: Dict[RoomKey, asyncio.Task[None]] = {}

    async def connect(self, websocket: WebSocket, namespace: str, room_name: str, client_id: str) -> None:
        """
        Accepts a new WebSocket connection and adds the client to the room.
        Nothing is tracked locally if the registry rejects the client.
        """
        await websocket.accept()
        await self.registry.add_client(namespace, room_name, client_id)

        key = (namespace, room_name)
        if key not in self.active_connections:
            self.active_connections[key] = []

            await self._subscribe_to_redis(namespace, room_name)

        self.active_connections[key].append(websocket)
        logger.info(
            "WS %s connected to %s/%s. Local total: %d",
            client_id,
            namespace,
            room_name,
            len(self.active_connections[key]),
            extra={"identifier": "socket"},
        )

        try:
            await self.publish(
                PresenceEvent(namespace=namespace, room_name=room_name, client_id=client_id, action="join")
            )
        except RedisError:
            await self.disconnect(websocket, namespace, room_name, client_id)
            raise

    async def disconnect(self, websocket: WebSocket, namespace: str, room_name: str, client_id: str) -> None:
        """
        Removes a WebSocket connection and takes the client out of the room.
        """
        key = (namespace, room_name)
        if key in self.active_connections:
            if websocket in self.active_connections[key]:
                self.active_connections[key].remove(websocket)

            # Cleanup subscription if room is empty.
            if not self.active_connections[key]:
                del self.active_connections[key]
                self._unsubscribe_from_redis(namespace, room_name)

        if await self.registry.remove_client_from_room(namespace, room_name, client_id):
            await self.publish(
                PresenceEvent(namespace=namespace, room_name=room_name, client_id=client_id, action="leave")
            )
        else:
            logger.warning(
                "Client %s was not registered in %s/%s",
                client_id,
                namespace,
                room_name,
                extra={"identifier": "socket", "meta": {"namespace": namespace, "room_name": room_name}},
            )

    async def publish(self, event: PresenceEvent) -> None:
        """
        Publishes a presence event to the room's Redis channel.
        All workers receive it and broadcast to their clients
        """
        await redis_client.publish(event.channel, event.model_dump_json())

    async def broadcast_to_local(self, event: PresenceEvent) -> None:
        """
        Sends an event to local clients of its room.
        Called when an event is received from Redis.
        """
        key = (event.namespace, event.room_name)
        if key in self.active_connections:
            payload = event.model_dump(mode="json")

            for connection in self.active_connections[key][:]:
                try:
                    await connection.send_json(payload)
                except Exception as e:
                    logger.warning("Error sending to WS: %s", e, extra={"identifier": "socket"})

    async def close(self) -> None:
        """Cancels every Redis listener."""
        for namespace, room_name in list(self.pubsub_tasks):
            self._unsubscribe_from_redis(namespace, room_name)
        self.active_connections.clear()

    async def _subscribe_to_redis(self, namespace: str, room_name: str) -> None:
        """
        Starts a background task to listen to Redis events for a room.
        """
        key = (namespace, room_name)
        if key in self.pubsub_tasks:
            return

        async def listener() -> None:
            pubsub = redis_client.pubsub()
            channel = presence_channel(namespace, room_name)

            await pubsub.subscribe(channel)
            logger.info("Subscribed to Redis channel: %s", channel, extra={"identifier": "socket"})

            try:
                async for message in pubsub.listen():
                    if message["type"] == "message":
                        try:
                            event = PresenceEvent(**json.loads(message["data"]))
                            await self.broadcast_to_local(event)
                        except Exception as e:
                            logger.error(
                                "Could not parse Redis message: %s",
                                e,
                                extra={"identifier": "socket", "meta": {"channel": channel}},
                            )

            except asyncio.CancelledError:
                await pubsub.unsubscribe(channel)
                logger.info("Unsubscribed from %s", channel, extra={"identifier": "socket"})
            except Exception as e:
                logger.error("Redis listener error for %s: %s", channel, e, extra={"identifier": "socket"})

        self.pubsub_tasks[key] = asyncio.create_task(listener())

    def _unsubscribe_from_redis(self, namespace: str, room_name: str) -> None:
        """
        Cancels the Redis listener task
        """
        key = (namespace, room_name)
        if key in self.pubsub_tasks:
            self.pubsub_tasks[key].cancel()
            del self.pubsub_tasks[key]


# Singleton instance
manager = ConnectionManager(room_registry)
