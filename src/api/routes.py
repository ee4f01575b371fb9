"""
API Routes definition.
Handles presence queries, room lifecycle and real-time WebSockets.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from redis.exceptions import RedisError

from src.api.dependencies import get_registry
from src.core.errors import InvalidNameError, RegistryClosedError
from src.core.room import Room
from src.services.room_registry import RoomRegistry, room_registry
from src.services.websocket import manager

logger = logging.getLogger(__name__)

router = APIRouter()


def _registry_failed(e: Exception) -> HTTPException:
    """Maps a failed registry call to an HTTP error."""
    if isinstance(e, InvalidNameError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    logger.error("Registry call failed: %s", e, extra={"identifier": "api", "meta": {"error": e}})
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Room registry unavailable.")


async def _room_or_404(registry: RoomRegistry, namespace: str, room_name: str) -> Room:
    try:
        room = await registry.get_room(namespace, room_name)
    except (RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)

    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found.")
    return room


# === PUBLIC ROUTES ===


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Returns the worker status"""
    return {"status": "online", "registry_ready": room_registry.is_ready}


# === Presence routes ===


@router.get("/namespaces/{namespace}/rooms", response_model=Dict[str, Room])
async def get_rooms(namespace: str, registry: RoomRegistry = Depends(get_registry)) -> Dict[str, Room]:
    """
    Retrieves every room in a namespace.
    """
    try:
        rooms = await registry.get_rooms(namespace)
    except (RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)

    if rooms is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No rooms in this namespace.")
    return rooms


@router.get("/namespaces/{namespace}/rooms/{room_name}", response_model=Room)
async def get_room(namespace: str, room_name: str, registry: RoomRegistry = Depends(get_registry)) -> Room:
    return await _room_or_404(registry, namespace, room_name)


@router.post("/namespaces/{namespace}/rooms/{room_name}", response_model=Room, status_code=status.HTTP_201_CREATED)
async def create_room(namespace: str, room_name: str, registry: RoomRegistry = Depends(get_registry)) -> Room:
    """
    Creates an empty, active room.
    """
    try:
        created = await registry.add_room(namespace, room_name)
    except (InvalidNameError, RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)

    if not created:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room already exists.")
    return await _room_or_404(registry, namespace, room_name)


@router.post("/namespaces/{namespace}/rooms/{room_name}/activate", response_model=Room)
async def activate_room(namespace: str, room_name: str, registry: RoomRegistry = Depends(get_registry)) -> Room:
    try:
        await registry.activate_room(namespace, room_name)
    except (InvalidNameError, RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)
    return await _room_or_404(registry, namespace, room_name)


@router.post("/namespaces/{namespace}/rooms/{room_name}/deactivate", response_model=Room)
async def deactivate_room(namespace: str, room_name: str, registry: RoomRegistry = Depends(get_registry)) -> Room:
    try:
        await registry.deactivate_room(namespace, room_name)
    except (InvalidNameError, RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)
    return await _room_or_404(registry, namespace, room_name)


@router.delete("/namespaces/{namespace}/clients/{client_id}")
async def remove_client(
    namespace: str, client_id: str, registry: RoomRegistry = Depends(get_registry)
) -> Dict[str, bool]:
    """
    Removes a client from every room in the namespace.
    """
    try:
        removed = await registry.remove_client_from_namespace(namespace, client_id)
    except (RedisError, RegistryClosedError) as e:
        raise _registry_failed(e)
    return {"removed": removed}


# === WebSocket Route ===


@router.websocket("/ws/{namespace}/{room_name}")
async def websocket_endpoint(
    websocket: WebSocket, namespace: str, room_name: str, client_id: Optional[str] = None
) -> None:
    """
    Real-time presence endpoint.
    Registers the client in the room for as long as the socket stays open.
    """
    client_id = client_id or str(uuid.uuid4())
    try:
        await manager.connect(websocket, namespace, room_name, client_id)
    except (InvalidNameError, RegistryClosedError, RedisError) as e:
        logger.warning(
            "WS %s could not join %s/%s: %s",
            client_id,
            namespace,
            room_name,
            e,
            extra={"identifier": "api", "meta": {"error": e}},
        )
        code = status.WS_1008_POLICY_VIOLATION if isinstance(e, InvalidNameError) else status.WS_1011_INTERNAL_ERROR
        await websocket.close(code=code)
        return

    try:
        while True:
            # Upstream messages are ignored, we only wait for the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket, namespace, room_name, client_id)
