"""
FastAPI dependencies for registry state validation.
"""

from fastapi import HTTPException, status

from src.services.room_registry import RoomRegistry, room_registry


async def get_registry() -> RoomRegistry:
    """
    Dependency that checks if the room registry is initialized.
    Returns the registry.
    """
    if not room_registry.is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Room registry not ready."
        )
    return room_registry
