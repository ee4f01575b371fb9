"""Errors raised by the room registry."""


class RoomRegistryError(Exception):
    """Base class for registry errors."""


class InvalidNameError(RoomRegistryError, ValueError):
    """A namespace or room name that can't be used as a storage key."""


class RegistryClosedError(RoomRegistryError):
    """The registry was used after destroy()."""
