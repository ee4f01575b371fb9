"""Helpers used across the project."""

from collections.abc import Iterable, Mapping
from typing import Any, Awaitable, Callable

AsyncCallback = Callable[[Any, Any, Any], Awaitable[Any]]


async def async_for_each(iterable: Any, callback: AsyncCallback) -> None:
    """
    Awaits callback once per element, one at a time.

    Mappings are iterated by key and the callback receives (value, key, iterable),
    anything else by position and the callback receives (item, index, iterable).
    Iterates over a snapshot, so the callback may mutate the collection.
    """
    if iterable is None:
        return

    if isinstance(iterable, Mapping):
        for key, value in list(iterable.items()):
            await callback(value, key, iterable)
    elif isinstance(iterable, Iterable):
        for index, item in enumerate(list(iterable)):
            await callback(item, index, iterable)
    else:
        raise TypeError(f"Can't iterate over {type(iterable).__name__}")
