"""Fetch-once cells for per-request hosting data."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from .exceptions import RequestClosedError

T = TypeVar("T")


class Lazy(Generic[T]):
    """Value computed by an async supplier on first access, at most once.

    A failed computation is not cached; the exception reaches the caller
    unchanged. Accessing the cell after :meth:`close` raises
    :class:`RequestClosedError` instead of returning stale data.
    """

    def __init__(self, supplier: Callable[[], Awaitable[T]], name: str = "value"):
        self._supplier = supplier
        self._name = name
        self._value: T | None = None
        self._realized = False
        self._closed = False
        self._lock = asyncio.Lock()

    async def get(self) -> T:
        """Return the value, computing it on first use."""
        if self._closed:
            raise RequestClosedError(f"Cannot read {self._name}: request is closed")
        if not self._realized:
            async with self._lock:
                if not self._realized:
                    self._value = await self._supplier()
                    self._realized = True
        return self._value  # type: ignore[return-value]

    @property
    def realized(self) -> bool:
        return self._realized

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the retained value."""
        self._closed = True
        self._value = None
        self._realized = False
