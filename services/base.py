import asyncio
import weakref
from typing import Any, Callable, Coroutine, Hashable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


def run_in_thread(func: Callable[..., T], *args, **kwargs) -> Coroutine[Any, Any, T]:
    return asyncio.to_thread(func, *args, **kwargs)


async def end_transaction(session: AsyncSession) -> None:
    """Commit whatever the session has open so no transaction spans slow I/O."""
    if session.in_transaction():
        await session.commit()


class KeyedLock:
    """Hands out one ``asyncio.Lock`` per key; unused locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __call__(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
