import asyncio
import weakref
from contextlib import asynccontextmanager


class FlightLocks:
    """
    One asyncio.Lock per flight number.

    Locks are held weakly, so an entry disappears once no operation on that
    flight is running or waiting. Cross-process exclusion comes from the
    FOR UPDATE row lock taken inside the transaction.
    """

    def __init__(self):
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, flight_number: str) -> asyncio.Lock:
        lock = self._locks.get(flight_number)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[flight_number] = lock
        return lock

    @asynccontextmanager
    async def hold(self, flight_number: str):
        lock = self._lock_for(flight_number)
        async with lock:
            yield


flight_locks = FlightLocks()
