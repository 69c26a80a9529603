"""
Sightings Store
===============

Shared, append-only log of sightings.

The camera pipeline appends; every connection handler reads. Access goes
through an asyncio.Lock, so a waiting reader suspends instead of blocking
the event loop that serves the other connections.

Design Rules:
    - Insertion order is chronological order
    - Entries are never removed or reordered
    - Identifiers are not deduplicated
    - The lock is held only for the list operation itself, never across I/O
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from ornithology_pi.models.sighting import Sighting


logger = logging.getLogger(__name__)


class SightingsStore:
    """
    Lock-guarded ordered log of Sighting records.

    Example:
        store = SightingsStore()

        # Producer
        await store.append(Sighting(uuid="a1", species="robin"))

        # Readers
        count = await store.length()
        last = await store.last_entry()
    """

    def __init__(self, sightings: Optional[Iterable[Sighting]] = None) -> None:
        """
        Initialize the store.

        Args:
            sightings: Initial entries, oldest first
        """
        self._sightings: List[Sighting] = list(sightings or [])
        self._lock = asyncio.Lock()

    async def append(self, sighting: Sighting) -> None:
        """Append a sighting; visible to every read that starts afterwards."""
        async with self._lock:
            self._sightings.append(sighting)
        logger.debug(f"Stored sighting {sighting.uuid} ({sighting.species})")

    def append_threadsafe(
        self,
        sighting: Sighting,
        loop: asyncio.AbstractEventLoop,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Append from a thread other than the one running ``loop``.

        Blocks the calling thread until the append has completed.

        Args:
            sighting: Sighting to append
            loop: Event loop that serves the connections
            timeout: Maximum seconds to wait. None = wait forever.
        """
        future = asyncio.run_coroutine_threadsafe(self.append(sighting), loop)
        future.result(timeout=timeout)

    async def length(self) -> int:
        """Number of stored sightings."""
        async with self._lock:
            return len(self._sightings)

    async def last_entry(self) -> Optional[Sighting]:
        """
        Most recently appended sighting.

        Returns:
            The last entry, or None if the store is empty
        """
        async with self._lock:
            if not self._sightings:
                return None
            return self._sightings[-1]

    async def last_entry_matching(self, uuid: str) -> Optional[Sighting]:
        """
        Most recently appended sighting with the given identifier.

        When an identifier was appended more than once the newest entry wins.

        Returns:
            The matching entry, or None if nothing matches
        """
        async with self._lock:
            for sighting in reversed(self._sightings):
                if sighting.uuid == uuid:
                    return sighting
        return None
