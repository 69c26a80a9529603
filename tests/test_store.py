"""
Sightings Store Tests
=====================
"""

import asyncio

from ornithology_pi.models import Sighting
from ornithology_pi.sightings import SightingsStore


class TestSightingsStore:

    def test_empty_store(self):
        async def scenario():
            store = SightingsStore()
            assert await store.length() == 0
            assert await store.last_entry() is None
            assert await store.last_entry_matching("a") is None

        asyncio.run(scenario())

    def test_last_entry_is_most_recent_append(self, sample_sightings):
        async def scenario():
            store = SightingsStore()
            for sighting in sample_sightings:
                await store.append(sighting)
                assert await store.last_entry() == sighting
            assert await store.length() == 3

        asyncio.run(scenario())

    def test_duplicate_identifier_resolves_to_newest(self, sample_sightings):
        async def scenario():
            store = SightingsStore(sample_sightings)
            match = await store.last_entry_matching("a")
            assert match is not None
            assert match.species == "finch"

            other = await store.last_entry_matching("b")
            assert other == Sighting(uuid="b", species="crow")

        asyncio.run(scenario())

    def test_count_during_concurrent_appends(self):
        async def scenario():
            store = SightingsStore()
            total = 200

            async def produce():
                for i in range(total):
                    await store.append(Sighting(uuid=str(i), species="sparrow"))
                    await asyncio.sleep(0)

            async def observe():
                seen = []
                for _ in range(total):
                    seen.append(await store.length())
                    await asyncio.sleep(0)
                return seen

            _, seen = await asyncio.gather(produce(), observe())

            assert all(0 <= count <= total for count in seen)
            assert seen == sorted(seen)
            assert await store.length() == total

        asyncio.run(scenario())

    def test_append_from_another_thread(self):
        async def scenario():
            store = SightingsStore()
            loop = asyncio.get_running_loop()
            sighting = Sighting(uuid="t1", species="magpie")

            await asyncio.to_thread(store.append_threadsafe, sighting, loop, 5.0)

            assert await store.length() == 1
            assert await store.last_entry() == sighting

        asyncio.run(scenario())
