import asyncio
import unittest

from app.websockets.presence import PresenceRegistry


class PresenceRegistryTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.registry = PresenceRegistry()

    async def test_register_and_lookup(self):
        await self.registry.register(1, "conn-a")

        self.assertEqual(await self.registry.lookup(1), "conn-a")
        self.assertTrue(await self.registry.is_online(1))
        self.assertFalse(await self.registry.is_online(2))
        self.assertIsNone(await self.registry.lookup(2))
        self.assertEqual(await self.registry.count(), 1)

    async def test_last_connection_wins(self):
        await self.registry.register(1, "tab-1")
        replaced = await self.registry.register(1, "tab-2")

        self.assertEqual(replaced, "tab-1")
        self.assertEqual(await self.registry.lookup(1), "tab-2")
        self.assertEqual(await self.registry.count(), 1)

    async def test_registering_same_connection_twice_is_idempotent(self):
        await self.registry.register(1, "conn")
        replaced = await self.registry.register(1, "conn")

        self.assertIsNone(replaced)
        self.assertEqual(await self.registry.lookup(1), "conn")

    async def test_orphaned_connection_does_not_unregister_newer_one(self):
        await self.registry.register(1, "tab-1")
        await self.registry.register(1, "tab-2")

        self.assertFalse(await self.registry.unregister("tab-1"))
        self.assertEqual(await self.registry.lookup(1), "tab-2")

        self.assertTrue(await self.registry.unregister("tab-2"))
        self.assertFalse(await self.registry.is_online(1))

    async def test_unregister_is_safe_to_repeat(self):
        await self.registry.register(7, "conn")

        self.assertTrue(await self.registry.unregister("conn"))
        self.assertFalse(await self.registry.unregister("conn"))
        self.assertFalse(await self.registry.unregister("never-seen"))
        self.assertEqual(await self.registry.count(), 0)

    async def test_online_users(self):
        await self.registry.register(3, "c3")
        await self.registry.register(1, "c1")

        self.assertEqual(sorted(await self.registry.online_users()), [1, 3])

    async def test_concurrent_connect_and_disconnect(self):
        handles = [f"conn-{i}" for i in range(200)]
        await asyncio.gather(*(self.registry.register(i, h) for i, h in enumerate(handles)))
        self.assertEqual(await self.registry.count(), 200)

        await asyncio.gather(*(self.registry.unregister(h) for h in handles[::2]))

        self.assertEqual(await self.registry.count(), 100)
        self.assertFalse(await self.registry.is_online(0))
        self.assertTrue(await self.registry.is_online(1))


if __name__ == "__main__":
    unittest.main()
