import unittest
from datetime import timedelta

import support

from app.core.database import AsyncSessionLocal
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.timestamps import utcnow
from app.models.chat import make_pair_key
from app.services.chat import ChatService
from app.services.media import MediaService
from app.services.message import MessageService, clean_content


class CleanContentTests(unittest.TestCase):
    def test_strips_whitespace(self):
        self.assertEqual(clean_content("  hello \n"), "hello")

    def test_rejects_blank(self):
        with self.assertRaises(ValidationError) as ctx:
            clean_content("   ", temp_id="t1")
        self.assertEqual(ctx.exception.message, "Message content cannot be empty")
        self.assertEqual(ctx.exception.temp_id, "t1")

    def test_blank_allowed_for_captions(self):
        self.assertEqual(clean_content(None, allow_empty=True), "")

    def test_length_limit(self):
        self.assertEqual(len(clean_content("x" * 2000)), 2000)
        with self.assertRaises(ValidationError):
            clean_content("x" * 2001)


class PairKeyTests(unittest.TestCase):
    def test_order_independent(self):
        self.assertEqual(make_pair_key(7, 3), "3:7")
        self.assertEqual(make_pair_key(3, 7), "3:7")


class ChatServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        await support.reset_database_async()
        self.alice = await support.create_user_async("alice@campus.edu", "Alice")
        self.bob = await support.create_user_async("bob@campus.edu", "Bob")
        self.carol = await support.create_user_async("carol@campus.edu", "Carol")
        self.db = AsyncSessionLocal()

    async def asyncTearDown(self):
        await self.db.close()

    async def test_create_then_get_in_either_order(self):
        chats = ChatService(self.db)

        chat, other, created = await chats.create_or_get(self.alice, self.bob)
        self.assertTrue(created)
        self.assertEqual(other.id, self.bob)
        self.assertEqual(chat.pair_key, make_pair_key(self.alice, self.bob))

        again, other, created = await chats.create_or_get(self.bob, self.alice)
        self.assertFalse(created)
        self.assertEqual(again.id, chat.id)
        self.assertEqual(other.id, self.alice)

        found = await chats.find_by_users(self.bob, self.alice)
        self.assertEqual(found.id, chat.id)

    async def test_create_rejects_bad_partners(self):
        chats = ChatService(self.db)
        inactive = await support.create_user_async("dave@campus.edu", "Dave", is_active=False)

        with self.assertRaises(ValidationError):
            await chats.create_or_get(self.alice, None)
        with self.assertRaises(ValidationError):
            await chats.create_or_get(self.alice, self.alice)
        with self.assertRaises(NotFoundError):
            await chats.create_or_get(self.alice, 9999)
        with self.assertRaises(ValidationError):
            await chats.create_or_get(self.alice, inactive)

    async def test_membership(self):
        chats = ChatService(self.db)
        chat, _, _ = await chats.create_or_get(self.alice, self.bob)

        self.assertEqual((await chats.require_membership(chat.id, self.bob)).id, chat.id)
        with self.assertRaises(ForbiddenError) as ctx:
            await chats.require_membership(chat.id, self.carol, temp_id="t9")
        self.assertEqual(ctx.exception.temp_id, "t9")
        with self.assertRaises(NotFoundError):
            await chats.require_membership(chat.id + 100, self.alice)

    async def test_list_orders_by_latest_activity(self):
        chats = ChatService(self.db)
        with_bob, _, _ = await chats.create_or_get(self.alice, self.bob)
        with_carol, _, _ = await chats.create_or_get(self.carol, self.alice)

        await chats.touch(with_bob.id, at=utcnow() + timedelta(minutes=5))
        listed, total = await chats.list_for_user(self.alice)
        self.assertEqual(total, 2)
        self.assertEqual([c.id for c in listed], [with_bob.id, with_carol.id])

        listed, total = await chats.list_for_user(self.bob)
        self.assertEqual(total, 1)

        listed, _ = await chats.list_for_user(self.alice, page=2, limit=1)
        self.assertEqual([c.id for c in listed], [with_carol.id])


class MessageServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        await support.reset_database_async()
        self.alice = await support.create_user_async("alice@campus.edu", "Alice")
        self.bob = await support.create_user_async("bob@campus.edu", "Bob")
        self.carol = await support.create_user_async("carol@campus.edu", "Carol")
        self.db = AsyncSessionLocal()
        chat, _, _ = await ChatService(self.db).create_or_get(self.alice, self.bob)
        self.chat_id = chat.id
        self.messages = MessageService(self.db)

    async def asyncTearDown(self):
        await self.db.close()

    async def test_messages_are_listed_newest_first(self):
        ids = []
        for text in ("one", "two", "three"):
            message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content=text)
            ids.append(message.id)

        listed = await self.messages.list_by_chat(self.chat_id)
        self.assertEqual([m.id for m in listed], list(reversed(ids)))
        self.assertEqual(await self.messages.count_by_chat(self.chat_id), 3)
        self.assertEqual((await self.messages.latest_in_chat(self.chat_id)).content, "three")

        page = await self.messages.list_by_chat(self.chat_id, page=2, limit=2)
        self.assertEqual([m.content for m in page], ["one"])

    async def test_new_message_is_unread_and_undelivered(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="hey")

        self.assertIsNotNone(message.sent_at)
        self.assertIsNone(message.read_at)
        self.assertIsNone(message.delivered_at)
        self.assertEqual(await self.messages.count_unread(self.chat_id, self.bob), 1)
        self.assertEqual(await self.messages.count_unread(self.chat_id, self.alice), 0)

    async def test_mark_read_sets_timestamp_once(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="hey")

        read, chat = await self.messages.mark_read_by(message.id, self.bob)
        self.assertEqual(chat.id, self.chat_id)
        self.assertIsNotNone(read.read_at)
        first_read_at = read.read_at

        again, _ = await self.messages.mark_read_by(message.id, self.bob)
        self.assertEqual(again.read_at, first_read_at)
        self.assertEqual(await self.messages.count_unread(self.chat_id, self.bob), 0)

    async def test_mark_read_rules(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="hey")

        with self.assertRaises(ValidationError):
            await self.messages.mark_read_by(message.id, self.alice)
        with self.assertRaises(ForbiddenError):
            await self.messages.mark_read_by(message.id, self.carol)
        with self.assertRaises(NotFoundError):
            await self.messages.mark_read_by(message.id + 100, self.bob)

        unchanged = await self.messages.get_by_id(message.id)
        self.assertIsNone(unchanged.read_at)

    async def test_mark_delivered_is_idempotent(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="hey")

        first = await self.messages.mark_as_delivered(message.id)
        second = await self.messages.mark_as_delivered(message.id)
        self.assertIsNotNone(first.delivered_at)
        self.assertEqual(second.delivered_at, first.delivered_at)

    async def test_touch_moves_chat_activity(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="hey")
        chats = ChatService(self.db)

        await chats.touch(self.chat_id, at=message.sent_at)

        chat = await chats.get_by_id(self.chat_id)
        await self.db.refresh(chat)
        self.assertEqual(chat.updated_at, message.sent_at)

    async def test_media_attached_to_message(self):
        message = await self.messages.create(chat_id=self.chat_id, sender_id=self.alice, content="")
        media = MediaService(self.db)
        await media.create(message_id=message.id, image_id="img1", url="/media/img1.png")
        await media.create(message_id=message.id, image_id="img2", url="/media/img2.png")

        stored = await media.list_by_message(message.id)
        self.assertEqual([m.image_id for m in stored], ["img1", "img2"])

        loaded = await self.messages.get_by_id(message.id)
        self.assertEqual([m.url for m in loaded.media], ["/media/img1.png", "/media/img2.png"])


if __name__ == "__main__":
    unittest.main()
