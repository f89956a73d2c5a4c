import json

from relay_chat.chat.models import NEW_CHAT_TITLE, Message
from relay_chat.storage import STORAGE_KEY, ChatStorage, LocalStorage
from tests.storage.base import ChatStorageTestCase


class ChatStorageTests(ChatStorageTestCase):
    def test_empty_storage_has_no_chats(self) -> None:
        self.assertEqual({}, self._storage.get_all_chats())

    def test_created_chat_round_trips(self) -> None:
        chat = self._storage.create_chat()
        stored = self._storage.get_all_chats()
        self.assertIn(chat.id, stored)
        self.assertEqual(chat.to_dict(), stored[chat.id].to_dict())

    def test_mapping_is_stored_under_fixed_key(self) -> None:
        chat = self._storage.create_chat()
        raw = json.loads(self._local.get_item(STORAGE_KEY))
        self.assertEqual([chat.id], list(raw))
        self.assertEqual(NEW_CHAT_TITLE, raw[chat.id]["title"])
        self.assertIn("createdAt", raw[chat.id])

    def test_corrupt_payload_reads_as_empty(self) -> None:
        self._local.set_item(STORAGE_KEY, "{not json")
        self.assertEqual({}, self._storage.get_all_chats())
        self.assertTrue(self.logged("ERROR"))

    def test_malformed_record_reads_as_empty(self) -> None:
        self._local.set_item(STORAGE_KEY, json.dumps({"c1": {"title": "missing ids"}}))
        self.assertEqual({}, self._storage.get_all_chats())

    def test_update_unknown_chat_leaves_mapping_unchanged(self) -> None:
        self._storage.create_chat()
        before = {k: v.to_dict() for k, v in self._storage.get_all_chats().items()}

        self._storage.update_chat("missing", [Message.create("user", "hello")])

        after = {k: v.to_dict() for k, v in self._storage.get_all_chats().items()}
        self.assertEqual(before, after)
        self.assertIn("Chat with id missing not found", self.logged("ERROR"))

    def test_update_replaces_messages_and_derives_title(self) -> None:
        chat = self._storage.create_chat()
        messages = [Message.create("user", "q" * 60), Message.create("assistant", "a")]

        self._storage.update_chat(chat.id, messages)

        stored = self._storage.get_chat(chat.id)
        self.assertEqual(messages, stored.messages)
        self.assertEqual("q" * 50 + "...", stored.title)
        self.assertGreaterEqual(stored.updated_at, chat.updated_at)

    def test_update_keeps_derived_title(self) -> None:
        chat = self._storage.create_chat()
        first = [Message.create("user", "first")]
        self._storage.update_chat(chat.id, first)
        self._storage.update_chat(chat.id, [*first, Message.create("user", "second")])
        self.assertEqual("first", self._storage.get_chat(chat.id).title)

    def test_update_skips_blank_user_messages_for_title(self) -> None:
        chat = self._storage.create_chat()
        blank = [Message.create("user", "  ")]
        self._storage.update_chat(chat.id, blank)
        self.assertEqual(NEW_CHAT_TITLE, self._storage.get_chat(chat.id).title)

        self._storage.update_chat(chat.id, [*blank, Message.create("user", "hello")])
        self.assertEqual("hello", self._storage.get_chat(chat.id).title)

    def test_clear_chat_messages_resets_title(self) -> None:
        chat = self._storage.create_chat()
        self._storage.update_chat(chat.id, [Message.create("user", "hello")])

        self._storage.clear_chat_messages(chat.id)

        stored = self._storage.get_chat(chat.id)
        self.assertEqual([], stored.messages)
        self.assertEqual(NEW_CHAT_TITLE, stored.title)

    def test_delete_removes_only_that_chat(self) -> None:
        keep = self._storage.create_chat()
        drop = self._storage.create_chat()
        self._storage.delete_chat(drop.id)
        self.assertEqual([keep.id], list(self._storage.get_all_chats()))

    def test_clear_all_chats_removes_key(self) -> None:
        self._storage.create_chat()
        self._storage.clear_all_chats()
        self.assertIsNone(self._local.get_item(STORAGE_KEY))


class ChatStorageQuotaTests(ChatStorageTestCase):
    quota_bytes = 400

    def test_create_chat_returns_chat_when_persist_fails(self) -> None:
        self._storage.create_chat()
        self._storage.create_chat()
        chat = self._storage.create_chat()

        self.assertIsNotNone(chat.id)
        self.assertNotIn(chat.id, self._storage.get_all_chats())
        self.assertTrue(any("quota exceeded" in m for m in self.logged("WARNING")))

    def test_update_over_quota_keeps_previous_state(self) -> None:
        chat = self._storage.create_chat()
        self._storage.update_chat(chat.id, [Message.create("user", "x" * 500)])
        self.assertEqual([], self._storage.get_chat(chat.id).messages)


class ChatStorageKeyTests(ChatStorageTestCase):
    def test_separate_keys_are_independent(self) -> None:
        other = ChatStorage(self._local, key="other_chats")
        other.create_chat()
        self.assertEqual({}, self._storage.get_all_chats())
        self.assertIsInstance(self._local, LocalStorage)
