import asyncio

from relay_chat.chat.state import ChatStateMachine
from relay_chat.client.repl import ChatRepl
from relay_chat.client.session import ChatSession
from tests.client.fakes import FakeConnection
from tests.storage.base import ChatStorageTestCase


class ChatReplTests(ChatStorageTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._state = ChatStateMachine(self._storage)
        self._connection = FakeConnection()
        self._session = ChatSession(self._state, self._connection)
        self._output: list[str] = []
        self._repl = ChatRepl(self._session, self._connection, write=self._output.append)

    def _text(self) -> str:
        return "".join(self._output)

    def test_prompt_streams_deltas_and_waits_for_reply(self) -> None:
        async def scenario() -> None:
            task = asyncio.create_task(self._repl.handle_input("hello"))
            await asyncio.sleep(0)
            self._connection.fire("chat-stream", {"content": "Hi "})
            self._connection.fire("chat-stream", {"content": "there"})
            self._connection.fire("chat-complete", {"fullResponse": "Hi there"})
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())

        self.assertIn("assistant> Hi there", self._text())
        self.assertEqual(["hello", "Hi there"], [m.content for m in self._state.messages])

    def test_prompt_refused_when_disconnected(self) -> None:
        self._connection.connected = False
        asyncio.run(self._repl.handle_input("hello"))
        self.assertIn("Not connected", self._text())
        self.assertEqual([], self._connection.emitted)

    def test_new_and_switch_commands(self) -> None:
        first = self._state.active_chat_id
        self._state.add_message("user", "remember me")

        asyncio.run(self._repl.handle_input("/new"))
        self.assertNotEqual(first, self._state.active_chat_id)

        asyncio.run(self._repl.handle_input(f"/switch {first[:8]}"))
        self.assertEqual(first, self._state.active_chat_id)
        self.assertIn("you> remember me", self._text())

    def test_delete_command_keeps_one_chat(self) -> None:
        only = self._state.active_chat_id
        asyncio.run(self._repl.handle_input(f"/delete {only}"))
        self.assertEqual(1, len(self._state.chats))
        self.assertNotIn(only, self._state.chats)

    def test_switch_to_unknown_chat_reports(self) -> None:
        asyncio.run(self._repl.handle_input("/switch nope"))
        self.assertIn("No chat matches 'nope'", self._text())

    def test_clear_and_status_commands(self) -> None:
        self._state.add_message("user", "hello")
        asyncio.run(self._repl.handle_input("/clear"))
        asyncio.run(self._repl.handle_input("/status"))
        self.assertEqual([], self._state.messages)
        self.assertIn("Connected (http://relay.test)", self._text())
        self.assertIn("Active chat: New Chat", self._text())

    def test_run_loop_exits_on_quit(self) -> None:
        lines = iter(["/chats", "", "quit"])
        repl = ChatRepl(self._session, self._connection, read_line=lambda _: next(lines), write=self._output.append)
        asyncio.run(repl.run())
        self.assertIn("New Chat", self._text())
