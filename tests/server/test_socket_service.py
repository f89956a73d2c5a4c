import asyncio
import unittest
from typing import Any

from relay_chat.server.relay import EVENT_COMPLETE, StreamingRelay
from relay_chat.server.socket_service import SocketService


class _FakeAsyncServer:
    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.emitted: list[dict[str, Any]] = []
        self.rooms: dict[str, set[str]] = {}

    def on(self, event: str, handler: Any = None) -> None:
        self.handlers[event] = handler

    async def emit(self, event: str, data: Any = None, to: str | None = None, room: str | None = None,
                   skip_sid: str | None = None) -> None:
        self.emitted.append({"event": event, "data": data, "to": to, "room": room, "skip_sid": skip_sid})

    async def enter_room(self, sid: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid: str, room: str) -> None:
        self.rooms.get(room, set()).discard(sid)


class _OneShotProvider:
    async def stream_text(self, prompt: str):
        yield prompt.upper()


class SocketServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._io = _FakeAsyncServer()
        self._service = SocketService(self._io, StreamingRelay(_OneShotProvider(), self._io.emit))

    def _trigger(self, event: str, *args: Any) -> None:
        asyncio.run(self._io.handlers[event](*args))

    def test_registers_all_channel_events(self) -> None:
        for event in ("connect", "disconnect", "chat-message", "message", "broadcast",
                      "join-room", "leave-room", "room-message"):
            self.assertIn(event, self._io.handlers)

    def test_chat_message_is_relayed_to_sender(self) -> None:
        self._trigger("chat-message", "sid-1", {"prompt": "hi"})
        complete = [e for e in self._io.emitted if e["event"] == EVENT_COMPLETE]
        self.assertEqual([{"fullResponse": "HI"}], [e["data"] for e in complete])
        self.assertEqual("sid-1", complete[0]["to"])

    def test_message_is_echoed(self) -> None:
        self._trigger("message", "sid-1", "ping")
        self.assertEqual(
            [{"event": "message", "data": {"echo": "ping"}, "to": "sid-1", "room": None, "skip_sid": None}],
            self._io.emitted,
        )

    def test_broadcast_goes_to_everyone(self) -> None:
        self._trigger("broadcast", "sid-1", {"hello": "all"})
        self.assertEqual("broadcast", self._io.emitted[0]["event"])
        self.assertIsNone(self._io.emitted[0]["to"])
        self.assertIsNone(self._io.emitted[0]["room"])

    def test_join_room_notifies_others(self) -> None:
        self._trigger("join-room", "sid-1", "room-a")
        self.assertEqual({"sid-1"}, self._io.rooms["room-a"])
        self.assertEqual(
            {"event": "user-joined", "data": {"socketId": "sid-1"}, "to": None, "room": "room-a", "skip_sid": "sid-1"},
            self._io.emitted[0],
        )

    def test_leave_room_notifies_room(self) -> None:
        self._trigger("join-room", "sid-1", "room-a")
        self._trigger("leave-room", "sid-1", "room-a")
        self.assertEqual(set(), self._io.rooms["room-a"])
        self.assertEqual("user-left", self._io.emitted[-1]["event"])
        self.assertEqual("room-a", self._io.emitted[-1]["room"])

    def test_room_message_is_forwarded_with_sender(self) -> None:
        self._trigger("room-message", "sid-1", {"roomId": "room-a", "message": {"text": "yo"}})
        self.assertEqual(
            {"from": "sid-1", "message": {"text": "yo"}},
            self._io.emitted[0]["data"],
        )
        self.assertEqual("room-a", self._io.emitted[0]["room"])

    def test_room_message_without_room_is_ignored(self) -> None:
        self._trigger("room-message", "sid-1", {"message": "lost"})
        self.assertEqual([], self._io.emitted)

    def test_emit_helpers(self) -> None:
        async def scenario() -> None:
            await self._service.emit_to_all("notice", {"n": 1})
            await self._service.emit_to_room("room-a", "notice", {"n": 2})
            await self._service.emit_to_socket("sid-9", "notice", {"n": 3})

        asyncio.run(scenario())
        self.assertEqual([None, "room-a", None], [e["room"] for e in self._io.emitted])
        self.assertEqual([None, None, "sid-9"], [e["to"] for e in self._io.emitted])

    def test_connect_and_disconnect_handlers_accept_transport_arguments(self) -> None:
        self._trigger("connect", "sid-1", {}, None)
        self._trigger("disconnect", "sid-1", "client disconnect")
        self._trigger("disconnect", "sid-1")
        self.assertEqual([], self._io.emitted)


if __name__ == "__main__":
    unittest.main()
