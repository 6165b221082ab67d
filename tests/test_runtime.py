"""Tests for the session runtime event queue."""

from __future__ import annotations

import asyncio

from dovetail_chat.chat.events import (
    DictationEnded,
    DictationResult,
    EmitUserText,
    SendRequested,
)
from dovetail_chat.errors import ChannelDisconnected
from dovetail_chat.runtime import ChatRuntime
from dovetail_chat.speech.controller import DictationState
from dovetail_chat.speech.engines import DictationEngine
from dovetail_chat.transport.base import TransportChannel


class FakeChannel(TransportChannel):
    """In-memory channel for testing."""

    def __init__(self, connect_ok=True, fail_sends=False, fail_connects=0):
        super().__init__()
        self.sent = []
        self.connect_ok = connect_ok
        self.fail_connects = fail_connects
        self.connect_calls = 0
        self.fail_sends = fail_sends
        self._connected = False

    @property
    def connected(self):
        return self._connected

    async def connect(self):
        self.connect_calls += 1
        if not self.connect_ok or self.connect_calls <= self.fail_connects:
            self._dispatch_status(False, "refused")
            raise ChannelDisconnected("refused")
        self._connected = True
        self._dispatch_status(True, "")

    async def disconnect(self):
        self._connected = False

    async def send_user_text(self, text):
        if self.fail_sends or not self._connected:
            raise ChannelDisconnected()
        self.sent.append(text)

    # test helpers
    def receive(self, text):
        self._dispatch_agent_text(text)

    def drop(self, reason="transport close"):
        self._connected = False
        self._dispatch_status(False, reason)


class FakeEngine(DictationEngine):
    """Dictation engine that records calls and lets tests emit events."""

    def __init__(self, available=True):
        self.available = available
        self.started = []
        self.stopped = []
        self.sink = None

    @property
    def has_dictation(self):
        return self.available

    def start(self, generation, sink):
        self.started.append(generation)
        self.sink = sink

    def stop(self, generation):
        self.stopped.append(generation)


def run(coro):
    return asyncio.run(coro)


class TestChatRuntime:
    """Tests for ChatRuntime."""

    def test_send_and_reply(self):
        """Full turn through the queue with a fake channel."""

        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel, FakeEngine())
            await runtime.start()
            await runtime.drain()

            runtime.send("Hi")
            await runtime.drain()
            assert channel.sent == ["Hi"]
            pending = runtime.view()

            channel.receive("Hello!")
            await runtime.drain()
            await runtime.stop()
            return pending, runtime.view()

        pending, final = run(scenario())
        assert [(e.text, e.kind.value) for e in pending.entries] == [
            ("Hi", "final"),
            ("", "pending"),
        ]
        assert [e.text for e in final.entries] == ["Hi", "Hello!"]

    def test_blank_send_emits_nothing(self):
        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel)
            await runtime.start()
            runtime.send("   ")
            await runtime.drain()
            await runtime.stop()
            return channel, runtime.view()

        channel, view = run(scenario())
        assert channel.sent == []
        assert view.entries == ()

    def test_starts_disconnected_when_connect_fails(self):
        """A refused connection is state, not an exception."""

        async def scenario():
            channel = FakeChannel(connect_ok=False)
            runtime = ChatRuntime(channel)
            await runtime.start()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return channel, runtime.view()

        channel, view = run(scenario())
        assert view.connected is False
        assert view.entries == ()
        assert view.input_buffer == "Hi"
        assert view.notice

    def test_failed_emit_closes_pending(self):
        async def scenario():
            channel = FakeChannel(fail_sends=True)
            runtime = ChatRuntime(channel)
            await runtime.start()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return runtime.view()

        view = run(scenario())
        assert view.entries[1].failed is True
        assert view.input_buffer == "Hi"

    def test_connection_loss_rejects_sends(self):
        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel)
            await runtime.start()
            channel.drop()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return channel, runtime.view()

        channel, view = run(scenario())
        assert channel.sent == []
        assert view.connected is False
        assert view.input_buffer == "Hi"

    def test_dictation_round_trip(self):
        """Engine events posted from a sink reach the controller."""

        async def scenario():
            engine = FakeEngine()
            runtime = ChatRuntime(FakeChannel(), engine)
            await runtime.start()

            runtime.toggle_dictation()
            await runtime.drain()
            listening = runtime.view().dictation_state

            engine.sink(DictationResult(generation=engine.started[-1], text="hello"))
            engine.sink(DictationEnded(generation=engine.started[-1]))
            await asyncio.sleep(0)
            await runtime.drain()
            await runtime.stop()
            return engine, listening, runtime.view()

        engine, listening, view = run(scenario())
        assert engine.started == [1]
        assert listening == DictationState.LISTENING
        assert view.dictation_state == DictationState.IDLE
        assert view.input_buffer == "hello"

    def test_toggle_while_listening_stops_engine(self):
        async def scenario():
            engine = FakeEngine()
            runtime = ChatRuntime(FakeChannel(), engine)
            await runtime.start()
            runtime.toggle_dictation()
            runtime.toggle_dictation()
            await runtime.drain()
            await runtime.stop()
            return engine

        engine = run(scenario())
        assert engine.started == [1]
        assert engine.stopped == [1]

    def test_events_from_worker_thread(self):
        """post_threadsafe marshals events onto the session loop."""

        async def scenario():
            engine = FakeEngine()
            runtime = ChatRuntime(FakeChannel(), engine)
            await runtime.start()
            runtime.toggle_dictation()
            await runtime.drain()

            generation = engine.started[-1]
            await asyncio.to_thread(
                engine.sink, DictationResult(generation=generation, text="from thread")
            )
            await asyncio.sleep(0)
            await runtime.drain()
            await runtime.stop()
            return runtime.view()

        view = run(scenario())
        assert view.input_buffer == "from thread"

    def test_stop_deregisters_listeners(self):
        """No inbound event is handled once the session has ended."""

        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel)
            await runtime.start()
            await runtime.drain()
            await runtime.stop()
            channel.receive("too late")
            return channel, runtime.view()

        channel, view = run(scenario())
        assert channel._agent_handlers == []
        assert channel._status_handlers == []
        assert view.entries == ()

    def test_stop_cancels_active_dictation(self):
        async def scenario():
            engine = FakeEngine()
            runtime = ChatRuntime(FakeChannel(), engine)
            await runtime.start()
            runtime.toggle_dictation()
            await runtime.drain()
            await runtime.stop()
            return engine, runtime.view()

        engine, view = run(scenario())
        assert engine.stopped == [1]
        assert view.dictation_state == DictationState.IDLE

    def test_run_exits_after_stop(self):
        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel)
            await runtime.start()
            pump = asyncio.create_task(runtime.run())
            runtime.send("Hi")
            await asyncio.sleep(0.01)
            await runtime.stop()
            await asyncio.wait_for(pump, timeout=1)
            return channel, runtime

        channel, runtime = run(scenario())
        assert channel.sent == ["Hi"]
        assert runtime.started is False

    def test_subscribers_receive_views(self):
        async def scenario():
            runtime = ChatRuntime(FakeChannel())
            views = []
            runtime.subscribe(views.append)
            await runtime.start()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return views

        views = run(scenario())
        assert views[0].connected is True
        assert len(views[-1].entries) == 2

    def test_failing_subscriber_does_not_break_pump(self):
        async def scenario():
            runtime = ChatRuntime(FakeChannel())

            def broken(_view):
                raise RuntimeError("render failed")

            runtime.subscribe(broken)
            await runtime.start()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return runtime.view()

        view = run(scenario())
        assert len(view.entries) == 2

    def test_process_returns_effects(self):
        async def scenario():
            channel = FakeChannel()
            runtime = ChatRuntime(channel)
            await runtime.start()
            await runtime.drain()
            effects = await runtime.process(SendRequested("Hi"))
            await runtime.stop()
            return effects

        assert run(scenario()) == [EmitUserText(request_id=1, text="Hi")]

    def test_post_before_start_is_dropped(self):
        runtime = ChatRuntime(FakeChannel())
        runtime.send("Hi")
        assert runtime.view().entries == ()


class TestReconnect:
    """Tests for retrying a connection that failed at start."""

    def test_retries_until_connected(self):
        """A server that is slow to come up is reached by a later attempt."""

        async def scenario():
            channel = FakeChannel(fail_connects=2)
            runtime = ChatRuntime(channel, reconnect_delay=0.01)
            await runtime.start()
            await runtime.drain()
            disconnected = runtime.view().connected

            await asyncio.sleep(0.1)
            await runtime.drain()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()
            return channel, disconnected, runtime.view()

        channel, disconnected, view = run(scenario())
        assert disconnected is False
        assert channel.connect_calls == 3
        assert view.connected is True
        assert view.notice is None
        assert channel.sent == ["Hi"]

    def test_gives_up_after_attempts(self):
        async def scenario():
            channel = FakeChannel(connect_ok=False)
            runtime = ChatRuntime(channel, reconnect_attempts=2, reconnect_delay=0.01)
            await runtime.start()
            await asyncio.sleep(0.2)
            await runtime.drain()
            await runtime.stop()
            return channel, runtime.view()

        channel, view = run(scenario())
        assert channel.connect_calls == 3
        assert view.connected is False

    def test_reconnect_disabled(self):
        async def scenario():
            channel = FakeChannel(connect_ok=False)
            runtime = ChatRuntime(channel, reconnect=False, reconnect_delay=0.01)
            await runtime.start()
            await asyncio.sleep(0.05)
            await runtime.stop()
            return channel

        assert run(scenario()).connect_calls == 1

    def test_stop_cancels_pending_retry(self):
        async def scenario():
            channel = FakeChannel(connect_ok=False)
            runtime = ChatRuntime(channel, reconnect_delay=10)
            await runtime.start()
            await runtime.stop()
            await asyncio.sleep(0)
            return channel, runtime

        channel, runtime = run(scenario())
        assert channel.connect_calls == 1
        assert runtime._retry_task is None


class TestInputEdits:
    """Tests for keystroke edits racing controller buffer changes."""

    def test_edit_queued_before_send_is_dropped(self):
        """Typing right after Enter never resurrects text the screen cleared."""

        async def scenario():
            runtime = ChatRuntime(FakeChannel())
            await runtime.start()
            await runtime.drain()
            seen = runtime.view().buffer_revision

            runtime.send("Hi")
            runtime.edit_input("x", revision=seen)
            await runtime.drain()
            await runtime.stop()
            return seen, runtime.view()

        seen, view = run(scenario())
        assert view.input_buffer == ""
        assert view.buffer_revision == seen + 1

    def test_edit_at_current_revision_applies(self):
        async def scenario():
            runtime = ChatRuntime(FakeChannel())
            await runtime.start()
            runtime.edit_input("draft", revision=runtime.view().buffer_revision)
            await runtime.drain()
            await runtime.stop()
            return runtime.view()

        assert run(scenario()).input_buffer == "draft"


class TestLogging:
    def test_undelivered_request_logged_with_request_id(self, caplog):
        async def scenario():
            runtime = ChatRuntime(FakeChannel(fail_sends=True))
            await runtime.start()
            runtime.send("Hi")
            await runtime.drain()
            await runtime.stop()

        with caplog.at_level("WARNING", logger="dovetail_chat.runtime"):
            run(scenario())

        records = [r for r in caplog.records if "not delivered" in r.getMessage()]
        assert records
        assert records[0].request_id == 1
