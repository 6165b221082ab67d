"""Session runtime: one event queue feeding the session controller.

Channel callbacks, dictation engine callbacks (from worker threads) and UI
intents are all posted onto a single ``asyncio.Queue``. One pump task hands
them to the controller one at a time and executes the returned effects, so
no two handlers ever touch session state concurrently.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from dovetail_chat.chat.controller import SessionController
from dovetail_chat.chat.events import (
    AgentTextReceived,
    ConnectionChanged,
    DictationFailed,
    DictationToggled,
    Effect,
    EmitUserText,
    Event,
    InputEdited,
    SendFailed,
    SendRequested,
    StartCapture,
    StopCapture,
)
from dovetail_chat.chat.models import SessionView
from dovetail_chat.errors import ChannelDisconnected
from dovetail_chat.speech.controller import SpeechInputController
from dovetail_chat.speech.engines import DictationEngine, NullDictationEngine
from dovetail_chat.transport.base import TransportChannel

logger = logging.getLogger(__name__)

ViewListener = Callable[[SessionView], None]

_MAX_RETRY_DELAY = 30.0


class ChatRuntime:
    """Owns the transport, the dictation engine and the session controller.

    Usage:
        runtime = ChatRuntime(SocketIOChannel(url), SpeechRecognitionEngine())
        runtime.subscribe(render)
        async with runtime:
            pump = asyncio.create_task(runtime.run())
            runtime.send("Hi")
    """

    def __init__(
        self,
        channel: TransportChannel,
        engine: DictationEngine | None = None,
        controller: SessionController | None = None,
        reconnect: bool = True,
        reconnect_attempts: int = 0,
        reconnect_delay: float = 1.0,
    ):
        self.channel = channel
        self.engine = engine or NullDictationEngine()
        self.controller = controller or SessionController(
            speech=SpeechInputController(self.engine)
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[Event | None] | None = None
        self._unsubscribe: list[Callable[[], None]] = []
        self._listeners: list[ViewListener] = []
        self.reconnect = reconnect
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self._retry_task: asyncio.Task | None = None

    async def __aenter__(self) -> ChatRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def started(self) -> bool:
        return self._queue is not None

    def view(self) -> SessionView:
        return self.controller.view()

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every processed event."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # -- lifecycle --

    async def start(self) -> None:
        """Register channel listeners and connect.

        A failed initial connection is reported as a disconnected session
        rather than raised, and retried in the background while
        ``reconnect`` is set. ``reconnect_attempts`` of 0 retries forever.
        """
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._unsubscribe = [
            self.channel.on_agent_text(self._on_agent_text),
            self.channel.on_status(self._on_status),
        ]
        try:
            await self.channel.connect()
        except ChannelDisconnected as e:
            logger.warning(f"Starting disconnected: {e}")
            self.post(ConnectionChanged(connected=False, reason=str(e)))
            if self.reconnect:
                self._retry_task = asyncio.create_task(self._retry_connect())

    async def stop(self) -> None:
        """Deregister listeners, cancel dictation and disconnect."""
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

        if self._retry_task is not None:
            self._retry_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._retry_task
            self._retry_task = None

        speech = self.controller.speech
        if speech.is_listening:
            self.engine.stop(speech.stop())

        await self.channel.disconnect()
        if self._queue is not None:
            self._queue.put_nowait(None)

    async def run(self) -> None:
        """Pump events until ``stop()`` is called."""
        if self._queue is None:
            raise RuntimeError("ChatRuntime.start() must be awaited before run()")
        while True:
            event = await self._queue.get()
            if event is None:
                break
            await self.process(event)
        self._queue = None

    async def drain(self) -> None:
        """Process every event queued so far without waiting for more."""
        if self._queue is None:
            return
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if event is None:
                self._queue.put_nowait(None)
                break
            await self.process(event)

    async def process(self, event: Event) -> list[Effect]:
        """Apply one event and execute its effects."""
        effects = self.controller.handle(event)
        for effect in effects:
            await self._apply(effect)
        self._notify()
        return effects

    # -- posting --

    def post(self, event: Event) -> None:
        """Queue an event. Must be called on the session loop."""
        if self._queue is None:
            logger.debug(f"Dropping {type(event).__name__}: runtime not started")
            return
        self._queue.put_nowait(event)

    def post_threadsafe(self, event: Event) -> None:
        """Queue an event from any thread."""
        if self._loop is None or self._loop.is_closed():
            logger.debug(f"Dropping {type(event).__name__}: loop not running")
            return
        self._loop.call_soon_threadsafe(self.post, event)

    # -- presentation intents --

    def send(self, text: str) -> None:
        self.post(SendRequested(text=text))

    def toggle_dictation(self) -> None:
        self.post(DictationToggled())

    def edit_input(self, text: str, revision: int | None = None) -> None:
        self.post(InputEdited(text=text, revision=revision))

    # -- internals --

    async def _retry_connect(self) -> None:
        delay = self.reconnect_delay
        attempt = 0
        while not self.reconnect_attempts or attempt < self.reconnect_attempts:
            await asyncio.sleep(delay)
            attempt += 1
            try:
                await self.channel.connect()
            except ChannelDisconnected as e:
                logger.info(f"Connect attempt {attempt} failed: {e}")
                delay = min(delay * 2, _MAX_RETRY_DELAY)
                continue
            logger.info(f"Connected after {attempt} retries")
            return
        logger.warning(f"Giving up after {attempt} connect attempts")

    def _on_agent_text(self, text: str) -> None:
        self.post(AgentTextReceived(text=text))

    def _on_status(self, connected: bool, reason: str) -> None:
        self.post(ConnectionChanged(connected=connected, reason=reason))

    async def _apply(self, effect: Effect) -> None:
        if isinstance(effect, EmitUserText):
            try:
                await self.channel.send_user_text(effect.text)
            except ChannelDisconnected as e:
                logger.warning(
                    f"Request {effect.request_id} not delivered: {e}",
                    extra={"request_id": effect.request_id},
                )
                self.post(SendFailed(effect.request_id, effect.text, str(e)))
            except Exception as e:
                logger.exception(
                    f"Emit failed for request {effect.request_id}",
                    extra={"request_id": effect.request_id},
                )
                self.post(SendFailed(effect.request_id, effect.text, str(e)))
        elif isinstance(effect, StartCapture):
            try:
                self.engine.start(effect.generation, self.post_threadsafe)
            except Exception as e:
                logger.exception("Dictation engine failed to start")
                self.post(DictationFailed(generation=effect.generation, reason=str(e)))
        elif isinstance(effect, StopCapture):
            self.engine.stop(effect.generation)

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.controller.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener failed")
