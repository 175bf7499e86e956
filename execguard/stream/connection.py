"""
User data stream connection lifecycle.

State flow:
    DISCONNECTED -> CONNECTING -> CONNECTED -> (socket closed) -> DISCONNECTED
    -> CONNECTING (reconnect) -> ... -> CLOSING -> CLOSED

CLOSED is terminal and only reached through close(). Reconnects use a capped
exponential backoff with jitter; once the attempt budget is spent a single
"max_reconnect_attempts_reached" event is published and no further
automatic reconnect happens.
"""

import asyncio
import itertools
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from ..config.defaults import StreamParams
from ..errors import MaxReconnectExceededError, StreamDisconnectedError
from ..logging.config import get_stream_logger, log_state_transition
from ..signing.ratelimit import apply_jitter, calculate_backoff_delay
from .bus import EventBus, Handler
from .events import MalformedFrameError, parse_stream_event

logger = get_stream_logger(__name__)

CONNECTED_CHANNEL = "connected"
DISCONNECTED_CHANNEL = "disconnected"
MAX_RECONNECT_CHANNEL = "max_reconnect_attempts_reached"

ASTER_REST_HOST = "fapi.asterdex.com"
ASTER_STREAM_BASE = "wss://fstream.asterdex.com"

_connection_ids = itertools.count(1)


class StreamState(str, Enum):
    """Lifecycle state of a stream connection"""
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


def derive_ws_base_url(rest_base_url: str) -> str:
    """
    Stream base URL for a REST base URL.

    The Aster futures REST host streams from a separate host; any other base
    keeps its host and swaps the scheme.
    """
    if ASTER_REST_HOST in rest_base_url:
        return ASTER_STREAM_BASE
    return rest_base_url.replace("https://", "wss://", 1).replace("http://", "ws://", 1).rstrip("/")


class StreamConnection:
    """One user data stream session with keepalive and reconnect."""

    def __init__(
        self,
        listen_key: str,
        params: Optional[StreamParams] = None,
        session: Optional[aiohttp.ClientSession] = None,
        bus: Optional[EventBus] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        rng: Optional[Callable[[], float]] = None,
        connection_id: Optional[str] = None,
    ) -> None:
        self.params = params or StreamParams()
        self.bus = bus or EventBus()
        self.connection_id = connection_id or f"stream-{next(_connection_ids)}"
        self.reconnect_attempts = 0

        self._listen_key = listen_key
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep or asyncio.sleep
        self._rng = rng
        self._state = StreamState.DISCONNECTED
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reconnecting = False
        self._closing = False
        self._exhausted = False
        self._keepalive_task: Optional[asyncio.Task] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

    @property
    def connection_state(self) -> StreamState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is StreamState.CONNECTED

    @property
    def is_reconnecting(self) -> bool:
        return self._reconnecting

    @property
    def listen_key(self) -> str:
        return self._listen_key

    @property
    def url(self) -> str:
        base = self.params.ws_base_url.rstrip("/")
        return f"{base}{self.params.ws_path_prefix}/{self._listen_key}"

    @property
    def reconnect_task(self) -> Optional[asyncio.Task]:
        """Background reconnect in progress, if any."""
        return self._reconnect_task

    def update_listen_key(self, listen_key: str) -> None:
        """Use a new listen key for every later connect or reconnect."""
        self._listen_key = listen_key
        # A fresh key gets a fresh reconnect budget
        self.reconnect_attempts = 0
        self._exhausted = False
        logger.info("Listen key updated", connection_id=self.connection_id)

    def on(self, channel: str, handler: Handler) -> Callable[[], bool]:
        return self.bus.subscribe(channel, handler)

    def off(self, channel: str, handler: Handler) -> bool:
        return self.bus.unsubscribe(channel, handler)

    async def connect(self) -> None:
        """
        Open the stream and start keepalive and frame reading.

        Raises:
            StreamDisconnectedError: If the connection is closed or the
                socket cannot be opened
        """
        if self._state is StreamState.CLOSED or self._closing:
            raise StreamDisconnectedError("Stream connection is closed", state=self._state.value)
        if self._state in (StreamState.CONNECTING, StreamState.CONNECTED):
            return
        await self._open("connect")

    async def _open(self, trigger: str) -> None:
        self._transition(StreamState.CONNECTING, trigger)

        try:
            session = self._ensure_session()
            ws = await session.ws_connect(self.url, autoping=False)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._transition(StreamState.DISCONNECTED, "connect_failed")
            raise StreamDisconnectedError(
                f"Failed to open stream: {e}",
                state=self._state.value,
                context={"connection_id": self.connection_id}
            ) from e

        self._ws = ws
        self.reconnect_attempts = 0
        self._exhausted = False
        self._transition(StreamState.CONNECTED, "open")

        self._start_keepalive(ws)
        self._reader_task = asyncio.create_task(self._read_loop(ws))

        await self.bus.publish(CONNECTED_CHANNEL, {"connection_id": self.connection_id})

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            while True:
                msg = await ws.receive()

                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    await self._handle_frame(msg.data)
                elif msg.type == aiohttp.WSMsgType.PING:
                    # Echo server pings with the same payload
                    await ws.pong(msg.data)
                elif msg.type == aiohttp.WSMsgType.PONG:
                    continue
                else:
                    logger.info(
                        "Stream socket closed",
                        connection_id=self.connection_id,
                        message_type=str(msg.type),
                        close_code=getattr(ws, "close_code", None)
                    )
                    break
        except (aiohttp.ClientError, ConnectionError) as e:
            logger.warning("Stream read failed", connection_id=self.connection_id, error=str(e))

        await self._on_socket_closed(ws)

    async def _handle_frame(self, data: Any) -> None:
        try:
            event = parse_stream_event(data)
        except MalformedFrameError as e:
            logger.warning("Dropping malformed frame", connection_id=self.connection_id, error=str(e))
            return

        logger.debug("Stream event received", connection_id=self.connection_id, event_type=event.event_type)
        for channel in event.channels:
            await self.bus.publish(channel, event)

    async def _on_socket_closed(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._stop_keepalive()
        if self._ws is ws:
            self._ws = None

        if self._closing or self._state in (StreamState.CLOSING, StreamState.CLOSED):
            return

        self._transition(StreamState.DISCONNECTED, "socket_closed")
        await self.bus.publish(DISCONNECTED_CHANNEL, {"connection_id": self.connection_id})

        if not self._reconnecting and self.reconnect_attempts < self.params.max_reconnect_attempts:
            self._reconnect_task = asyncio.create_task(self.reconnect())

    async def reconnect(self) -> bool:
        """
        Reconnect with capped exponential backoff until connected, closed or
        out of attempts.

        The max_reconnect_attempts_reached event is published once per
        exhausted budget; later calls return False without publishing.

        Returns:
            True if a new session was opened
        """
        if self._reconnecting or self._closing or self._state is StreamState.CLOSED:
            return False
        if self._exhausted:
            return False

        self._reconnecting = True
        try:
            while not self._closing:
                if self.reconnect_attempts >= self.params.max_reconnect_attempts:
                    self._exhausted = True
                    await self._publish_exhausted()
                    return False

                self.reconnect_attempts += 1
                delay_ms = apply_jitter(
                    calculate_backoff_delay(
                        self.reconnect_attempts,
                        self.params.reconnect_base_delay_ms,
                        self.params.reconnect_max_delay_ms,
                    ),
                    self.params.reconnect_jitter_ratio,
                    self._rng,
                )

                logger.info(
                    "Reconnecting",
                    connection_id=self.connection_id,
                    attempt=self.reconnect_attempts,
                    max_attempts=self.params.max_reconnect_attempts,
                    delay_ms=delay_ms
                )
                await self._sleep(delay_ms / 1000)

                if self._closing:
                    return False

                try:
                    await self._open("reconnect")
                    return True
                except StreamDisconnectedError as e:
                    logger.warning(
                        "Reconnect attempt failed",
                        connection_id=self.connection_id,
                        attempt=self.reconnect_attempts,
                        error=e.message
                    )
            return False
        finally:
            self._reconnecting = False

    async def _publish_exhausted(self) -> None:
        error = MaxReconnectExceededError(
            f"Max reconnection attempts reached ({self.reconnect_attempts})",
            attempts=self.reconnect_attempts,
            context={"connection_id": self.connection_id}
        )
        logger.error(
            "Max reconnection attempts reached",
            connection_id=self.connection_id,
            attempts=self.reconnect_attempts
        )
        await self.bus.publish(MAX_RECONNECT_CHANNEL, error)

    def _start_keepalive(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._stop_keepalive()
        self._keepalive_task = asyncio.create_task(self._keepalive_loop(ws))

    def _stop_keepalive(self) -> None:
        task = self._keepalive_task
        self._keepalive_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _keepalive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            await asyncio.sleep(self.params.keepalive_interval_s)
            if ws.closed:
                return
            try:
                await ws.ping()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                logger.warning("Keepalive ping failed", connection_id=self.connection_id, error=str(e))
                return

    async def close(self) -> None:
        """Tear down the session. Never followed by an automatic reconnect."""
        if self._state is StreamState.CLOSED:
            return

        self._closing = True
        self._transition(StreamState.CLOSING, "close")
        self._stop_keepalive()

        current = asyncio.current_task()
        pending = [
            task for task in (self._reconnect_task, self._reader_task)
            if task is not None and not task.done() and task is not current
        ]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

        self._transition(StreamState.CLOSED, "close")

    def _transition(self, to_state: StreamState, trigger: str) -> None:
        from_state = self._state
        if from_state is to_state:
            return
        self._state = to_state
        log_state_transition(
            logger,
            connection_id=self.connection_id,
            from_state=from_state.value,
            to_state=to_state.value,
            trigger=trigger,
            context={"reconnect_attempts": self.reconnect_attempts}
        )
