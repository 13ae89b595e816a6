import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from cloud_stt.domain.events import Other, StreamError, TranscriptAccumulator, TranscriptEvent
from cloud_stt.domain.session import SessionState, validate_transition
from cloud_stt.errors import (
    EmptyTranscriptError,
    ResponseFormatError,
    StreamTimeoutError,
    SttConnectionError,
    VendorStreamError,
)
from cloud_stt.ports.transcriber import Frame, StreamingProtocol

logger = logging.getLogger(__name__)


class WebSocketLike(Protocol):
    async def send(self, message: Frame) -> None: ...
    async def recv(self) -> Frame: ...
    async def close(self) -> None: ...


Connector = Callable[[str, dict[str, str]], Awaitable[WebSocketLike]]


async def open_websocket(url: str, headers: dict[str, str]) -> WebSocketLike:
    return await ws_connect(url, additional_headers=headers or None, open_timeout=None, max_size=None)


def decode_json(message: Frame) -> dict[str, Any]:
    try:
        payload = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResponseFormatError(f"Malformed stream event: {message!r:.200}") from exc
    if not isinstance(payload, dict):
        raise ResponseFormatError(f"Expected a JSON object event, got {type(payload).__name__}")
    return payload


class StreamingSession:
    def __init__(self, protocol: StreamingProtocol, read_timeout: float) -> None:
        self._protocol = protocol
        self._read_timeout = read_timeout
        self._socket: WebSocketLike | None = None
        self._state = SessionState.CONNECTING

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.debug("%s Session state: %s -> %s", self._protocol.name, self._state.name, target.name)
        self._state = target

    async def open(self, connect: Connector, url: str, headers: dict[str, str], timeout: float) -> None:
        try:
            self._socket = await asyncio.wait_for(connect(url, headers), timeout)
        except asyncio.TimeoutError as exc:
            raise SttConnectionError(f"{self._protocol.name} connection timed out after {timeout}s") from exc
        except (OSError, WebSocketException) as exc:
            raise SttConnectionError(f"{self._protocol.name} connection failed: {exc}") from exc
        self._transition(SessionState.CONFIGURING)

    def _require_socket(self) -> WebSocketLike:
        if self._socket is None:
            raise SttConnectionError(f"{self._protocol.name} session is not connected")
        return self._socket

    async def send(self, message: Frame) -> None:
        socket = self._require_socket()
        try:
            await socket.send(message)
        except (OSError, WebSocketException) as exc:
            raise SttConnectionError(f"{self._protocol.name} send failed: {exc}") from exc

    async def configure(self, message: str | None) -> None:
        if message is not None:
            await self.send(message)

    async def stream(self, frames: list[Frame]) -> None:
        self._transition(SessionState.STREAMING)
        for frame in frames:
            await self.send(frame)
        await self.send(self._protocol.end_of_input())
        logger.debug("%s sent %d audio frames", self._protocol.name, len(frames))

    async def next_event(self, timeout: float | None = None) -> TranscriptEvent | None:
        """Read one inbound event, or None when the peer closed the stream cleanly."""
        socket = self._require_socket()
        if self._state is not SessionState.AWAITING_RESULT:
            self._transition(SessionState.AWAITING_RESULT)
        limit = self._read_timeout if timeout is None else timeout
        try:
            message = await asyncio.wait_for(socket.recv(), limit)
        except asyncio.TimeoutError as exc:
            raise StreamTimeoutError(
                f"{self._protocol.name}: timed out waiting for transcription after {limit}s"
            ) from exc
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as exc:
            raise SttConnectionError(f"{self._protocol.name} connection error: {exc}") from exc

        if not isinstance(message, str):
            return Other(type="binary")
        event = self._protocol.parse_event(message)
        logger.debug("%s event: %s", self._protocol.name, type(event).__name__)
        return event

    async def collect(self) -> str:
        transcript = TranscriptAccumulator()
        while True:
            event = await self.next_event()
            if event is None:
                break
            if isinstance(event, StreamError):
                raise VendorStreamError(event.code, event.message, self._protocol.name)
            if transcript.add(event):
                break

        logger.debug(
            "%s result from %s", self._protocol.name, "final transcript" if transcript.has_final else "deltas"
        )
        text = transcript.result()
        if not text:
            raise EmptyTranscriptError(f"{self._protocol.name}: no transcription received")
        return text

    async def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._transition(SessionState.CLOSED)
        if self._socket is None:
            return
        try:
            await self._socket.close()
        except Exception:
            logger.warning("%s: failed to send close frame", self._protocol.name, exc_info=True)
        self._socket = None

    async def __aenter__(self) -> "StreamingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class StreamingTranscriber:
    def __init__(
        self,
        protocol: StreamingProtocol,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        connect: Connector | None = None,
    ) -> None:
        self._protocol = protocol
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._connect = connect or open_websocket

    @property
    def protocol(self) -> StreamingProtocol:
        return self._protocol

    async def test_api_key(self, api_key: str, base_url: str, model: str) -> None:
        probe_timeout = self._read_timeout if self._protocol.probe_uses_read_timeout else self._connect_timeout
        async with StreamingSession(self._protocol, self._read_timeout) as session:
            await session.open(
                self._connect,
                self._protocol.url(base_url, model),
                self._protocol.headers(api_key),
                self._connect_timeout,
            )
            for message in self._protocol.probe_messages(api_key, model):
                await session.send(message)

            event = await session.next_event(probe_timeout)
            if isinstance(event, StreamError):
                raise VendorStreamError(event.code, event.message, self._protocol.name)
        logger.debug("%s key verified", self._protocol.name)

    async def transcribe(
        self,
        api_key: str,
        base_url: str,
        model: str,
        audio: bytes,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        frames = list(self._protocol.audio_frames(audio))
        logger.debug("%s: model=%s, audio_size=%d, frames=%d", self._protocol.name, model, len(audio), len(frames))

        async with StreamingSession(self._protocol, self._read_timeout) as session:
            await session.open(
                self._connect,
                self._protocol.url(base_url, model),
                self._protocol.headers(api_key),
                self._connect_timeout,
            )
            await session.configure(self._protocol.session_config(api_key, model, options))
            await session.stream(frames)
            text = await session.collect()

        logger.debug("%s result: '%s'", self._protocol.name, text)
        return text
