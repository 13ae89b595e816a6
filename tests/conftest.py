import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import numpy as np
import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from cloud_stt.audio import codec


SAMPLE_RATE = 16000


def generate_silence(duration_ms: int = 100, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    num_samples = int(sample_rate * duration_ms / 1000)
    return np.zeros(num_samples, dtype=np.float32)


def generate_sine_wave(
    frequency: float = 440.0,
    duration_ms: int = 100,
    amplitude: float = 0.8,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    num_samples = int(sample_rate * duration_ms / 1000)
    t = np.arange(num_samples) / sample_rate
    return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)


def wav_bytes(duration_ms: int = 100, sample_rate: int = SAMPLE_RATE) -> bytes:
    samples = generate_sine_wave(duration_ms=duration_ms, sample_rate=sample_rate)
    return codec.encode_pcm16((samples * 32767).astype(np.int16), sample_rate)


@dataclass
class RecordingTransport:
    """httpx mock transport that replays queued responses and records requests."""

    responses: list[httpx.Response | Exception] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def queue(self, status: int = 200, json_body=None, text: str | None = None) -> None:
        if text is not None:
            self.responses.append(httpx.Response(status, text=text))
        else:
            self.responses.append(httpx.Response(status, json=json_body))

    def queue_error(self, exc: Exception) -> None:
        self.responses.append(exc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


class FakeWebSocket:
    def __init__(
        self,
        incoming: list[str | bytes | Exception] | None = None,
        hang: bool = False,
        fail_close: bool = False,
        fail_send_after: int | None = None,
    ) -> None:
        self._incoming = list(incoming or [])
        self._hang = hang
        self._fail_close = fail_close
        self._fail_send_after = fail_send_after
        self.sent: list[str | bytes] = []
        self.close_calls = 0
        self.recv_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def sent_json(self) -> list[dict]:
        return [json.loads(m) for m in self.sent if isinstance(m, str) and m]

    async def send(self, message: str | bytes) -> None:
        if self._fail_send_after is not None and len(self.sent) >= self._fail_send_after:
            raise ConnectionClosedError(None, None)
        self.sent.append(message)

    async def recv(self) -> str | bytes:
        self.recv_calls += 1
        if self._incoming:
            item = self._incoming.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        if self._hang:
            await asyncio.sleep(3600)
        raise ConnectionClosedOK(None, None)

    async def close(self) -> None:
        self.close_calls += 1
        if self._fail_close:
            raise ConnectionClosedError(None, None)


class FakeConnector:
    def __init__(self, socket: FakeWebSocket | None = None, error: Exception | None = None) -> None:
        self.socket = socket or FakeWebSocket()
        self._error = error
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def __call__(self, url: str, headers: dict[str, str]) -> FakeWebSocket:
        self.calls.append((url, headers))
        if self._error is not None:
            raise self._error
        return self.socket


def events(*payloads: dict) -> list[str]:
    return [json.dumps(p) for p in payloads]


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sample_wav() -> bytes:
    return wav_bytes()


@pytest.fixture
def make_connector() -> Callable[..., FakeConnector]:
    def _make(*incoming, **kwargs) -> FakeConnector:
        return FakeConnector(FakeWebSocket(list(incoming), **kwargs))

    return _make
