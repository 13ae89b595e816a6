import asyncio

import pytest
from websockets.exceptions import ConnectionClosedError, InvalidHandshake

from cloud_stt.adapters.streaming import StreamingSession, StreamingTranscriber
from cloud_stt.domain.events import Delta, Final, Finished, Other, StreamError
from cloud_stt.domain.session import SessionState
from cloud_stt.errors import (
    EmptyTranscriptError,
    ResponseFormatError,
    StreamTimeoutError,
    SttConnectionError,
    VendorStreamError,
)
from conftest import FakeConnector, FakeWebSocket


class ScriptedProtocol:
    """Minimal protocol whose inbound messages are event names."""

    name = "Scripted"
    probe_uses_read_timeout = True

    def url(self, base_url, model):
        return f"{base_url}/stream?model={model}"

    def headers(self, api_key):
        return {"Authorization": api_key}

    def session_config(self, api_key, model, options):
        return f"config:{model}"

    def audio_frames(self, audio):
        return [audio[i : i + 2] for i in range(0, len(audio), 2)]

    def end_of_input(self):
        return "eof"

    def probe_messages(self, api_key, model):
        return ["probe"]

    def parse_event(self, message):
        kind, _, text = message.partition(":")
        if kind == "delta":
            return Delta(text)
        if kind == "final":
            return Final(text)
        if kind == "finished":
            return Finished(text)
        if kind == "error":
            return StreamError("bad_request", text)
        if kind == "garbage":
            raise ResponseFormatError("garbage")
        return Other(kind)


def make_transcriber(socket: FakeWebSocket, read_timeout: float = 1.0) -> tuple[StreamingTranscriber, FakeConnector]:
    connector = FakeConnector(socket)
    transcriber = StreamingTranscriber(
        ScriptedProtocol(), connect_timeout=1.0, read_timeout=read_timeout, connect=connector
    )
    return transcriber, connector


class TestTranscribe:
    @pytest.mark.asyncio
    async def test_frames_sent_in_order_after_config(self):
        socket = FakeWebSocket(["final:done"])
        transcriber, connector = make_transcriber(socket)

        await transcriber.transcribe("key", "wss://host", "m1", b"abcdef")

        assert connector.calls == [("wss://host/stream?model=m1", {"Authorization": "key"})]
        assert socket.sent == ["config:m1", b"ab", b"cd", b"ef", "eof"]

    @pytest.mark.asyncio
    async def test_deltas_concatenated_without_final(self):
        socket = FakeWebSocket(["delta:hel", "delta:lo"])
        transcriber, _ = make_transcriber(socket)

        assert await transcriber.transcribe("key", "wss://host", "m", b"ab") == "hello"
        assert socket.closed

    @pytest.mark.asyncio
    async def test_final_preferred_over_deltas(self):
        socket = FakeWebSocket(["delta:hel", "other", "final:  Hello.  ", "delta:never read"])
        transcriber, _ = make_transcriber(socket)

        assert await transcriber.transcribe("key", "wss://host", "m", b"ab") == "Hello."
        assert socket.recv_calls == 3

    @pytest.mark.asyncio
    async def test_finished_sentinel_ends_loop(self):
        socket = FakeWebSocket(["delta:good ", "finished:night", "delta:ignored"])
        transcriber, _ = make_transcriber(socket)

        assert await transcriber.transcribe("key", "wss://host", "m", b"ab") == "good night"

    @pytest.mark.asyncio
    async def test_first_message_error_aborts(self):
        socket = FakeWebSocket(["error:model not found", "delta:partial"])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(VendorStreamError) as exc_info:
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

        assert exc_info.value.code == "bad_request"
        assert exc_info.value.message == "model not found"
        assert socket.closed

    @pytest.mark.asyncio
    async def test_error_after_deltas_never_returns_partial(self):
        socket = FakeWebSocket(["delta:partial", "error:boom"])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(VendorStreamError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

    @pytest.mark.asyncio
    async def test_timeout_closes_session(self):
        socket = FakeWebSocket(["delta:partial"], hang=True)
        transcriber, _ = make_transcriber(socket, read_timeout=0.01)

        with pytest.raises(StreamTimeoutError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

        assert socket.close_calls == 1

    @pytest.mark.asyncio
    async def test_empty_transcript(self):
        socket = FakeWebSocket(["other", "delta:   "])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(EmptyTranscriptError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

        assert socket.closed

    @pytest.mark.asyncio
    async def test_binary_messages_ignored(self):
        socket = FakeWebSocket([b"\x00\x01", "delta:ok"])
        transcriber, _ = make_transcriber(socket)

        assert await transcriber.transcribe("key", "wss://host", "m", b"ab") == "ok"

    @pytest.mark.asyncio
    async def test_malformed_event_closes_session(self):
        socket = FakeWebSocket(["garbage"])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(ResponseFormatError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

        assert socket.closed

    @pytest.mark.asyncio
    async def test_abnormal_close_is_connection_error(self):
        socket = FakeWebSocket([ConnectionClosedError(None, None)])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(SttConnectionError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

    @pytest.mark.asyncio
    async def test_send_failure_closes_session(self):
        socket = FakeWebSocket(fail_send_after=2)
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(SttConnectionError):
            await transcriber.transcribe("key", "wss://host", "m", b"abcdef")

        assert socket.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_failure_not_propagated(self):
        socket = FakeWebSocket(["final:fine"], fail_close=True)
        transcriber, _ = make_transcriber(socket)

        assert await transcriber.transcribe("key", "wss://host", "m", b"ab") == "fine"
        assert socket.close_calls == 1

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        connector = FakeConnector(error=InvalidHandshake("401 Unauthorized"))
        transcriber = StreamingTranscriber(ScriptedProtocol(), connect=connector)

        with pytest.raises(SttConnectionError):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")

    @pytest.mark.asyncio
    async def test_connect_timeout(self):
        async def slow_connect(url, headers):
            await asyncio.sleep(3600)

        transcriber = StreamingTranscriber(ScriptedProtocol(), connect_timeout=0.01, connect=slow_connect)

        with pytest.raises(SttConnectionError, match="timed out"):
            await transcriber.transcribe("key", "wss://host", "m", b"ab")


class TestTestApiKey:
    @pytest.mark.asyncio
    async def test_sends_probe_and_reads_one_message(self):
        socket = FakeWebSocket(["other", "error:never read"])
        transcriber, _ = make_transcriber(socket)

        await transcriber.test_api_key("key", "wss://host", "m")

        assert socket.sent == ["probe"]
        assert socket.recv_calls == 1
        assert socket.closed

    @pytest.mark.asyncio
    async def test_error_event_fails(self):
        socket = FakeWebSocket(["error:invalid api key"])
        transcriber, _ = make_transcriber(socket)

        with pytest.raises(VendorStreamError, match="invalid api key"):
            await transcriber.test_api_key("key", "wss://host", "m")

        assert socket.closed

    @pytest.mark.asyncio
    async def test_peer_close_is_accepted(self):
        socket = FakeWebSocket([])
        transcriber, _ = make_transcriber(socket)

        await transcriber.test_api_key("key", "wss://host", "m")

    @pytest.mark.asyncio
    async def test_silence_times_out(self):
        socket = FakeWebSocket(hang=True)
        transcriber, _ = make_transcriber(socket, read_timeout=0.01)

        with pytest.raises(StreamTimeoutError):
            await transcriber.test_api_key("key", "wss://host", "m")

        assert socket.closed


class TestStreamingSession:
    @pytest.mark.asyncio
    async def test_walks_states_and_closes(self):
        socket = FakeWebSocket(["final:x"])
        session = StreamingSession(ScriptedProtocol(), read_timeout=1.0)
        assert session.state is SessionState.CONNECTING

        async with session:
            await session.open(FakeConnector(socket), "wss://h", {}, 1.0)
            assert session.state is SessionState.CONFIGURING
            await session.stream([b"ab"])
            assert session.state is SessionState.STREAMING
            assert await session.collect() == "x"
            assert session.state is SessionState.AWAITING_RESULT

        assert session.state is SessionState.CLOSED
        assert socket.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        socket = FakeWebSocket()
        session = StreamingSession(ScriptedProtocol(), read_timeout=1.0)
        await session.open(FakeConnector(socket), "wss://h", {}, 1.0)

        await session.close()
        await session.close()

        assert socket.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_before_connect(self):
        session = StreamingSession(ScriptedProtocol(), read_timeout=1.0)
        await session.close()
        assert session.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_send_before_connect_fails(self):
        session = StreamingSession(ScriptedProtocol(), read_timeout=1.0)
        with pytest.raises(SttConnectionError, match="not connected"):
            await session.send("hello")
        assert session.state is SessionState.CONNECTING

    @pytest.mark.asyncio
    async def test_read_before_connect_fails(self):
        session = StreamingSession(ScriptedProtocol(), read_timeout=1.0)
        with pytest.raises(SttConnectionError, match="not connected"):
            await session.next_event()
        assert session.state is SessionState.CONNECTING
