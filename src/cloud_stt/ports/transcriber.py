from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from cloud_stt.domain.events import TranscriptEvent


class TranscriberPort(Protocol):
    async def test_api_key(self, api_key: str, base_url: str, model: str) -> None: ...

    async def transcribe(
        self,
        api_key: str,
        base_url: str,
        model: str,
        audio: bytes,
        options: Mapping[str, Any] | None = None,
    ) -> str: ...


Frame = str | bytes


class StreamingProtocol(Protocol):
    name: str
    probe_uses_read_timeout: bool

    def url(self, base_url: str, model: str) -> str: ...
    def headers(self, api_key: str) -> dict[str, str]: ...
    def session_config(
        self, api_key: str, model: str, options: Mapping[str, Any] | None
    ) -> str | None: ...
    def audio_frames(self, audio: bytes) -> Iterable[Frame]: ...
    def end_of_input(self) -> Frame: ...
    def probe_messages(self, api_key: str, model: str) -> list[Frame]: ...
    def parse_event(self, message: Frame) -> TranscriptEvent: ...
