import json
from collections.abc import Iterator, Mapping
from typing import Any

from cloud_stt.adapters.streaming import decode_json
from cloud_stt.domain import options as opts
from cloud_stt.domain.events import Delta, Finished, Other, StreamError, TranscriptEvent
from cloud_stt.ports.transcriber import Frame

# The realtime endpoint is on a different host than the REST API, so it is
# never derived from the configured base URL.
SONIOX_WS_URL = "wss://stt-rt.soniox.com/transcribe-websocket"
CHUNK_SIZE = 3840


class SonioxRealtimeProtocol:
    name = "Soniox RT"
    probe_uses_read_timeout = True

    def __init__(self, ws_url: str = SONIOX_WS_URL, chunk_size: int = CHUNK_SIZE) -> None:
        self._ws_url = ws_url
        self._chunk_size = chunk_size

    def url(self, base_url: str, model: str) -> str:
        return self._ws_url

    def headers(self, api_key: str) -> dict[str, str]:
        return {}

    def _config(self, api_key: str, model: str) -> dict[str, Any]:
        return {"api_key": api_key, "model": model, "audio_format": "auto"}

    def session_config(self, api_key: str, model: str, options: Mapping[str, Any] | None) -> str:
        config = self._config(api_key, model)
        config.update(opts.soniox_options(options))
        return json.dumps(config)

    def audio_frames(self, audio: bytes) -> Iterator[Frame]:
        for offset in range(0, len(audio), self._chunk_size):
            yield audio[offset : offset + self._chunk_size]

    def end_of_input(self) -> Frame:
        return ""

    def probe_messages(self, api_key: str, model: str) -> list[Frame]:
        return [json.dumps(self._config(api_key, model)), self.end_of_input()]

    def parse_event(self, message: Frame) -> TranscriptEvent:
        response = decode_json(message)

        if "error_code" in response:
            return StreamError(
                code=str(response["error_code"]),
                message=str(response.get("error_message") or "unknown"),
            )

        tokens = response.get("tokens")
        final_text = ""
        if isinstance(tokens, list):
            final_text = "".join(
                token["text"]
                for token in tokens
                if isinstance(token, dict) and token.get("is_final") is True and isinstance(token.get("text"), str)
            )

        if response.get("finished") is True:
            return Finished(text=final_text)
        if final_text:
            return Delta(text=final_text)
        return Other(type="tokens" if tokens else "")
