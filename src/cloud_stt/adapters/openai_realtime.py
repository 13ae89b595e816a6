import base64
import json
from collections.abc import Iterator, Mapping
from typing import Any
from urllib.parse import quote

from cloud_stt.adapters.streaming import decode_json
from cloud_stt.audio import codec
from cloud_stt.domain import options as opts
from cloud_stt.domain.events import Delta, Final, Other, StreamError, TranscriptEvent
from cloud_stt.ports.transcriber import Frame

REALTIME_SAMPLE_RATE = 24000
CHUNK_DURATION_MS = 200

TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
TRANSCRIPTION_DELTA = "conversation.item.input_audio_transcription.delta"


def realtime_url(base_url: str, model: str) -> str:
    ws_base = base_url.rstrip("/").replace("https://", "wss://").replace("http://", "ws://")
    return f"{ws_base}/realtime?model={quote(model, safe='')}"


class OpenAIRealtimeProtocol:
    name = "OpenAI RT"
    probe_uses_read_timeout = False

    def __init__(self, sample_rate: int = REALTIME_SAMPLE_RATE) -> None:
        self._sample_rate = sample_rate

    @property
    def chunk_bytes(self) -> int:
        return self._sample_rate * codec.SAMPLE_WIDTH * CHUNK_DURATION_MS // 1000

    def url(self, base_url: str, model: str) -> str:
        return realtime_url(base_url, model)

    def headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}", "OpenAI-Beta": "realtime=v1"}

    def session_config(self, api_key: str, model: str, options: Mapping[str, Any] | None) -> str:
        transcription: dict[str, Any] = {"model": model}
        transcription.update(opts.openai_options(options))
        return json.dumps(
            {
                "type": "session.update",
                "session": {
                    "audio": {
                        "input": {
                            "format": {"type": "audio/pcm", "rate": self._sample_rate},
                            "transcription": transcription,
                            "turn_detection": None,
                        }
                    }
                },
            }
        )

    def audio_frames(self, audio: bytes) -> Iterator[Frame]:
        pcm, input_rate = codec.decode(audio)
        pcm_bytes = codec.pcm16_bytes(codec.resample(pcm, input_rate, self._sample_rate))
        step = self.chunk_bytes
        for offset in range(0, len(pcm_bytes), step):
            chunk = pcm_bytes[offset : offset + step]
            yield json.dumps(
                {
                    "type": "input_audio_buffer.append",
                    "audio": base64.b64encode(chunk).decode("ascii"),
                }
            )

    def end_of_input(self) -> Frame:
        return json.dumps({"type": "input_audio_buffer.commit"})

    def probe_messages(self, api_key: str, model: str) -> list[Frame]:
        return []

    def parse_event(self, message: Frame) -> TranscriptEvent:
        event = decode_json(message)
        event_type = event.get("type", "")

        if event_type == "error":
            err = event.get("error")
            if not isinstance(err, dict):
                err = event
            return StreamError(
                code=str(err.get("code") or err.get("type") or "error"),
                message=str(err.get("message") or "unknown error"),
            )
        if event_type == TRANSCRIPTION_COMPLETED:
            transcript = event.get("transcript")
            return Final(text=transcript if isinstance(transcript, str) else None)
        if event_type == TRANSCRIPTION_DELTA:
            delta = event.get("delta")
            return Delta(text=delta if isinstance(delta, str) else "")
        return Other(type=str(event_type))
