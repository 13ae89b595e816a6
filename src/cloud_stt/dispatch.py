import logging
from collections.abc import Callable, Mapping
from typing import Any

from cloud_stt.config import CloudSttConfig
from cloud_stt.errors import UnknownProviderError
from cloud_stt.ports.transcriber import TranscriberPort

logger = logging.getLogger(__name__)


def create_openai_batch(config: CloudSttConfig) -> TranscriberPort:
    from cloud_stt.adapters.openai_batch import OpenAIBatchTranscriber

    return OpenAIBatchTranscriber(timeout=config.http_timeout_s)


def create_openai_realtime(config: CloudSttConfig) -> TranscriberPort:
    from cloud_stt.adapters.openai_realtime import OpenAIRealtimeProtocol
    from cloud_stt.adapters.streaming import StreamingTranscriber

    return StreamingTranscriber(
        OpenAIRealtimeProtocol(sample_rate=config.realtime_sample_rate),
        connect_timeout=config.connect_timeout_s,
        read_timeout=config.read_timeout_s,
    )


def create_soniox_async(config: CloudSttConfig) -> TranscriberPort:
    from cloud_stt.adapters.soniox_async import SonioxAsyncTranscriber

    return SonioxAsyncTranscriber(
        poll_interval=config.poll_interval_s,
        timeout=config.http_timeout_s,
    )


def create_soniox_realtime(config: CloudSttConfig) -> TranscriberPort:
    from cloud_stt.adapters.soniox_realtime import SonioxRealtimeProtocol
    from cloud_stt.adapters.streaming import StreamingTranscriber

    return StreamingTranscriber(
        SonioxRealtimeProtocol(ws_url=config.soniox_realtime_url),
        connect_timeout=config.connect_timeout_s,
        read_timeout=config.read_timeout_s,
    )


TRANSCRIBERS: dict[str, Callable[[CloudSttConfig], TranscriberPort]] = {
    "openai_stt": create_openai_batch,
    "openai_stt_realtime": create_openai_realtime,
    "soniox": create_soniox_async,
    "soniox_realtime": create_soniox_realtime,
}


def create_transcriber(provider_id: str, config: CloudSttConfig | None = None) -> TranscriberPort:
    factory = TRANSCRIBERS.get(provider_id)
    if factory is None:
        raise UnknownProviderError(provider_id)
    return factory(config or CloudSttConfig())


async def test_api_key(
    provider_id: str,
    api_key: str,
    base_url: str,
    model: str,
    config: CloudSttConfig | None = None,
) -> None:
    transcriber = create_transcriber(provider_id, config)
    await transcriber.test_api_key(api_key, base_url, model)
    logger.info("API key verified for %s (model=%s)", provider_id, model)


async def transcribe(
    provider_id: str,
    api_key: str,
    base_url: str,
    model: str,
    audio: bytes,
    options: Mapping[str, Any] | None = None,
    config: CloudSttConfig | None = None,
) -> str:
    transcriber = create_transcriber(provider_id, config)
    text = await transcriber.transcribe(api_key, base_url, model, audio, options)
    logger.info("Transcript: %s (%s, %d chars)", provider_id, model, len(text))
    return text
