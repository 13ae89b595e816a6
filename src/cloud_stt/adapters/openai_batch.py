import logging
from collections.abc import Mapping
from typing import Any

import httpx

from cloud_stt.adapters.http import (
    auth_headers,
    json_object,
    raise_for_vendor_status,
    string_field,
    wav_file,
)
from cloud_stt.audio import codec
from cloud_stt.domain import options as opts
from cloud_stt.errors import SttConnectionError

logger = logging.getLogger(__name__)


class OpenAIBatchTranscriber:
    def __init__(
        self,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def test_api_key(self, api_key: str, base_url: str, model: str) -> None:
        await self._post(api_key, base_url, codec.silence(), {"model": model}, "test.wav", "API test failed")

    async def transcribe(
        self,
        api_key: str,
        base_url: str,
        model: str,
        audio: bytes,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        data: dict[str, str] = {"model": model}
        data.update(opts.openai_options(options))
        temperature = opts.temperature(options)
        if temperature is not None:
            data["temperature"] = str(temperature)

        logger.debug("OpenAI STT request: url=%s, model=%s, audio_size=%d", base_url, model, len(audio))
        response = await self._post(api_key, base_url, audio, data, "audio.wav", "OpenAI STT API error")
        text = string_field(json_object(response), "text")
        logger.debug("OpenAI STT result: '%s'", text)
        return text

    async def _post(
        self,
        api_key: str,
        base_url: str,
        audio: bytes,
        data: dict[str, str],
        filename: str,
        context: str,
    ) -> httpx.Response:
        url = f"{base_url.rstrip('/')}/audio/transcriptions"
        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport) as client:
            try:
                response = await client.post(
                    url,
                    headers=auth_headers(api_key),
                    files=wav_file(audio, filename),
                    data=data,
                )
            except httpx.TransportError as exc:
                raise SttConnectionError(f"OpenAI STT request failed: {exc}") from exc
        raise_for_vendor_status(response, context)
        return response
