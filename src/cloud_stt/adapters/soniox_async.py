import asyncio
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
from cloud_stt.domain.job import Job, JobStatus
from cloud_stt.errors import ResponseFormatError, SttConnectionError, VendorJobError

logger = logging.getLogger(__name__)


class SonioxAsyncTranscriber:
    def __init__(
        self,
        poll_interval: float = 0.5,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._transport = transport

    async def test_api_key(self, api_key: str, base_url: str, model: str) -> None:
        base = base_url.rstrip("/")
        async with self._client(api_key) as client:
            job = await self._upload(client, base, codec.silence(), "test.wav", "API test failed")
            await self._create(client, base, job, {"model": model}, "API test failed")
        logger.debug("Soniox key verified with transcription id=%s", job.transcription_id)

    async def transcribe(
        self,
        api_key: str,
        base_url: str,
        model: str,
        audio: bytes,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        base = base_url.rstrip("/")
        logger.debug("Soniox STT request: base_url=%s, model=%s, audio_size=%d", base, model, len(audio))

        async with self._client(api_key) as client:
            job = await self._upload(client, base, audio, "audio.wav", "Soniox file upload error")

            body: dict[str, Any] = {"model": model}
            body.update(opts.soniox_options(options))
            await self._create(client, base, job, body, "Soniox transcription create error")

            await self._poll(client, base, job)
            text = await self._fetch(client, base, job)

        logger.debug("Soniox STT result: '%s' after %d polls", text, job.polls)
        return text

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=auth_headers(api_key),
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise SttConnectionError(f"Soniox request failed: {exc}") from exc

    async def _upload(
        self, client: httpx.AsyncClient, base: str, audio: bytes, filename: str, context: str
    ) -> Job:
        response = await self._send(client, "POST", f"{base}/files", files=wav_file(audio, filename))
        raise_for_vendor_status(response, context)
        job = Job(file_id=string_field(json_object(response), "id"))
        logger.debug("Soniox file uploaded: id=%s", job.file_id)
        return job

    async def _create(
        self, client: httpx.AsyncClient, base: str, job: Job, body: dict[str, Any], context: str
    ) -> None:
        payload = {"file_id": job.file_id, **body}
        response = await self._send(client, "POST", f"{base}/transcriptions", json=payload)
        raise_for_vendor_status(response, context)
        job.transcription_id = string_field(json_object(response), "id")
        logger.debug("Soniox transcription created: id=%s", job.transcription_id)

    async def _poll(self, client: httpx.AsyncClient, base: str, job: Job) -> None:
        url = f"{base}/transcriptions/{job.transcription_id}"
        while not job.status.is_terminal:
            await asyncio.sleep(self._poll_interval)

            response = await self._send(client, "GET", url)
            raise_for_vendor_status(response, "Soniox transcription poll error")
            job.polls += 1

            payload = json_object(response)
            raw_status = string_field(payload, "status")
            try:
                job.status = JobStatus(raw_status)
            except ValueError as exc:
                raise ResponseFormatError(f"Unrecognized Soniox transcription status: {raw_status}") from exc
            logger.debug("Soniox transcription status: %s", job.status.value)

            if job.status is JobStatus.ERROR:
                detail = payload.get("error_message") or "server reported error"
                raise VendorJobError(f"Soniox transcription failed ({detail})")

    async def _fetch(self, client: httpx.AsyncClient, base: str, job: Job) -> str:
        url = f"{base}/transcriptions/{job.transcription_id}/transcript"
        response = await self._send(client, "GET", url)
        raise_for_vendor_status(response, "Soniox transcript fetch error")
        return string_field(json_object(response), "text")
