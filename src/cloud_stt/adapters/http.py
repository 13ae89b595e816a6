import json
import logging
from typing import Any

import httpx

from cloud_stt.errors import ResponseFormatError, VendorError

logger = logging.getLogger(__name__)

WAV_CONTENT_TYPE = "audio/wav"


def auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def wav_file(audio: bytes, filename: str = "audio.wav") -> dict[str, tuple[str, bytes, str]]:
    return {"file": (filename, audio, WAV_CONTENT_TYPE)}


def raise_for_vendor_status(response: httpx.Response, context: str) -> None:
    if response.is_success:
        return
    body = response.text
    logger.debug("%s: status=%d body=%s", context, response.status_code, body)
    raise VendorError(response.status_code, body, context)


def json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResponseFormatError(f"Malformed JSON response from {response.url}") from exc
    if not isinstance(payload, dict):
        raise ResponseFormatError(f"Expected a JSON object from {response.url}")
    return payload


def string_field(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise ResponseFormatError(f"Response is missing string field '{key}'")
    return value
