"""Projection of the open options map onto vendor request fields.

Each vendor only reads the keys it understands; anything else in the map is
ignored. Language codes are always reduced to their primary subtag because the
vendors reject script/region suffixes such as ``zh-Hans``.
"""

import re
from collections.abc import Mapping
from typing import Any

Options = Mapping[str, Any]

SONIOX_FLAGS = ("enable_speaker_diarization", "enable_language_identification")

_TERM_SEPARATOR = re.compile(r"[,\n]")


def primary_subtag(code: str) -> str:
    return code.split("-", 1)[0]


def _text(options: Options | None, key: str) -> str:
    if not options:
        return ""
    value = options.get(key)
    if not isinstance(value, str):
        return ""
    return value.strip()


def language(options: Options | None, key: str = "language") -> str | None:
    code = _text(options, key)
    return primary_subtag(code) if code else None


def language_hints(options: Options | None) -> list[str]:
    if not options:
        return []
    hints = options.get("language_hints")
    if hints is None:
        hints = options.get("language")
    if isinstance(hints, str):
        hints = [hints]
    if not isinstance(hints, (list, tuple)):
        return []
    return [primary_subtag(h.strip()) for h in hints if isinstance(h, str) and h.strip()]


def context_terms(text: str) -> list[str]:
    return [t.strip() for t in _TERM_SEPARATOR.split(text) if t.strip()]


def soniox_options(options: Options | None) -> dict[str, Any]:
    projected: dict[str, Any] = {}
    hints = language_hints(options)
    if hints:
        projected["language_hints"] = hints

    terms = context_terms(_text(options, "context_terms"))
    description = _text(options, "context_description")
    if terms or description:
        context: dict[str, Any] = {}
        if terms:
            context["terms"] = terms
        if description:
            context["text"] = description
        projected["context"] = context

    for flag in SONIOX_FLAGS:
        if options and options.get(flag) is True:
            projected[flag] = True
    return projected


def openai_options(options: Options | None) -> dict[str, Any]:
    projected: dict[str, Any] = {}
    code = language(options)
    if code:
        projected["language"] = code
    prompt = _text(options, "prompt")
    if prompt:
        projected["prompt"] = prompt
    return projected


def temperature(options: Options | None) -> float | None:
    if not options:
        return None
    value = options.get("temperature")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
