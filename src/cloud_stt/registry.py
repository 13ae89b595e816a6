from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Literal


class TransportKind(Enum):
    BATCH = auto()
    ASYNC_POLL = auto()
    STREAMING = auto()


REALTIME_SUFFIX = "_realtime"


@dataclass(frozen=True)
class TextOption:
    type: Literal["Text"] = "Text"


@dataclass(frozen=True)
class NumberOption:
    min: float
    max: float
    step: float
    type: Literal["Number"] = "Number"


@dataclass(frozen=True)
class BooleanOption:
    type: Literal["Boolean"] = "Boolean"


@dataclass(frozen=True)
class LanguageOption:
    type: Literal["Language"] = "Language"


@dataclass(frozen=True)
class LanguageMultiOption:
    type: Literal["LanguageMulti"] = "LanguageMulti"


OptionType = TextOption | NumberOption | BooleanOption | LanguageOption | LanguageMultiOption


@dataclass(frozen=True)
class ProviderOption:
    key: str
    label: str
    option_type: OptionType
    description: str | None = None


@dataclass(frozen=True)
class LocalBackend:
    engine_type: str
    filename: str
    url: str | None = None
    size_mb: int = 0
    is_downloaded: bool = False
    is_downloading: bool = False
    partial_size: int = 0
    is_directory: bool = False
    accuracy_score: float = 0.0
    speed_score: float = 0.0
    is_custom: bool = False
    type: Literal["Local"] = "Local"


@dataclass(frozen=True)
class CloudBackend:
    base_url: str
    default_model: str
    console_url: str | None = None
    type: Literal["Cloud"] = "Cloud"


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    name: str
    description: str
    supported_languages: tuple[str, ...]
    supports_translation: bool
    backend: LocalBackend | CloudBackend
    is_recommended: bool = False
    available_options: tuple[ProviderOption, ...] = ()
    transports: tuple[TransportKind, ...] = field(default=())

    @property
    def is_cloud(self) -> bool:
        return isinstance(self.backend, CloudBackend)

    def supports(self, kind: TransportKind) -> bool:
        return kind in self.transports

    def dispatch_id(self, streaming: bool = False) -> str:
        if not streaming:
            return self.id
        if not self.supports(TransportKind.STREAMING):
            raise ValueError(f"Provider '{self.id}' does not support streaming")
        return f"{self.id}{REALTIME_SUFFIX}"


OPENAI_LANGUAGES = (
    "af", "ar", "hy", "az", "be", "bs", "bg", "ca", "zh", "hr",
    "cs", "da", "nl", "en", "et", "fi", "fr", "gl", "de", "el",
    "he", "hi", "hu", "is", "id", "it", "ja", "kn", "kk", "ko",
    "lv", "lt", "mk", "ms", "mr", "mi", "ne", "no", "fa", "pl",
    "pt", "ro", "ru", "sr", "sk", "sl", "es", "sw", "sv", "tl",
    "ta", "th", "tr", "uk", "ur", "vi", "cy",
)

SONIOX_LANGUAGES = (
    "en", "es", "fr", "de", "it", "pt", "nl", "ja", "ko", "zh",
    "ru", "ar", "hi", "pl", "tr", "sv", "da", "no", "fi",
)

OPENAI_STT = ProviderDescriptor(
    id="openai_stt",
    name="OpenAI",
    description="OpenAI's cloud speech-to-text API. Fast and accurate with support for 57+ languages.",
    supported_languages=OPENAI_LANGUAGES,
    supports_translation=True,
    backend=CloudBackend(
        base_url="https://api.openai.com/v1",
        default_model="whisper-1",
        console_url="https://platform.openai.com/api-keys",
    ),
    available_options=(
        ProviderOption("language", "Language", LanguageOption()),
        ProviderOption(
            "prompt",
            "Prompt",
            TextOption(),
            "Optional text to guide the model's style or continue a previous segment",
        ),
        ProviderOption(
            "temperature",
            "Temperature",
            NumberOption(min=0.0, max=1.0, step=0.1),
            "Sampling temperature for batch transcription",
        ),
    ),
    transports=(TransportKind.BATCH, TransportKind.STREAMING),
)

SONIOX = ProviderDescriptor(
    id="soniox",
    name="Soniox",
    description="Soniox cloud speech-to-text. High accuracy with async transcription.",
    supported_languages=SONIOX_LANGUAGES,
    supports_translation=False,
    backend=CloudBackend(
        base_url="https://api.soniox.com/v1",
        default_model="stt-async-v4",
        console_url="https://console.soniox.com",
    ),
    available_options=(
        ProviderOption("language_hints", "Language hints", LanguageMultiOption()),
        ProviderOption(
            "context_terms",
            "Context terms",
            TextOption(),
            "Names and domain terms, separated by commas or new lines",
        ),
        ProviderOption(
            "context_description",
            "Context description",
            TextOption(),
            "Free-text description of the recording",
        ),
        ProviderOption("enable_speaker_diarization", "Speaker diarization", BooleanOption()),
        ProviderOption("enable_language_identification", "Language identification", BooleanOption()),
    ),
    transports=(TransportKind.ASYNC_POLL, TransportKind.STREAMING),
)


def cloud_providers() -> tuple[ProviderDescriptor, ...]:
    return (OPENAI_STT, SONIOX)


class ProviderRegistry:
    def __init__(self, local_providers: Iterable[ProviderDescriptor] = ()) -> None:
        self._providers = tuple(local_providers) + cloud_providers()

    def providers(self) -> tuple[ProviderDescriptor, ...]:
        return self._providers

    def cloud(self) -> tuple[ProviderDescriptor, ...]:
        return tuple(p for p in self._providers if p.is_cloud)

    def find(self, provider_id: str) -> ProviderDescriptor | None:
        for provider in self._providers:
            if provider.id == provider_id:
                return provider
        return None
