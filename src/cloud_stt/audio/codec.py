import io
import logging
import wave
from collections.abc import Sequence

import numpy as np

from cloud_stt.errors import AudioFormatError

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2
CHANNELS = 1
INT16_MAX = np.iinfo(np.int16).max
INT16_MIN = np.iinfo(np.int16).min
TEST_CLIP_SAMPLES = 1600


def _as_pcm16(pcm: np.ndarray | Sequence[int] | bytes) -> np.ndarray:
    if isinstance(pcm, (bytes, bytearray, memoryview)):
        return np.frombuffer(bytes(pcm), dtype="<i2").astype(np.int16)
    return np.asarray(pcm, dtype=np.int16)


def pcm16_bytes(pcm: np.ndarray | Sequence[int] | bytes) -> bytes:
    return _as_pcm16(pcm).astype("<i2").tobytes()


def encode_pcm16(pcm: np.ndarray | Sequence[int] | bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(CHANNELS)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16_bytes(pcm))
    return buffer.getvalue()


def encode(samples: np.ndarray | Sequence[float]) -> bytes:
    scaled = np.asarray(samples, dtype=np.float64) * INT16_MAX
    pcm = np.trunc(np.clip(scaled, INT16_MIN, INT16_MAX)).astype(np.int16)
    return encode_pcm16(pcm, SAMPLE_RATE)


def silence(num_samples: int = TEST_CLIP_SAMPLES) -> bytes:
    return encode(np.zeros(num_samples, dtype=np.float32))


def decode(data: bytes) -> tuple[np.ndarray, int]:
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise AudioFormatError(f"Invalid WAV container: {exc}") from exc

    if channels != CHANNELS:
        raise AudioFormatError(f"Expected mono audio, got {channels} channels")
    if width != SAMPLE_WIDTH:
        raise AudioFormatError(f"Expected 16-bit audio, got {width * 8}-bit")
    if sample_rate <= 0:
        raise AudioFormatError(f"Invalid sample rate: {sample_rate}")

    return _as_pcm16(frames), sample_rate


def resample(pcm: np.ndarray | Sequence[int] | bytes, from_rate: int, to_rate: int) -> np.ndarray:
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {from_rate} -> {to_rate}")

    source = _as_pcm16(pcm)
    if from_rate == to_rate or len(source) == 0:
        return source.copy()

    out_len = int(round(len(source) * to_rate / from_rate))
    positions = np.arange(out_len, dtype=np.float64) * (from_rate / to_rate)
    interpolated = np.interp(positions, np.arange(len(source)), source.astype(np.float64))
    logger.debug("Resampled %d samples %dHz -> %d samples %dHz", len(source), from_rate, out_len, to_rate)
    return np.clip(np.round(interpolated), INT16_MIN, INT16_MAX).astype(np.int16)
