from __future__ import annotations

import logging
import math
import wave
from pathlib import Path
from typing import Iterator, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def alarm_tone(
    sample_rate: int = 24000,
    duration_seconds: float = 1.5,
    freq: float = 880.0,
    amplitude: float = 0.4,
    beep_ms: int = 250,
    gap_ms: int = 100,
) -> bytes:
    """Beeping sine tone as 16-bit mono PCM."""
    samples = int(duration_seconds * sample_rate)
    t = np.arange(samples) / sample_rate
    wave_data = amplitude * np.sin(2 * math.pi * freq * t)
    period = (beep_ms + gap_ms) / 1000.0
    gate = (np.mod(t, period) < beep_ms / 1000.0).astype(np.float64)
    pcm = (wave_data * gate * 32767).astype(np.int16)
    return pcm.tobytes()


def write_wav(path: Path, pcm: bytes, sample_rate: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)


def read_wav(path: Path) -> Tuple[bytes, int]:
    """Returns mono 16-bit PCM and its sample rate."""
    with wave.open(str(path), "rb") as wav:
        channels = wav.getnchannels()
        width = wav.getsampwidth()
        rate = wav.getframerate()
        frames = wav.readframes(wav.getnframes())
    if width != 2:
        raise ValueError(f"{path} must be 16-bit PCM, got {width * 8}-bit")
    if channels == 1:
        return frames, rate
    samples = np.frombuffer(frames, dtype=np.int16).reshape(-1, channels)
    return samples.mean(axis=1).astype(np.int16).tobytes(), rate


def chunk_pcm(pcm: bytes, sample_rate: int, chunk_ms: int = 40) -> Iterator[bytes]:
    step = max(2, int(sample_rate * chunk_ms / 1000) * 2)
    for offset in range(0, len(pcm), step):
        yield pcm[offset : offset + step]


def ensure_alarm_sound(path: Path, duration_seconds: float = 1.5, sample_rate: int = 24000) -> None:
    path = Path(path)
    if path.exists():
        return
    write_wav(path, alarm_tone(sample_rate, duration_seconds), sample_rate)
    logger.info("Generated default alarm sound at %s", path)
