import io
import wave
from pathlib import Path
from typing import BinaryIO

import numpy as np
from pydub import AudioSegment

# pydub/ffmpeg demuxer names where they differ from the file extension
_PYDUB_FORMATS = {"m4a": "mp4", "aac": "adts"}


def read_wav(source: str | Path | BinaryIO) -> tuple[np.ndarray, int]:
    """Decode a PCM WAV file to mono float32 in [-1, 1] plus its sample rate."""
    with wave.open(_open_target(source), "rb") as wav_file:
        channels = wav_file.getnchannels()
        sample_width = wav_file.getsampwidth()
        sample_rate = wav_file.getframerate()
        frame_count = wav_file.getnframes()
        frames = wav_file.readframes(frame_count)

    if sample_width == 1:
        data = np.frombuffer(frames, dtype=np.uint8).astype(np.float32)
        data = (data - 128.0) / 128.0
    elif sample_width == 2:
        data = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
    elif sample_width == 3:
        raw = np.frombuffer(frames, dtype=np.uint8).reshape(-1, 3)
        ints = (
            raw[:, 0].astype(np.int32)
            | (raw[:, 1].astype(np.int32) << 8)
            | (raw[:, 2].astype(np.int32) << 16)
        )
        sign_bit = 1 << 23
        ints = (ints ^ sign_bit) - sign_bit
        data = ints.astype(np.float32) / float(1 << 23)
    elif sample_width == 4:
        data = np.frombuffer(frames, dtype=np.int32).astype(np.float32) / 2147483648.0
    else:
        raise ValueError(f"Unsupported WAV sample width: {sample_width} bytes")

    if channels > 1:
        data = data.reshape(-1, channels).mean(axis=1)

    return np.clip(data, -1.0, 1.0).astype(np.float32), sample_rate


def read_audio(source: str | Path | BinaryIO, extension: str | None = None) -> tuple[np.ndarray, int]:
    """
    Decode any accepted audio upload to mono float32 plus its sample rate.

    WAV is read directly; compressed formats (mp3, ogg, m4a, aac, webm) go
    through pydub, which needs the ffmpeg binary on PATH.
    """
    if extension is None:
        extension = Path(source).suffix if isinstance(source, (str, Path)) else ""
    extension = extension.lower().lstrip(".")
    if extension in ("", "wav"):
        return read_wav(source)
    segment = AudioSegment.from_file(_open_target(source), format=_PYDUB_FORMATS.get(extension, extension))
    return segment_to_array(segment), segment.frame_rate


def read_audio_bytes(payload: bytes, extension: str) -> tuple[np.ndarray, int]:
    return read_audio(io.BytesIO(payload), extension)


def segment_to_array(segment: AudioSegment) -> np.ndarray:
    """Convert decoded pydub samples to mono float32 in [-1, 1]."""
    samples = np.array(segment.get_array_of_samples()).astype(np.float32)
    if segment.channels > 1:
        samples = samples.reshape(-1, segment.channels).mean(axis=1)
    full_scale = float(1 << (8 * segment.sample_width - 1))
    return np.clip(samples / full_scale, -1.0, 1.0).astype(np.float32)


def write_wav(target: str | Path | BinaryIO, data: np.ndarray, sample_rate: int) -> None:
    """Encode mono float samples as 16-bit PCM."""
    clipped = np.clip(np.asarray(data, dtype=np.float32), -1.0, 1.0)
    pcm = (clipped * 32767.0).astype(np.int16)
    with wave.open(_open_target(target), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm.tobytes())


def wav_bytes(data: np.ndarray, sample_rate: int) -> bytes:
    buffer = io.BytesIO()
    write_wav(buffer, data, sample_rate)
    return buffer.getvalue()


def wav_duration(payload: bytes) -> float:
    with wave.open(io.BytesIO(payload), "rb") as wav_file:
        rate = wav_file.getframerate()
        return wav_file.getnframes() / rate if rate else 0.0


def resample(data: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resample; good enough for preview playback."""
    if source_rate == target_rate or data.size == 0:
        return np.asarray(data, dtype=np.float32)
    target_len = max(1, int(round(len(data) * target_rate / source_rate)))
    source_positions = np.arange(len(data), dtype=np.float64)
    target_positions = np.linspace(0, len(data) - 1, target_len)
    return np.interp(target_positions, source_positions, data).astype(np.float32)


def _open_target(target):
    return str(target) if isinstance(target, Path) else target
