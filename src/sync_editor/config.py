import os
from dataclasses import dataclass, replace
from typing import Mapping


@dataclass(frozen=True)
class EditorSettings:
    """Tunable constants shared by the sync and trim components."""
    play_state_interval: float = 0.2
    drift_interval: float = 0.25
    drift_tolerance: float = 0.2
    default_region_length: float = 10.0
    zoom_min: float = 10.0
    zoom_max: float = 200.0
    zoom_default: float = 50.0
    ffmpeg_path: str = "ffmpeg"
    output_format: str = "wav"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EditorSettings":
        env = os.environ if environ is None else environ
        settings = cls()

        ffmpeg_path = env.get("SYNC_EDITOR_FFMPEG", "").strip()
        if ffmpeg_path:
            settings = replace(settings, ffmpeg_path=ffmpeg_path)

        tolerance = _read_float(env, "SYNC_EDITOR_DRIFT_TOLERANCE")
        if tolerance is not None:
            settings = replace(settings, drift_tolerance=tolerance)

        region_length = _read_float(env, "SYNC_EDITOR_DEFAULT_REGION_LENGTH")
        if region_length is not None:
            settings = replace(settings, default_region_length=region_length)

        return settings


def _read_float(env: Mapping[str, str], name: str) -> float | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value
