from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Sequence

from .errors import NoRegions
from .region import Region


@dataclass(frozen=True)
class TrimOperation:
    """Extract [start, end) from the input audio stream."""
    region_id: str
    start: float
    end: float

    @property
    def length(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass(frozen=True)
class TrimPlan:
    """Ordered extraction operations joined end to end into one output stream."""
    operations: tuple[TrimOperation, ...]

    @property
    def expected_duration(self) -> float:
        return sum(op.length for op in self.operations)

    def describe(self) -> str:
        """Stable text form of the plan, identical for identical input."""
        lines = [f"trim {op.region_id} {op.start!r} {op.end!r}" for op in self.operations]
        lines.append(f"concat {len(self.operations)}")
        return "\n".join(lines)

    def to_filter_complex(self) -> str:
        """Render the plan as an ffmpeg -filter_complex expression with output label [out]."""
        parts = [
            f"[0:a]atrim=start={_fmt(op.start)}:end={_fmt(op.end)},asetpts=PTS-STARTPTS[a{index}]"
            for index, op in enumerate(self.operations)
        ]
        inputs = "".join(f"[a{index}]" for index in range(len(self.operations)))
        return f"{';'.join(parts)};{inputs}concat=n={len(self.operations)}:v=0:a=1[out]"


def compile_trim_plan(regions: Sequence[Region]) -> TrimPlan:
    """
    Turn regions into a trim plan.

    Regions are taken in the order given (creation order). Overlapping
    regions are not merged and nothing is re-sorted by time.
    """
    if not regions:
        raise NoRegions()
    return TrimPlan(tuple(TrimOperation(r.id, float(r.start), float(r.end)) for r in regions))


def trimmed_filename(source_name: str | None, extension: str = "wav") -> str:
    name = PurePath(source_name).name if source_name else ""
    return f"trimmed_{name or 'audio'}.{extension}"


def _fmt(seconds: float) -> str:
    # fixed-point, microsecond resolution; ffmpeg rejects exponent notation
    return f"{float(seconds):.6f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class TrimResult:
    """Output artifact of a trim: one WAV file offered for download."""
    data: bytes
    filename: str
    duration: float
    mime_type: str = "audio/wav"

    def save(self, directory: str | Path) -> Path:
        target = Path(directory) / self.filename
        target.write_bytes(self.data)
        return target
