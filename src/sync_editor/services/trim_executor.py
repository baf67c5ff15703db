import asyncio
import logging
import tempfile
from pathlib import Path

from sync_editor.domain.errors import Busy, EngineInitError, TrimExecutionError
from sync_editor.domain.trim_plan import TrimPlan

logger = logging.getLogger(__name__)


class FfmpegTrimExecutor:
    """
    Runs trim plans through the ffmpeg binary.

    Every request gets its own scratch directory: the input is written,
    ffmpeg runs, the output is read back and both files are removed.
    Only one request may be in flight; a second one is rejected with Busy.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", output_format: str = "wav"):
        self.ffmpeg_path = ffmpeg_path
        self.output_format = output_format
        self._ready = False
        self._in_flight = False

    def is_busy(self) -> bool:
        return self._in_flight

    async def ensure_ready(self) -> None:
        if self._ready:
            return
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffmpeg_path,
                "-hide_banner",
                "-version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            code = await process.wait()
        except OSError as exc:
            logger.error("Could not start %s: %s", self.ffmpeg_path, exc)
            raise EngineInitError("Failed to initialize audio processor") from exc
        if code != 0:
            raise EngineInitError("Failed to initialize audio processor")
        self._ready = True
        logger.info("Audio processor ready (%s)", self.ffmpeg_path)

    async def trim(self, source: bytes, plan: TrimPlan, source_suffix: str = ".wav") -> bytes:
        if self._in_flight:
            raise Busy()
        self._in_flight = True
        try:
            await self.ensure_ready()
            return await self._run(source, plan, source_suffix)
        finally:
            self._in_flight = False

    def build_command(self, input_path: Path, output_path: Path, plan: TrimPlan) -> list[str]:
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-y",
            "-i", str(input_path),
            "-filter_complex", plan.to_filter_complex(),
            "-map", "[out]",
            str(output_path),
        ]

    async def _run(self, source: bytes, plan: TrimPlan, source_suffix: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="sync_editor_trim_") as scratch:
            input_path = Path(scratch) / f"input{source_suffix or '.wav'}"
            output_path = Path(scratch) / f"output.{self.output_format}"
            input_path.write_bytes(source)

            process = await asyncio.create_subprocess_exec(
                *self.build_command(input_path, output_path, plan),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await process.communicate()
            except asyncio.CancelledError:
                if process.returncode is None:
                    logger.info("Trim cancelled, killing ffmpeg")
                    process.kill()
                    await process.wait()
                raise
            if process.returncode != 0 or not output_path.exists():
                tail = stderr.decode("utf-8", errors="replace")[-400:]
                logger.error("ffmpeg exited with %s: %s", process.returncode, tail)
                raise TrimExecutionError("Failed to trim audio")

            data = output_path.read_bytes()
            input_path.unlink(missing_ok=True)
            output_path.unlink(missing_ok=True)
            return data
