"""Video information: frame rate, frame/time conversion, and keyframes.

Frame rates are held as exact fractions (``24000/1001`` rather than
``23.976``) so that converting a frame to a time and back always returns
the same frame.
"""

from __future__ import annotations

import json
import logging
import math
import subprocess
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Optional

from timingbutler.errors import VideoProbeError
from timingbutler.ingestion.keyframes import parse_keyframe_file, probe_keyframes

logger = logging.getLogger(__name__)


@dataclass
class VideoInfo:
    """Constant-frame-rate timing model plus the keyframe timeline."""

    fps: Fraction
    keyframes: list[int] = field(default_factory=list)

    @property
    def is_loaded(self) -> bool:
        return self.fps > 0

    def frame_from_time(self, time_ms: float) -> int:
        """Return the frame displayed at *time_ms*."""
        # Rounded to 1e-6 frames so float times produced by time_from_frame land back on their frame
        exact = round(Fraction(time_ms) * self.fps / 1000, 6)
        return math.floor(exact)

    def time_from_frame(self, frame: int) -> float:
        """Return the start time of *frame* in milliseconds."""
        return float(Fraction(frame) * 1000 / self.fps)


def parse_frame_rate(value: str) -> Fraction:
    """Parse ``"24000/1001"``, ``"25"`` or ``"23.976"`` into a positive Fraction."""
    try:
        fps = Fraction(value.strip())
    except (ValueError, ZeroDivisionError) as exc:
        raise ValueError(f"Invalid frame rate: {value!r}") from exc
    if fps <= 0:
        raise ValueError(f"Frame rate must be positive: {value!r}")
    return fps


def probe_frame_rate(source: Path) -> Fraction:
    """Return the ``r_frame_rate`` of the first video stream in *source*.

    Raises
    ------
    VideoProbeError
        If ffprobe is not installed, the file is unreadable, or its output
        cannot be parsed.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_streams",
        "-select_streams", "v:0",
        str(source),
    ]
    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as exc:
        raise VideoProbeError(source, f"ffprobe failed: {exc.stderr.strip()}") from exc
    except FileNotFoundError as exc:
        raise VideoProbeError(source, "ffprobe not found. Is FFmpeg installed and in PATH?") from exc

    try:
        data = json.loads(result.stdout)
        stream = data["streams"][0]
        return parse_frame_rate(stream["r_frame_rate"])
    except (KeyError, IndexError, ValueError, json.JSONDecodeError) as exc:
        raise VideoProbeError(source, f"Could not parse ffprobe output: {exc}") from exc


def load_video(
    source: Optional[Path] = None,
    keyframes_path: Optional[Path] = None,
    fps: Optional[Fraction] = None,
) -> VideoInfo:
    """Build a :class:`VideoInfo` from a video file and/or a keyframe file.

    The frame rate is *fps* if given, otherwise probed from *source*.
    Keyframes are read from *keyframes_path* if given, otherwise scanned
    from *source*.  At least one of *source* or (*keyframes_path* and
    *fps*) must be supplied.
    """
    if fps is None:
        if source is None:
            raise ValueError("A frame rate is required when no video file is given.")
        fps = probe_frame_rate(source)

    if keyframes_path is not None:
        keyframes = parse_keyframe_file(keyframes_path)
    elif source is not None:
        keyframes = probe_keyframes(source, fps)
    else:
        raise ValueError("Either a video file or a keyframe file is required.")

    logger.debug("Loaded %d keyframes at %s fps", len(keyframes), fps)
    return VideoInfo(fps=fps, keyframes=keyframes)
