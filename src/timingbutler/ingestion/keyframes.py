"""Keyframe timeline loading.

Keyframes come from one of two places:
  1. A keyframe file (Aegisub ``# keyframe format v1`` or a plain list of
     frame numbers, one per line)
  2. An ffprobe scan of the video's key frames

Either way the result is a sorted, deduplicated list of non-negative frame
indices, which is what :func:`timingbutler.butler.locator.nearest_keyframe`
expects.  Raw ffprobe errors are translated into ``VideoProbeError``.
"""

from __future__ import annotations

import json
import subprocess
from fractions import Fraction
from pathlib import Path
from typing import Iterable

from timingbutler.errors import KeyframeError, VideoProbeError

AEGISUB_KEYFRAME_HEADER = "# keyframe format v1"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_keyframes(frames: Iterable[int]) -> list[int]:
    """Return *frames* sorted ascending with duplicates and negatives removed."""
    return sorted({int(f) for f in frames if int(f) >= 0})


def parse_keyframe_file(path: Path) -> list[int]:
    """Read a keyframe file into a normalized frame list.

    Parameters
    ----------
    path:
        Aegisub v1 keyframe file, or any text file with one frame number
        per line.  Blank lines and ``#`` comments are ignored.

    Returns
    -------
    list[int]
        Sorted, deduplicated keyframe indices.

    Raises
    ------
    KeyframeError
        If the file cannot be read, contains a non-integer entry, or holds
        no keyframes at all.
    """
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise KeyframeError(f"'{path.name}'", str(exc)) from exc

    if lines and lines[0].strip().lower() == AEGISUB_KEYFRAME_HEADER:
        lines = lines[1:]
        # The fps line is informational only; the video supplies the frame rate
        if lines and lines[0].strip().lower().startswith("fps"):
            lines = lines[1:]

    frames: list[int] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            frames.append(int(line))
        except ValueError as exc:
            raise KeyframeError(
                f"'{path.name}'", f"Line {lineno} is not a frame number: {line!r}"
            ) from exc

    keyframes = normalize_keyframes(frames)
    if not keyframes:
        raise KeyframeError(f"'{path.name}'", "File contains no keyframes.")
    return keyframes


def probe_keyframes(source: Path, fps: Fraction) -> list[int]:
    """Scan *source* with ffprobe and return its keyframe indices.

    Only key frames are decoded (``-skip_frame nokey``); their presentation
    timestamps are converted to frame indices at *fps*.

    Raises
    ------
    VideoProbeError
        If ffprobe is missing, fails, or its output cannot be parsed.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-select_streams", "v:0",
        "-skip_frame", "nokey",
        "-show_entries", "frame=pts_time",
        "-print_format", "json",
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
        frames = [
            round(Fraction(entry["pts_time"]) * fps)
            for entry in data.get("frames", [])
            if "pts_time" in entry
        ]
    except (KeyError, ValueError, json.JSONDecodeError) as exc:
        raise VideoProbeError(source, f"Could not parse ffprobe output: {exc}") from exc

    return normalize_keyframes(frames)
