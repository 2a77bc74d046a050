"""Subtitle document loading, event lookup, and persistence.

Supports SRT and ASS/SSA subtitle formats via pysubs2.  Non-UTF-8 files
are detected with charset-normalizer before a second parse attempt; if
encoding detection also fails, ``SubtitleParseError`` is raised with a
human-readable message rather than silently dropping events.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional

import pysubs2
from charset_normalizer import from_path

from timingbutler.errors import SubtitleParseError
from timingbutler.models import Event

logger = logging.getLogger(__name__)

# ASS/SSA store centiseconds; every other format keeps whole milliseconds
_CENTISECOND_FORMATS = {"ass", "ssa"}


def compute_cps(text: str, duration_ms: float) -> float:
    """Return reading speed in characters per second.

    Only letters and digits count; whitespace and punctuation do not.
    Zero or negative durations give 0.0.
    """
    if duration_ms <= 0:
        return 0.0
    chars = sum(1 for ch in text if ch.isalnum())
    return chars / (duration_ms / 1000.0)


def time_step_ms(format_: Optional[str]) -> int:
    """Return the smallest time step, in ms, a subtitle format can store."""
    return 10 if format_ in _CENTISECOND_FORMATS else 1


def quantize_up(time_ms: float, step_ms: int) -> int:
    """Round *time_ms* up to a multiple of *step_ms*.

    Rounding up keeps a time that starts a frame inside that frame.
    """
    return math.ceil(round(time_ms / step_ms, 6)) * step_ms


class Document:
    """A loaded subtitle script whose events the butler can edit."""

    def __init__(self, subs: pysubs2.SSAFile, path: Optional[Path] = None) -> None:
        self.subs = subs
        self.path = path
        self.dirty = False
        self._committed: set[int] = set()
        self.events: list[Event] = [self._to_event(i, line) for i, line in enumerate(subs)]

    def __len__(self) -> int:
        return len(self.events)

    def event_before(self, event: Event) -> Optional[Event]:
        """Return the event immediately before *event* in document order.

        Comments are returned too; callers skip them as needed.
        """
        if event.index <= 0:
            return None
        return self.events[event.index - 1]

    @property
    def format(self) -> Optional[str]:
        """pysubs2 format identifier of the loaded script (``"srt"``, ``"ass"``, ...)."""
        if self.subs.format:
            return self.subs.format
        if self.path is not None:
            return self.path.suffix.lstrip(".").lower() or None
        return None

    def commit(self, event: Event) -> None:
        """Write *event*'s times back into the script.

        Times are rounded up to the format's time step so that a boundary
        snapped to a keyframe is still on that keyframe's frame once saved.
        """
        step = time_step_ms(self.format)
        line = self.subs[event.index]
        line.start = quantize_up(event.start, step)
        line.end = quantize_up(event.end, step)
        self._committed.add(event.index)
        event.cps = compute_cps(line.plaintext, line.end - line.start)
        self.dirty = True
        logger.debug("Committed event %d: %d -> %d", event.index, line.start, line.end)

    def save(self, path: Optional[Path] = None) -> Path:
        """Save the script to *path* (defaults to where it was loaded from)."""
        target = path if path is not None else self.path
        if target is None:
            raise ValueError("Document has no path; pass one explicitly.")
        # Saving to a coarser format than the source: re-round committed lines up
        target_step = time_step_ms(target.suffix.lstrip(".").lower())
        if target_step > time_step_ms(self.format):
            for index in self._committed:
                line = self.subs[index]
                line.start = quantize_up(line.start, target_step)
                line.end = quantize_up(line.end, target_step)
        self.subs.save(str(target), encoding="utf-8")
        self.dirty = False
        return target

    @staticmethod
    def _to_event(index: int, line: pysubs2.SSAEvent) -> Event:
        text = line.plaintext
        return Event(
            start=float(line.start),
            end=float(line.end),
            is_comment=line.is_comment,
            cps=compute_cps(text, line.end - line.start),
            text=text,
            index=index,
        )


def load_document(subtitle_path: Path) -> Document:
    """Load an SRT or ASS subtitle file into a :class:`Document`.

    Raises
    ------
    SubtitleParseError
        If the file cannot be loaded (including unresolvable encoding).
    """
    subs = _load_with_encoding_fallback(subtitle_path)
    logger.debug("Loaded %d events from %s", len(subs), subtitle_path.name)
    return Document(subs, subtitle_path)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_with_encoding_fallback(subtitle_path: Path) -> pysubs2.SSAFile:
    """Load *subtitle_path* with UTF-8, falling back to charset-normalizer.

    Raises ``SubtitleParseError`` if encoding cannot be determined or the
    file is not valid SRT/ASS syntax.
    """
    try:
        return pysubs2.load(str(subtitle_path), encoding="utf-8")
    except UnicodeDecodeError:
        pass
    except Exception as exc:
        raise SubtitleParseError(subtitle_path, str(exc)) from exc

    # UTF-8 failed, try charset-normalizer
    results = from_path(subtitle_path)
    best = results.best()
    if best is None:
        raise SubtitleParseError(
            subtitle_path,
            "Could not determine file encoding. Re-save as UTF-8.",
        )
    detected_encoding = best.encoding
    logger.info("Subtitle file is not UTF-8; detected %s", detected_encoding)
    try:
        return pysubs2.load(str(subtitle_path), encoding=detected_encoding)
    except Exception as exc:
        raise SubtitleParseError(subtitle_path, str(exc)) from exc
