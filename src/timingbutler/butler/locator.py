"""Nearest-keyframe lookup by binary search."""

from __future__ import annotations

from bisect import bisect_left
from typing import Sequence

from timingbutler.errors import KeyframeError


def nearest_keyframe(frame: int, keyframes: Sequence[int]) -> int:
    """Return the keyframe in *keyframes* closest to *frame*.

    Parameters
    ----------
    frame:
        Frame index to look up.
    keyframes:
        Strictly increasing keyframe indices.  Never sorted here; callers
        load keyframes through :mod:`timingbutler.ingestion.keyframes`,
        which sorts and deduplicates them.

    Returns
    -------
    int
        The matching keyframe on an exact hit, the first or last keyframe
        when *frame* lies outside the timeline, otherwise the nearer of the
        two surrounding keyframes.  Equidistant neighbours resolve to the
        earlier one.

    Raises
    ------
    KeyframeError
        If *keyframes* is empty.
    """
    if not keyframes:
        raise KeyframeError("the loaded video", "Keyframe list is empty.")

    idx = bisect_left(keyframes, frame)
    if idx < len(keyframes) and keyframes[idx] == frame:
        return keyframes[idx]

    if idx <= 0:
        return keyframes[0]
    if idx >= len(keyframes):
        return keyframes[-1]

    before = keyframes[idx - 1]
    after = keyframes[idx]

    # Ties go to the earlier keyframe
    return before if frame - before <= after - frame else after
