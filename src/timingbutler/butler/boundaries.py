"""Start and end boundary decisions for a single subtitle event.

Both functions mutate the event in place and return True when a boundary
was modified.  A False result is the only way "nothing to do" is signalled;
neither function raises for threshold edge cases.
"""

from __future__ import annotations

import logging
from typing import Optional

from timingbutler.butler.locator import nearest_keyframe
from timingbutler.config.schema import ButlerConfig
from timingbutler.ingestion.video import VideoInfo
from timingbutler.models import Event

logger = logging.getLogger(__name__)

# End boundaries whose following keyframe is at least this far away go
# through the CPS heuristic instead of a plain snap
CPS_DECISION_DISTANCE_MS = 850
# Lead-out never pushes the end closer than this to the following keyframe
LEAD_OUT_KEYFRAME_MARGIN_MS = 500
# Events at or below this reading speed get lead-out rather than a snap
MAX_LEAD_OUT_CPS = 15


def adjust_start(
    event: Event,
    previous: Optional[Event],
    video: VideoInfo,
    config: ButlerConfig,
) -> bool:
    """Snap, chain, or pad the start of *event*.

    Steps:
    1. Locate the keyframe nearest the start frame; bail out if already on it
    2. Snap to it when inside the earlier/later start threshold
    3. Chain to *previous*'s end when inside the chain threshold (overrides 2)
    4. If neither snapped nor chained, subtract the lead-in

    Args:
        event: Event to adjust; ``start`` is modified in place.
        previous: Nearest earlier non-comment event, or None.
        video: Frame/time conversion and keyframe timeline.
        config: Resolved thresholds.

    Returns:
        True if ``event.start`` was modified (always True past step 1).
    """
    start_frame = video.frame_from_time(event.start)
    nearest_kf = nearest_keyframe(start_frame, video.keyframes)
    kf_time = video.time_from_frame(nearest_kf)

    if start_frame == nearest_kf:
        logger.debug("Start %.0fms already on keyframe %d", event.start, nearest_kf)
        return False

    delta = event.start - kf_time
    if delta > 0:  # Keyframe is earlier than the start
        if delta < config.snap_start_earlier:
            event.start = kf_time
    else:  # Keyframe is later than the start
        if abs(delta) < config.snap_start_later:
            event.start = kf_time
    snapped = event.start == kf_time
    chained = False

    if snapped:
        logger.debug("Start snapped to keyframe %d (%.0fms)", nearest_kf, kf_time)

    if previous is not None:
        delta = event.start - previous.end
        if abs(delta) < config.chain_threshold:
            chained = True
            if config.chain_gap == 0:
                event.start = previous.end
            else:
                prev_end_frame = video.frame_from_time(previous.end)
                event.start = video.time_from_frame(prev_end_frame + config.chain_gap)
            logger.debug("Start chained to previous end (%.0fms -> %.0fms)", previous.end, event.start)

    if snapped or chained:
        return True

    # Reported as a change even when lead_in is 0
    event.start -= config.lead_in
    logger.debug("Start given %dms lead-in -> %.0fms", config.lead_in, event.start)
    return True


def adjust_end(event: Event, video: VideoInfo, config: ButlerConfig) -> bool:
    """Snap or pad the end of *event*.

    A keyframe before the end is snapped to when closer than
    ``snap_end_earlier``.  A keyframe after the end is snapped to when
    closer than 850ms; between 850ms and ``snap_end_later`` (inclusive)
    slow-reading events (CPS <= 15) get ``min(lead_out, distance - 500)``
    of lead-out instead, and faster ones are snapped.  Anything further
    away is left alone.

    Returns:
        True if ``event.end`` was modified.
    """
    end_frame = video.frame_from_time(event.end)
    nearest_kf = nearest_keyframe(end_frame, video.keyframes)
    kf_time = video.time_from_frame(nearest_kf)

    if end_frame == nearest_kf:
        logger.debug("End %.0fms already on keyframe %d", event.end, nearest_kf)
        return False

    delta = event.end - kf_time
    if delta > 0:  # Keyframe is earlier than the end
        if delta >= config.snap_end_earlier:
            return False
        event.end = kf_time
        logger.debug("End snapped back to keyframe %d (%.0fms)", nearest_kf, kf_time)
        return True

    distance = abs(delta)
    if CPS_DECISION_DISTANCE_MS <= distance <= config.snap_end_later:
        if event.cps <= MAX_LEAD_OUT_CPS:
            lead_out = min(config.lead_out, distance - LEAD_OUT_KEYFRAME_MARGIN_MS)
            event.end += lead_out
            logger.debug("End given %.0fms lead-out (cps %.1f)", lead_out, event.cps)
        else:
            event.end = kf_time
            logger.debug("End snapped forward to keyframe %d (cps %.1f)", nearest_kf, event.cps)
        return True

    if distance >= config.snap_end_later:
        return False

    event.end = kf_time
    logger.debug("End snapped forward to keyframe %d (%.0fms)", nearest_kf, kf_time)
    return True
