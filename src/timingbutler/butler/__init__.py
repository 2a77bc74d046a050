"""Butler package: keyframe lookup, boundary decisions, and the per-line orchestrator."""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from timingbutler.butler.boundaries import adjust_end, adjust_start
from timingbutler.butler.locator import nearest_keyframe
from timingbutler.config.schema import ButlerConfig
from timingbutler.ingestion.subtitles import Document
from timingbutler.models import Event
from timingbutler.workspace import Workspace

logger = logging.getLogger(__name__)

NO_WORKSPACE = "No workspace loaded!"
NO_VIDEO = "No video loaded!"
NO_KEYFRAMES = "No keyframes loaded!"
NO_SELECTION = "No event selected!"


@dataclass
class ButlerResult:
    """Outcome of one butler call.

    ``notice`` is set when a precondition was not met; the call is then a
    no-op and ``changed`` is False.
    """

    changed: bool
    notice: Optional[str] = None
    start_changed: bool = False
    end_changed: bool = False


def find_previous_dialogue(
    document: Document,
    event: Event,
    chronological: bool = False,
) -> Optional[Event]:
    """Return the non-comment event that precedes *event*.

    By default this walks back through document order, which assumes the
    script is sorted by time.  With *chronological* the latest-starting
    non-comment event that starts before *event* is returned instead.
    """
    if chronological:
        candidates = [
            other for other in document.events
            if other is not event and not other.is_comment and other.start < event.start
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda other: (other.start, other.index))

    previous = document.event_before(event)
    while previous is not None and previous.is_comment:
        previous = document.event_before(previous)
    return previous


def call_butler(
    workspace: Optional[Workspace],
    config_provider: Callable[[], ButlerConfig],
    chronological: bool = False,
) -> ButlerResult:
    """Time the workspace's active event against the video's keyframes.

    Steps:
    1. Resolve the config (fresh every call; values may change between calls)
    2. Check preconditions: workspace, video, keyframes, selected event
    3. Find the previous non-comment event
    4. Adjust the start, then the end
    5. Commit the event if either boundary moved

    Unmet preconditions are reported through ``ButlerResult.notice`` and
    logged at INFO; they are not errors.
    """
    config = config_provider()

    if workspace is None:
        return _notice(NO_WORKSPACE)
    if not workspace.is_video_loaded:
        return _notice(NO_VIDEO)
    video = workspace.video
    if not video.keyframes:
        return _notice(NO_KEYFRAMES)
    active = workspace.active_event
    if active is None:
        return _notice(NO_SELECTION)

    previous = find_previous_dialogue(workspace.document, active, chronological)

    start_changed = adjust_start(active, previous, video, config)
    end_changed = adjust_end(active, video, config)
    changed = start_changed or end_changed

    if changed:
        workspace.commit(active)
        logger.info(
            "Line %d retimed to %.0fms -> %.0fms", active.index, active.start, active.end
        )
    else:
        logger.info("Line %d left unchanged", active.index)

    return ButlerResult(changed=changed, start_changed=start_changed, end_changed=end_changed)


def _notice(message: str) -> ButlerResult:
    logger.info(message)
    return ButlerResult(changed=False, notice=message)


__all__ = [
    "ButlerResult",
    "adjust_end",
    "adjust_start",
    "call_butler",
    "find_previous_dialogue",
    "nearest_keyframe",
]
