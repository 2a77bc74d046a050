"""The editing session a butler call operates on."""

from dataclasses import dataclass, field
from typing import Optional

from timingbutler.ingestion.subtitles import Document
from timingbutler.ingestion.video import VideoInfo
from timingbutler.models import Event


@dataclass
class Workspace:
    """A loaded document, the video it is timed against, and the selected line."""

    document: Document
    video: Optional[VideoInfo] = None
    active_event: Optional[Event] = None
    committed: list[int] = field(default_factory=list)  # Event indices, in commit order

    def select(self, index: int) -> Event:
        """Make the event at document position *index* the active one."""
        if not 0 <= index < len(self.document):
            raise IndexError(f"Line {index} is out of range (document has {len(self.document)} events)")
        self.active_event = self.document.events[index]
        return self.active_event

    @property
    def is_video_loaded(self) -> bool:
        return self.video is not None and self.video.is_loaded

    def commit(self, event: Event) -> None:
        self.document.commit(event)
        self.committed.append(event.index)
