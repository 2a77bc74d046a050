from dataclasses import dataclass


@dataclass
class Event:
    """A single subtitle event as seen by the butler.

    Times are milliseconds; sub-millisecond fractions are kept until the
    event is committed back to the document.
    """

    start: float
    end: float
    is_comment: bool = False
    cps: float = 0.0        # Characters per second, computed by the document
    text: str = ""
    index: int = -1         # Position in the owning document; -1 if detached
