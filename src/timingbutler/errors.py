from pathlib import Path


class ButlerError(Exception):
    """Base class for all Timing Butler errors."""


class SubtitleParseError(ButlerError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot parse subtitle file '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file valid SRT or ASS format?\n"
            f"  Tip: Try re-saving the file as UTF-8 in a text editor."
        )
        self.path = path
        self.detail = detail


class KeyframeError(ButlerError):
    def __init__(self, source: str, detail: str) -> None:
        super().__init__(
            f"Cannot use keyframes from {source}.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the keyframe file in Aegisub v1 format or a plain list of frame numbers?"
        )
        self.source = source
        self.detail = detail


class VideoProbeError(ButlerError):
    def __init__(self, source: Path, detail: str) -> None:
        super().__init__(
            f"Failed to read video information from '{source.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is FFmpeg installed and in PATH? Is '{source.name}' a valid video file?\n"
            f"  Tip: Pass --keyframes and --fps to skip probing the video."
        )
        self.source = source
        self.detail = detail


class ConfigError(ButlerError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot load configuration '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file valid JSON mapping setting names to integers?\n"
            f"  Tip: Delete the file to regenerate it with default values."
        )
        self.path = path
        self.detail = detail
