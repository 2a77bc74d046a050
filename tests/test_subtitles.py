"""Unit tests for timingbutler.ingestion.subtitles.

All tests are self-contained: subtitle content is written inline to
``tmp_path`` using pytest fixtures.  No real media files are required.
"""

from __future__ import annotations

from pathlib import Path

import pysubs2
import pytest

from timingbutler.errors import SubtitleParseError
from timingbutler.ingestion.subtitles import Document, compute_cps, load_document, quantize_up, time_step_ms
from timingbutler.models import Event


_SRT_CONTENT = """\
1
00:00:01,000 --> 00:00:03,000
Hello, world!

2
00:00:04,000 --> 00:00:06,000
I must fight for what I believe.

"""

_ASS_CONTENT = """\
[Script Info]
ScriptType: v4.00+
PlayResX: 640
PlayResY: 480

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: Default,Arial,20,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,2,2,10,10,10,1

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:03.00,Default,,0,0,0,,Forever together we stand.
Comment: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,TL note
Dialogue: 0,0:00:04.00,0:00:05.00,Default,,0,0,0,,{\\i1}Run{\\i0}!
"""


class TestComputeCps:
    def test_counts_letters_and_digits_only(self) -> None:
        # "Hello, world!" -> 10 alphanumeric characters over 2 seconds
        assert compute_cps("Hello, world!", 2000) == pytest.approx(5.0)

    def test_zero_duration(self) -> None:
        assert compute_cps("Hello", 0) == 0.0

    def test_negative_duration(self) -> None:
        assert compute_cps("Hello", -500) == 0.0


class TestLoadSrt:
    def test_events_loaded(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")

        document = load_document(p)

        assert len(document) == 2
        first = document.events[0]
        assert isinstance(first, Event)
        assert first.start == 1000.0
        assert first.end == 3000.0
        assert first.index == 0
        assert first.is_comment is False
        assert first.cps == pytest.approx(5.0)
        assert document.path == p

    def test_event_before(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)

        assert document.event_before(document.events[1]) is document.events[0]
        assert document.event_before(document.events[0]) is None


class TestLoadAss:
    def test_comments_flagged(self, tmp_path: Path) -> None:
        p = tmp_path / "test.ass"
        p.write_text(_ASS_CONTENT, encoding="utf-8")

        document = load_document(p)

        assert [e.is_comment for e in document.events] == [False, True, False]

    def test_override_tags_stripped_for_cps(self, tmp_path: Path) -> None:
        p = tmp_path / "test.ass"
        p.write_text(_ASS_CONTENT, encoding="utf-8")

        document = load_document(p)

        assert document.events[2].text == "Run!"
        assert document.events[2].cps == pytest.approx(3.0)


class TestEncodingFallback:
    def test_latin1_file(self, tmp_path: Path) -> None:
        p = tmp_path / "latin.srt"
        srt = (
            "1\n00:00:01,000 --> 00:00:03,000\n"
            "Ça va très bien, merci. Où est la bibliothèque municipale?\n\n"
        )
        p.write_bytes(srt.encode("latin-1"))

        document = load_document(p)

        assert len(document) == 1
        assert document.events[0].start == 1000.0

    def test_unparseable_file_raises(self, tmp_path: Path) -> None:
        p = tmp_path / "bad.srt"
        p.write_text("this is not a subtitle file\n", encoding="utf-8")
        with pytest.raises(SubtitleParseError):
            load_document(p)


class TestCommitAndSave:
    def test_commit_rounds_up_to_whole_ms(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[1]
        event.start = 3879.6
        event.end = 6120.2

        document.commit(event)

        assert document.subs[1].start == 3880
        assert document.subs[1].end == 6121
        assert document.dirty is True

    def test_commit_keeps_whole_ms_unchanged(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[1]
        event.start = 3880.0000000001

        document.commit(event)

        assert document.subs[1].start == 3880

    def test_commit_rounds_up_to_centiseconds_for_ass(self, tmp_path: Path) -> None:
        p = tmp_path / "test.ass"
        p.write_text(_ASS_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[0]
        event.start = 83.416
        event.end = 2000.0

        document.commit(event)

        assert document.subs[0].start == 90
        assert document.subs[0].end == 2000

    def test_save_to_ass_rounds_committed_lines_up(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[0]
        event.start = 83.416
        document.commit(event)
        assert document.subs[0].start == 84

        out = document.save(tmp_path / "out.ass")

        assert pysubs2.load(str(out))[0].start == 90

    def test_commit_updates_cps(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[0]
        event.end = 5000.0

        document.commit(event)

        assert event.cps == pytest.approx(2.5)

    def test_save_round_trip(self, tmp_path: Path) -> None:
        p = tmp_path / "test.srt"
        p.write_text(_SRT_CONTENT, encoding="utf-8")
        document = load_document(p)
        event = document.events[0]
        event.start = 880.0
        document.commit(event)

        out = document.save(tmp_path / "out.srt")

        assert document.dirty is False
        assert pysubs2.load(str(out))[0].start == 880

    def test_save_without_path_raises(self) -> None:
        with pytest.raises(ValueError):
            Document(pysubs2.SSAFile()).save()


class TestTimeStep:
    @pytest.mark.parametrize(("format_", "step"), [("srt", 1), ("ass", 10), ("ssa", 10), (None, 1)])
    def test_time_step_ms(self, format_, step) -> None:
        assert time_step_ms(format_) == step

    def test_quantize_up(self) -> None:
        assert quantize_up(83.416, 1) == 84
        assert quantize_up(83.416, 10) == 90
        assert quantize_up(80.0, 10) == 80
