from __future__ import annotations

from pathlib import Path

from aiadmaker.captions.ass import build_caption_ass, format_ass_time, write_caption_ass
from aiadmaker.captions.srt import build_srt, format_timestamp, write_srt
from aiadmaker.errors import NoAssetsError, RenderStageError, error_code_for
from aiadmaker.manifest import AssetManifest, MediaBinding, SegmentTiming
from aiadmaker.naming import slugify, unique_filename
from aiadmaker.stitcher.model import RenderSettings
from aiadmaker.timeline.model import AssetKind, Segment, TimelineEntry, VisualAsset


def test_format_timestamp():
    assert format_timestamp(0) == "00:00:00,000"
    assert format_timestamp(3661.5) == "01:01:01,500"
    assert format_timestamp(-2) == "00:00:00,000"


def test_build_srt_numbers_blocks_from_one(tmp_path: Path):
    segments = [
        Segment(index=0, text="Fresh bread", start_time=0.0, end_time=2.5),
        Segment(index=1, text=" Visit today ", start_time=2.5, end_time=5.0),
    ]
    text = build_srt(segments)
    assert text == (
        "1\n00:00:00,000 --> 00:00:02,500\nFresh bread\n"
        "\n"
        "2\n00:00:02,500 --> 00:00:05,000\nVisit today\n"
    )
    path = write_srt(segments, tmp_path / "exports" / "captions.srt")
    assert path.read_text(encoding="utf-8") == text


def test_manifest_serializes_with_aliases_and_round_trips(tmp_path: Path):
    asset = VisualAsset(source_path=tmp_path / "video.mp4", kind=AssetKind.VIDEO, origin_creator="Ana", origin_source="pexels")
    entry = TimelineEntry(asset=asset, allocated_start=0.0, allocated_end=4.0)
    segment = Segment(index=0, text="Fresh bread", start_time=0.0, end_time=4.0)
    manifest = AssetManifest(
        prompt="Bakery",
        script="Fresh bread.",
        segments=["Fresh bread"],
        audio=str(tmp_path / "narration.mp3"),
        media=[MediaBinding.from_entry(entry, segment_index=0)],
        final_ad=str(tmp_path / "final_ad.mp4"),
        audio_duration=4.0,
        segment_timings=[SegmentTiming.from_segment(segment)],
    )

    payload = manifest.to_payload()
    assert payload["finalAd"].endswith("final_ad.mp4")
    assert payload["media"][0] == {
        "segmentIndex": 0,
        "path": str(tmp_path / "video.mp4"),
        "kind": "video",
        "creator": "Ana",
        "source": "pexels",
        "start": 0.0,
        "end": 4.0,
        "fallback": False,
    }
    assert payload["segmentTimings"] == [{"index": 0, "start": 0.0, "end": 4.0}]

    path = manifest.write(tmp_path / "manifest.json")
    assert AssetManifest.load(path) == manifest


def test_error_codes():
    assert error_code_for(NoAssetsError("none")) == "VIDEO_EDITING_ERROR"
    assert error_code_for(ValueError("x")) == "UNKNOWN_ERROR"
    assert str(RenderStageError("caption", "bad font")) == "Render stage 'caption' failed: bad font"


def test_naming_helpers():
    assert slugify("Bob's Bakery & Café!") == "bob-s-bakery-café"
    assert slugify("!!!") == "ad"
    assert unique_filename("video", "mp4") != unique_filename("video", "mp4")
    assert unique_filename("video", ".mp4").endswith(".mp4")


def test_format_ass_time_uses_centiseconds():
    assert format_ass_time(0) == "0:00:00.00"
    assert format_ass_time(3.0) == "0:00:03.00"
    assert format_ass_time(3661.257) == "1:01:01.26"
    assert format_ass_time(-1) == "0:00:00.00"


def test_caption_script_shows_one_cue_in_its_window(tmp_path: Path):
    settings = RenderSettings(caption_line_chars=12)
    segment = Segment(index=1, text='Say "hello" to {50%} off today', start_time=3.0, end_time=6.5)

    script = build_caption_ass(segment, settings)

    assert "PlayResX: 1080" in script
    assert "PlayResY: 1920" in script
    style = next(line for line in script.splitlines() if line.startswith("Style: "))
    fields = [value.strip() for value in style[len("Style: "):].split(",")]
    assert fields[1] == settings.caption_font_name
    assert fields[18] == "2"
    assert fields[21] == str(settings.caption_margin)
    dialogues = [line for line in script.splitlines() if line.startswith("Dialogue:")]
    assert len(dialogues) == 1
    assert dialogues[0].startswith("Dialogue: 0,0:00:03.00,0:00:06.50,Caption,")
    text = dialogues[0].split(",,", 1)[1].split(",,", 1)[1]
    assert text == "Say hello to\\N50 off today"

    path = write_caption_ass(segment, tmp_path / "captions" / "one.ass", settings)
    assert path.read_text(encoding="utf-8") == script
