"""Tests for stack_sdk.core.slides: Slide, SlideSequence, ReorderGesture, StackDraft."""

import pytest

from stack_sdk.core.slides import (
    DEFAULT_IMAGE_DURATION,
    FitMode,
    MediaKind,
    ReorderGesture,
    Slide,
    SlideSequence,
    StackDraft,
    StickerLayer,
    TextLayer,
)


def make_sequence(n):
    return SlideSequence(slides=[
        Slide.create(f"https://cdn.example.com/{i}.jpg", "image", slide_id=f"s{i}")
        for i in range(n)
    ])


def ids(seq):
    return [s.id for s in seq.slides]


# ── Slide ──────────────────────────────────────────────────────────────

class TestSlide:
    def test_image_defaults(self):
        s = Slide.create("https://x/a.jpg", MediaKind.IMAGE, "a.jpg")
        assert s.type is MediaKind.IMAGE
        assert s.duration == DEFAULT_IMAGE_DURATION
        assert s.crop_mode is FitMode.CONTAIN
        assert s.caption == ""
        assert (s.caption_x, s.caption_y) == (50.0, 85.0)
        assert s.caption_font_size == 20
        assert s.google_photo_id is None
        assert s.is_synced_to_google is False

    def test_video_has_no_default_duration(self):
        s = Slide.create("https://x/a.mp4", "video")
        assert s.is_video
        assert s.duration is None
        assert s.video_start_time is None

    def test_provider_slide_is_synced(self):
        s = Slide.create("https://lh3.googleusercontent.com/x=w2048", "image",
                         slide_id="g1", google_photo_id="g1")
        assert s.id == "g1"
        assert s.is_synced_to_google is True

    def test_ids_are_unique(self):
        assert len({Slide.create("u", "image").id for _ in range(50)}) == 50

    def test_caption_position_clamped(self):
        s = Slide(url="u", caption_x=-5, caption_y=400)
        assert (s.caption_x, s.caption_y) == (2.0, 98.0)

    def test_record_uses_camel_case(self):
        s = Slide.create("https://x/a.mp4", "video", "a.mp4")
        s.text_layers.append(TextLayer(id="t1", text="Hi"))
        s.sticker_layers.append(StickerLayer(id="k1", glyph="⭐"))
        s.video_end_time = 4.0
        record = s.to_record()
        assert record["type"] == "video"
        assert record["videoEndTime"] == 4.0
        assert "videoStartTime" not in record
        assert record["captionX"] == 50.0
        assert record["textLayers"][0]["fontSize"] == 28
        assert record["stickerLayers"][0]["emoji"] == "⭐"
        assert record["isSyncedToGoogle"] is False

    def test_model_accepts_camel_case_record(self):
        s = Slide.model_validate({
            "id": "a", "url": "u", "type": "video",
            "videoStartTime": 1.5, "googlePhotoId": "g",
            "stickerLayers": [{"id": "k", "emoji": "🔥", "x": 10, "y": 20}],
        })
        assert s.video_start_time == 1.5
        assert s.google_photo_id == "g"
        assert s.sticker_layers[0].glyph == "🔥"


# ── SlideSequence ──────────────────────────────────────────────────────

class TestSlideSequence:
    def test_reorder_moves_one_slide(self):
        seq = make_sequence(5)
        seq.reorder(0, 3)
        assert ids(seq) == ["s1", "s2", "s3", "s0", "s4"]

    def test_reorder_backwards(self):
        seq = make_sequence(5)
        seq.reorder(4, 1)
        assert ids(seq) == ["s0", "s4", "s1", "s2", "s3"]

    def test_reorder_same_index_noop(self):
        seq = make_sequence(3)
        seq.reorder(1, 1)
        assert ids(seq) == ["s0", "s1", "s2"]

    def test_reorder_out_of_range(self):
        seq = make_sequence(3)
        with pytest.raises(IndexError):
            seq.reorder(0, 3)
        with pytest.raises(IndexError):
            seq.reorder(-1, 0)

    def test_remove_adjusts_editing_index(self):
        seq = make_sequence(3)
        seq.select(2)
        seq.remove(1)
        assert seq.editing_index == 1
        assert seq.current().id == "s2"

    def test_remove_last_slide(self):
        seq = make_sequence(1)
        seq.remove(0)
        assert len(seq) == 0
        assert seq.editing_index == 0
        assert seq.current() is None

    def test_remove_before_editing_at_zero(self):
        seq = make_sequence(2)
        seq.remove(0)
        assert seq.editing_index == 0
        assert seq.current().id == "s1"

    def test_select_clamps(self):
        seq = make_sequence(3)
        assert seq.select(10) == 2
        assert seq.select(-4) == 0

    def test_next_previous(self):
        seq = make_sequence(2)
        assert seq.next() == 1
        assert seq.next() == 1
        assert seq.previous() == 0

    def test_get_and_index_of(self):
        seq = make_sequence(3)
        assert seq.get("s2").url.endswith("2.jpg")
        assert seq.get("zz") is None
        assert seq.index_of("s1") == 1
        with pytest.raises(KeyError):
            seq.index_of("zz")

    def test_append_keeps_order(self):
        seq = make_sequence(1)
        seq.append([Slide.create("u", "image", slide_id="new")])
        assert ids(seq) == ["s0", "new"]


# ── ReorderGesture ─────────────────────────────────────────────────────

class TestReorderGesture:
    def test_matches_direct_moves(self):
        gesture_seq = make_sequence(6)
        direct_seq = make_sequence(6)

        gesture = ReorderGesture(gesture_seq)
        gesture.start(1)
        for target in (2, 3, 4):
            gesture.over(target)
        gesture.end()

        direct_seq.reorder(1, 2)
        direct_seq.reorder(2, 3)
        direct_seq.reorder(3, 4)
        assert ids(gesture_seq) == ids(direct_seq)
        assert ids(gesture_seq) == ["s0", "s2", "s3", "s4", "s1", "s5"]

    def test_repeated_hover_is_noop(self):
        seq = make_sequence(4)
        gesture = ReorderGesture(seq)
        gesture.start(0)
        assert gesture.over(2) is True
        assert gesture.over(2) is False
        assert gesture.over(2) is False
        assert gesture.moves == 1
        assert ids(seq) == ["s1", "s2", "s0", "s3"]

    def test_over_without_start(self):
        seq = make_sequence(3)
        assert ReorderGesture(seq).over(1) is False
        assert ids(seq) == ["s0", "s1", "s2"]

    def test_end_deactivates(self):
        gesture = ReorderGesture(make_sequence(3))
        gesture.start(0)
        assert gesture.active
        gesture.end()
        assert not gesture.active
        assert gesture.over(2) is False


# ── StackDraft ─────────────────────────────────────────────────────────

class TestStackDraft:
    def test_participants_deduplicated(self):
        draft = StackDraft()
        assert draft.add_participant(" Ana ") is True
        assert draft.add_participant("Ana") is False
        assert draft.add_participant("  ") is False
        assert draft.participants == ["Ana"]

    def test_hashtags_strip_hash(self):
        draft = StackDraft()
        draft.add_hashtag("#summer")
        draft.add_hashtag("summer")
        draft.add_hashtag("beach")
        assert draft.hashtags == ["summer", "beach"]
