"""Tests for stack_sdk.intake.importer: media normalization and batch uploads."""

from unittest.mock import MagicMock

import pytest

from stack_sdk.core.slides import MediaKind
from stack_sdk.errors import UploadFailed
from stack_sdk.intake.importer import (
    MediaImporter,
    looks_like_video,
    slide_from_library,
    slide_from_provider,
    slides_from_library,
)
from stack_sdk.providers.photos import MediaItem

BASE = "https://lh3.googleusercontent.com/abc"


# ── Video detection ────────────────────────────────────────────────────

class TestLooksLikeVideo:
    def test_explicit_type(self):
        assert looks_like_video({"type": "VIDEO"})

    def test_mime_type(self):
        assert looks_like_video({"mimeType": "video/quicktime"})
        assert looks_like_video({"mediaFile": {"mimeType": "video/mp4"}})
        assert not looks_like_video({"mimeType": "image/png"})

    def test_metadata(self):
        assert looks_like_video({"mediaMetadata": {"video": {"fps": 30}}})

    def test_extension(self):
        assert looks_like_video({"url": "https://cdn.example.com/clip.MOV?sig=1"})
        assert looks_like_video({"filename": "clip.webm"})
        assert not looks_like_video({"url": "https://cdn.example.com/pic.jpg"})


# ── Library and provider items ─────────────────────────────────────────

class TestSlideConversion:
    def test_library_image(self):
        slide = slide_from_library({"id": "lib1", "url": "https://cdn.example.com/a.jpg",
                                    "filename": "a.jpg"})
        assert slide.id == "lib1"
        assert slide.type is MediaKind.IMAGE
        assert slide.duration == 5.0
        assert slide.google_photo_id is None

    def test_library_video(self):
        slide = slide_from_library({"url": "https://cdn.example.com/a.mp4"})
        assert slide.is_video
        assert slide.filename == ""

    def test_library_batch_keeps_order(self):
        slides = slides_from_library([
            {"id": "1", "url": "https://x/1.jpg"},
            {"id": "2", "url": "https://x/2.jpg"},
        ])
        assert [s.id for s in slides] == ["1", "2"]

    def test_library_item_without_url(self):
        with pytest.raises(ValueError, match="no url"):
            slide_from_library({"id": "lib1", "filename": "a.jpg"})
        with pytest.raises(ValueError):
            slide_from_library({"id": "lib1", "url": 42})

    def test_library_numeric_id_kept_as_string(self):
        slide = slide_from_library({"id": 7, "url": "https://x/7.jpg"})
        assert slide.id == "7"

    def test_provider_image(self):
        slide = slide_from_provider(MediaItem(id="g1", base_url=BASE, mime_type="image/jpeg",
                                              filename="a.jpg"))
        assert slide.url == f"{BASE}=w2048"
        assert slide.google_photo_id == "g1"
        assert slide.is_synced_to_google

    def test_provider_video_without_filename(self):
        slide = slide_from_provider(MediaItem(id="g2", base_url=BASE, type="VIDEO"))
        assert slide.url == f"{BASE}=dv"
        assert slide.filename == "gp_g2"
        assert slide.is_video


# ── Uploads ────────────────────────────────────────────────────────────

def write_files(tmp_path, *names):
    paths = []
    for name in names:
        path = tmp_path / name
        path.write_bytes(b"data")
        paths.append(path)
    return paths


class TestMediaImporter:
    def test_uploads_sequentially(self, tmp_path):
        client = MagicMock()
        client.upload_media.side_effect = [
            MediaItem(id="u1", base_url=BASE, mime_type="image/jpeg"),
            MediaItem(id="u2", base_url=BASE, mime_type="video/mp4"),
        ]
        progress = []
        importer = MediaImporter(client, on_progress=lambda f, p: progress.append((f, p)))
        report = importer.upload_files(write_files(tmp_path, "a.jpg", "b.mp4"))

        assert report.ok
        assert [s.google_photo_id for s in report.slides] == ["u1", "u2"]
        assert report.slides[1].is_video
        assert report.slides[1].url == f"{BASE}=dv"
        assert [s.filename for s in report.slides] == ["a.jpg", "b.mp4"]
        assert all(s.id.startswith("gp-") for s in report.slides)
        assert len({s.id for s in report.slides}) == 2
        assert progress == [("a.jpg", 0), ("a.jpg", 20), ("a.jpg", 100),
                            ("b.mp4", 0), ("b.mp4", 20), ("b.mp4", 100)]
        assert importer.progress == {}

    def test_partial_failure_keeps_successes(self, tmp_path):
        client = MagicMock()
        client.upload_media.side_effect = [
            MediaItem(id="u1", base_url=BASE),
            UploadFailed("b.jpg", "quota"),
            MediaItem(id="u3", base_url=BASE),
        ]
        report = MediaImporter(client).upload_files(write_files(tmp_path, "a.jpg", "b.jpg", "c.jpg"))
        assert not report.ok
        assert report.failed_filenames == ["b.jpg"]
        assert [s.filename for s in report.slides] == ["a.jpg", "c.jpg"]

    def test_unreadable_file_reported(self, tmp_path):
        client = MagicMock()
        client.upload_media.side_effect = FileNotFoundError("gone")
        report = MediaImporter(client).upload_files([tmp_path / "missing.jpg"])
        assert report.slides == []
        assert report.failed_filenames == ["missing.jpg"]

    def test_filename_extension_marks_video(self, tmp_path):
        client = MagicMock()
        client.upload_media.return_value = MediaItem(id="u1", base_url=BASE)
        report = MediaImporter(client).upload_files(write_files(tmp_path, "clip.mov"))
        assert report.slides[0].type is MediaKind.VIDEO

    def test_other_errors_propagate(self, tmp_path):
        client = MagicMock()
        client.upload_media.side_effect = RuntimeError("bug")
        with pytest.raises(RuntimeError):
            MediaImporter(client).upload_files(write_files(tmp_path, "a.jpg"))
