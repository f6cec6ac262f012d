"""Unit tests for the server-side image pipeline."""

import os

import cv2
import numpy as np
import pytest

from teacher_directory.errors import InvalidMediaType, PayloadTooLarge
from teacher_directory.images import contain, fill, process_upload, temporary_upload

BOX = (200, 267)


def decode(data: bytes) -> np.ndarray:
    return cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)


class TestProcessUpload:

    @pytest.mark.parametrize("fit", ["contain", "fill"])
    @pytest.mark.parametrize("source", [(1200, 900), (900, 1200), (50, 60)])
    def test_output_matches_box(self, jpeg_factory, fit, source):
        result = process_upload(jpeg_factory(*source), "image/jpeg", BOX, fit=fit)
        assert result.mime_type == "image/jpeg"
        assert (result.width, result.height) == BOX
        height, width = decode(result.data).shape[:2]
        assert (width, height) == BOX

    def test_png_input_becomes_jpeg(self):
        ok, png = cv2.imencode(".png", np.zeros((100, 100, 3), dtype=np.uint8))
        assert ok
        result = process_upload(png.tobytes(), "image/png", BOX)
        assert decode(result.data) is not None
        assert result.mime_type == "image/jpeg"

    @pytest.mark.parametrize("mime_type", [None, "", "text/plain", "application/pdf"])
    def test_rejects_non_image_type(self, jpeg_factory, mime_type):
        with pytest.raises(InvalidMediaType):
            process_upload(jpeg_factory(10, 10), mime_type, BOX)

    def test_rejects_oversized_payload(self, jpeg_factory):
        with pytest.raises(PayloadTooLarge):
            process_upload(jpeg_factory(100, 100), "image/jpeg", BOX, max_bytes=100)

    def test_rejects_undecodable(self):
        with pytest.raises(InvalidMediaType):
            process_upload(b"\x89PNG but not really", "image/png", BOX)

    def test_unknown_fit(self, jpeg_factory):
        with pytest.raises(ValueError):
            process_upload(jpeg_factory(10, 10), "image/jpeg", BOX, fit="cover")

    def test_temp_file_removed_on_success(self, jpeg_factory, tmp_path):
        process_upload(jpeg_factory(300, 300), "image/jpeg", BOX, tmp_dir=str(tmp_path))
        assert os.listdir(tmp_path) == []

    def test_temp_file_removed_on_failure(self, tmp_path):
        with pytest.raises(InvalidMediaType):
            process_upload(b"garbage", "image/jpeg", BOX, tmp_dir=str(tmp_path))
        assert os.listdir(tmp_path) == []


class TestFits:

    def test_contain_pads_with_white(self):
        wide = np.zeros((100, 400, 3), dtype=np.uint8)
        result = contain(wide, BOX)
        assert result.shape == (267, 200, 3)
        # 400x100 scales to 200x50, so the top rows are padding
        assert (result[0, 0] == 255).all()
        assert (result[133, 100] == 0).all()

    def test_contain_does_not_enlarge(self):
        small = np.zeros((20, 10, 3), dtype=np.uint8)
        result = contain(small, BOX)
        assert result.shape == (267, 200, 3)
        assert int((result == 0).all(axis=2).sum()) == 20 * 10

    def test_fill_stretches(self):
        wide = np.zeros((100, 400, 3), dtype=np.uint8)
        result = fill(wide, BOX)
        assert result.shape == (267, 200, 3)
        assert (result == 0).all()


def test_temporary_upload_cleans_up_after_error(tmp_path):
    with pytest.raises(RuntimeError):
        with temporary_upload(b"abc", tmp_dir=str(tmp_path)) as path:
            assert open(path, "rb").read() == b"abc"
            raise RuntimeError("boom")
    assert os.listdir(tmp_path) == []
