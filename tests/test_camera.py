import base64
import os
import sys

import cv2
import pytest

from defectlens.adapters.camera.codec import decode_data_url, encode_frame
from defectlens.adapters.camera.cv2_camera import CV2Camera, classify_open_failure
from defectlens.adapters.camera.mock_camera import MockCamera, synthetic_frame
from defectlens.orchestrator.contracts import JPEG_DATA_URL_PREFIX
from defectlens.orchestrator.errors import (
    BadImage, CameraNotFound, CameraOtherError, CameraPermissionDenied,
)


def test_grab_frame_produces_jpeg_data_url_and_stops(camera):
    camera.start()
    assert camera.is_active

    image = camera.grab_frame()

    assert image.data_url.startswith("data:image/jpeg;base64,")
    assert (image.width, image.height) == (1280, 720)
    assert base64.b64decode(image.payload)[:2] == b"\xff\xd8"
    assert not camera.is_active
    assert camera.release_count == 1


def test_grab_frame_releases_stream_when_read_fails(status):
    cam = MockCamera(status, frames_before_end=0)
    cam.start()
    with pytest.raises(CameraOtherError):
        cam.grab_frame()
    assert not cam.is_active


def test_start_releases_previous_stream(camera):
    camera.start()
    camera.start()
    assert camera.open_count == 2
    assert camera.release_count == 1
    assert camera.is_active


def test_stop_is_idempotent(camera):
    camera.stop()
    camera.start()
    camera.stop()
    camera.stop()
    assert camera.release_count == 1
    assert not camera.is_active


def test_preview_keeps_streaming(camera):
    camera.start()
    jpeg = camera.preview_jpeg()
    assert jpeg[:2] == b"\xff\xd8"
    assert camera.is_active


def test_stream_end_while_previewing(status):
    cam = MockCamera(status, frames_before_end=2)
    cam.start()
    cam.preview_jpeg()
    cam.preview_jpeg()
    with pytest.raises(CameraOtherError):
        cam.preview_jpeg()
    assert not cam.is_active
    assert "MockCamera: stream ended unexpectedly" in status.logs


@pytest.mark.parametrize("failure,exc", [
    ("permission", CameraPermissionDenied),
    ("missing", CameraNotFound),
    ("other", CameraOtherError),
])
def test_mock_start_failures(status, failure, exc):
    cam = MockCamera(status, failure=failure)
    with pytest.raises(exc):
        cam.start()
    assert not cam.is_active


def test_mock_serves_reference_images(status, tmp_path):
    frame = synthetic_frame(320, 240)
    cv2.imwrite(str(tmp_path / "part.jpg"), frame)
    cam = MockCamera(status, refs_dir=tmp_path)
    cam.start()
    image = cam.grab_frame()
    assert (image.width, image.height) == (320, 240)


def test_error_messages_are_distinct():
    messages = {CameraPermissionDenied.message, CameraNotFound.message, CameraOtherError.message}
    assert len(messages) == 3


linux_only = pytest.mark.skipif(not sys.platform.startswith("linux"), reason="uses /dev/videoN layout")


@linux_only
def test_classify_missing_device(tmp_path):
    assert isinstance(classify_open_failure(3, dev_root=str(tmp_path)), CameraNotFound)


@linux_only
def test_classify_unreadable_device(tmp_path, monkeypatch):
    (tmp_path / "video0").touch()
    monkeypatch.setattr(os, "access", lambda path, mode: False)
    assert isinstance(classify_open_failure(0, dev_root=str(tmp_path)), CameraPermissionDenied)


@linux_only
def test_classify_other_failure(tmp_path):
    (tmp_path / "video0").touch()
    assert isinstance(classify_open_failure(0, dev_root=str(tmp_path)), CameraOtherError)


def test_cv2_camera_open_failure_is_typed(status, monkeypatch):
    class ClosedCapture:
        def isOpened(self):
            return False

        def release(self):
            pass

    monkeypatch.setattr(cv2, "VideoCapture", lambda index: ClosedCapture())
    cam = CV2Camera(status, index=7)
    with pytest.raises((CameraNotFound, CameraPermissionDenied, CameraOtherError)):
        cam.start()
    assert not cam.is_active


def test_decode_data_url_accepts_jpeg_and_bare_base64():
    image = encode_frame(synthetic_frame(64, 48))
    decoded = decode_data_url(image.data_url)
    assert decoded.data_url == image.data_url
    assert (decoded.width, decoded.height) == (64, 48)

    bare = decode_data_url(image.payload)
    assert bare.data_url == image.data_url


def test_decode_data_url_reencodes_png():
    ok, buf = cv2.imencode(".png", synthetic_frame(64, 48))
    assert ok
    png_url = "data:image/png;base64," + base64.b64encode(buf.tobytes()).decode("ascii")
    decoded = decode_data_url(png_url)
    assert decoded.data_url.startswith(JPEG_DATA_URL_PREFIX)
    assert base64.b64decode(decoded.payload)[:2] == b"\xff\xd8"


@pytest.mark.parametrize("value", ["not base64!", base64.b64encode(b"hello").decode()])
def test_decode_data_url_rejects_garbage(value):
    with pytest.raises(BadImage):
        decode_data_url(value)
