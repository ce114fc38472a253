"""
Mock camera for running without hardware.

Serves a random JPEG from refs_dir if one exists, otherwise a synthetic
grey panel with a scratch drawn on it. `failure` makes start() fail the
way a real device would; `frames_before_end` makes the stream die after
that many reads.
"""
import random
from pathlib import Path

import cv2
import numpy as np

from defectlens.adapters.camera.base import CameraAdapter
from defectlens.orchestrator.errors import CameraNotFound, CameraOtherError, CameraPermissionDenied

_FAILURES = {
    "permission": CameraPermissionDenied,
    "missing": CameraNotFound,
    "other": CameraOtherError,
}


def synthetic_frame(width: int, height: int) -> np.ndarray:
    ramp = np.linspace(90, 170, width, dtype=np.uint8)
    frame = np.repeat(np.tile(ramp, (height, 1))[:, :, None], 3, axis=2)
    cv2.rectangle(frame, (width // 8, height // 8), (width * 7 // 8, height * 7 // 8), (200, 200, 200), -1)
    cv2.line(frame, (width // 5, height // 4), (width // 3, height // 3), (40, 40, 40), 3)
    return frame


class MockCamera(CameraAdapter):
    def __init__(self, status_store, failure: str | None = None,
                 frames_before_end: int | None = None, refs_dir: str | Path | None = None, **kwargs):
        super().__init__(status_store, **kwargs)
        if failure is not None and failure not in _FAILURES:
            raise ValueError(f"unknown mock camera failure: {failure}")
        self.failure = failure
        self.frames_before_end = frames_before_end
        self.refs_dir = Path(refs_dir) if refs_dir else None
        self.open_count = 0
        self.release_count = 0
        self._streaming = False
        self._reads = 0

    @property
    def is_active(self) -> bool:
        return self._streaming

    def _open(self):
        if self.failure:
            self.status.log(f"mock_camera: simulating {self.failure} failure")
            raise _FAILURES[self.failure](f"mock {self.failure}")
        self._streaming = True
        self._reads = 0
        self.open_count += 1
        self.status.log(f"mock_camera: streaming at {self.width}x{self.height}")

    def _read(self):
        if self.frames_before_end is not None and self._reads >= self.frames_before_end:
            return None
        self._reads += 1
        jpegs = sorted(self.refs_dir.glob("*.jpg")) if self.refs_dir else []
        if jpegs:
            chosen = random.choice(jpegs)
            frame = cv2.imread(str(chosen), cv2.IMREAD_COLOR)
            if frame is not None:
                return frame
            self.status.log(f"mock_camera: unreadable ref {chosen.name}, using synthetic frame")
        return synthetic_frame(self.width, self.height)

    def _release(self):
        if self._streaming:
            self._streaming = False
            self.release_count += 1
            self.status.log("mock_camera: released")
