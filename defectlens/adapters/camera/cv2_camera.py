"""
OpenCV webcam capture adapter.
Settings.camera_index (CAMERA_INDEX env var, default 0) selects the device.
"""
import os
import sys

import cv2

from defectlens.adapters.camera.base import CameraAdapter
from defectlens.orchestrator.errors import (
    CameraError, CameraNotFound, CameraOtherError, CameraPermissionDenied,
)


def classify_open_failure(index: int, dev_root: str = "/dev") -> CameraError:
    """
    VideoCapture only reports "not opened". On Linux the device node tells
    the three cases apart; elsewhere everything is CameraOtherError.
    """
    if not sys.platform.startswith("linux"):
        return CameraOtherError(f"failed to open device {index}")
    node = os.path.join(dev_root, f"video{index}")
    if not os.path.exists(node):
        return CameraNotFound(f"{node} does not exist")
    if not os.access(node, os.R_OK | os.W_OK):
        return CameraPermissionDenied(f"no read/write access to {node}")
    return CameraOtherError(f"failed to open {node}")


class CV2Camera(CameraAdapter):
    def __init__(self, status_store, index: int = 0, **kwargs):
        super().__init__(status_store, **kwargs)
        self._index = index
        self._cap = None

    @property
    def is_active(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def _open(self):
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            err = classify_open_failure(self._index)
            self.status.log(f"cv2_camera: failed to open device {self._index}: {type(err).__name__} ({err})")
            raise err
        # requested, not guaranteed: the driver picks the closest mode
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._cap = cap
        w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.status.log(f"cv2_camera: device {self._index} streaming at {w}x{h}")

    def _read(self):
        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None
        return frame

    def _release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            self.status.log(f"cv2_camera: device {self._index} released")
