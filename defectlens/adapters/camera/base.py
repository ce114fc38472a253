import threading
from abc import ABC, abstractmethod

import numpy as np

from defectlens.adapters.camera.codec import encode_frame, encode_jpeg
from defectlens.orchestrator.contracts import EncodedImage
from defectlens.orchestrator.errors import CameraOtherError


class CameraAdapter(ABC):
    """
    Owns one live camera stream. Subclasses implement _open/_read/_release;
    this base serializes access to the handle and guarantees the stream is
    released after every still grab.
    """

    def __init__(self, status_store, width: int = 1280, height: int = 720, jpeg_quality: int = 80):
        self.status = status_store
        self.width = width
        self.height = height
        self.jpeg_quality = jpeg_quality
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def is_active(self) -> bool:
        ...

    @abstractmethod
    def _open(self) -> None:
        """Acquire the stream. Raises a CameraError subclass on failure."""
        ...

    @abstractmethod
    def _read(self) -> np.ndarray | None:
        """Current BGR frame, or None if the stream produced nothing."""
        ...

    @abstractmethod
    def _release(self) -> None:
        ...

    def start(self) -> None:
        with self._lock:
            self._release()
            self._open()

    def stop(self) -> None:
        with self._lock:
            self._release()

    def _read_active(self) -> np.ndarray:
        if not self.is_active:
            raise CameraOtherError("camera is not streaming")
        frame = self._read()
        if frame is None:
            self._release()
            self.status.log(f"{self.name}: stream ended unexpectedly")
            raise CameraOtherError("stream ended unexpectedly")
        return frame

    def preview_jpeg(self) -> bytes:
        with self._lock:
            return encode_jpeg(self._read_active(), self.jpeg_quality)

    def grab_frame(self) -> EncodedImage:
        """Single-shot capture: encode the current frame, then stop the stream."""
        with self._lock:
            try:
                frame = self._read_active()
                image = encode_frame(frame, self.jpeg_quality)
            finally:
                self._release()
        self.status.log(f"{self.name}: grabbed {image.width}x{image.height} frame, stream stopped")
        return image

    @property
    def name(self) -> str:
        return type(self).__name__
