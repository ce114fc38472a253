import asyncio
import time
from itertools import count
from typing import Optional

from defectlens.orchestrator.contracts import EncodedImage, InspectionReport, ShellSnapshot, ShellState
from defectlens.orchestrator.errors import (
    ANALYSIS_FAILED_MESSAGE, AnalysisFailure, CameraError, InvalidTransition,
)


class InspectionShell:
    """
    idle -> analyzing -> result | error, and reset back to idle.

    All state changes happen on the event loop; camera and vision calls are
    blocking and run in worker threads. Every held image gets a ticket so an
    analysis that finishes after a reset is dropped instead of rendered.
    """

    def __init__(self, camera, vision, status_store):
        self.camera = camera
        self.vision = vision
        self.status = status_store

        self.state: ShellState = "idle"
        self.image: Optional[EncodedImage] = None
        self.report: Optional[InspectionReport] = None
        self.error: Optional[str] = None
        self.camera_error: Optional[CameraError] = None

        self._tickets = count(1)
        self._ticket = 0  # 0 = no image held
        self._capturing = False  # a grab or an upload's camera release is in flight

    def snapshot(self) -> ShellSnapshot:
        cam_err = self.camera_error
        return ShellSnapshot(
            state=self.state,
            image=self.image,
            report=self.report if self.state == "result" else None,
            error=self.error if self.state == "error" else None,
            camera_active=self.camera.is_active,
            camera_error_code=cam_err.code if cam_err else None,
            camera_error=cam_err.message if cam_err else None,
        )

    def _require(self, action: str, *states: ShellState):
        if self.state not in states:
            raise InvalidTransition(action, self.state)
        if self._capturing:
            raise InvalidTransition(action, self.state, "a capture is in progress")

    # ── capture surface ──

    async def start_camera(self) -> bool:
        self._require("start_camera", "idle")
        self.camera_error = None
        try:
            await asyncio.to_thread(self.camera.start)
        except CameraError as e:
            self.camera_error = e
            self.status.log(f"shell: camera start failed [{e.code}] {e}")
            return False
        if self.state != "idle":
            # an upload was accepted while the device was opening
            self.status.log("shell: image already held, releasing camera")
            await asyncio.to_thread(self.camera.stop)
            return False
        self.status.log("shell: camera streaming")
        return True

    async def stop_camera(self):
        await asyncio.to_thread(self.camera.stop)
        self.status.log("shell: camera stopped")

    async def preview(self) -> bytes:
        if not self.camera.is_active:
            raise InvalidTransition("preview", self.state, "camera is not streaming")
        try:
            return await asyncio.to_thread(self.camera.preview_jpeg)
        except CameraError as e:
            self.camera_error = e
            self.status.log(f"shell: preview failed [{e.code}] {e}")
            raise

    async def capture(self) -> Optional[int]:
        """Grab one frame (the stream stops) and hold it. Returns the analysis ticket."""
        self._require("capture", "idle")
        if not self.camera.is_active:
            raise InvalidTransition("capture", self.state, "camera is not streaming")
        self._capturing = True
        try:
            image = await asyncio.to_thread(self.camera.grab_frame)
        except CameraError as e:
            self.camera_error = e
            self.status.log(f"shell: capture failed [{e.code}] {e}")
            return None
        finally:
            self._capturing = False
        self._require("capture", "idle")
        return self._hold(image)

    async def submit(self, image: EncodedImage) -> int:
        """Hold an image that was captured elsewhere (browser upload)."""
        self._require("submit", "idle")
        if self.camera.is_active:
            self._capturing = True
            try:
                await asyncio.to_thread(self.camera.stop)
            finally:
                self._capturing = False
            self.status.log("shell: camera released for uploaded image")
        self._require("submit", "idle")
        return self._hold(image)

    def _hold(self, image: EncodedImage) -> int:
        self._ticket = next(self._tickets)
        self.image = image
        self.report = None
        self.error = None
        self.state = "analyzing"
        self.status.log(f"shell: holding image #{self._ticket} ({image.width}x{image.height}), analyzing")
        return self._ticket

    # ── analysis ──

    async def analyze(self, ticket: int):
        if ticket != self._ticket or self.image is None:
            self.status.log(f"shell: ticket #{ticket} is not the held image, skipping analysis")
            return

        t0 = time.time()
        try:
            report = await asyncio.to_thread(self.vision.analyze, self.image)
        except AnalysisFailure as e:
            self._finish(ticket, t0, error=f"[{e.code}] {e}")
            return
        except Exception as e:
            self._finish(ticket, t0, error=f"unexpected {type(e).__name__}: {e}")
            return
        self._finish(ticket, t0, report=report)

    def _finish(self, ticket: int, t0: float, report: Optional[InspectionReport] = None,
                error: Optional[str] = None):
        dt = int((time.time() - t0) * 1000)
        if ticket != self._ticket:
            self.status.log(f"shell: discarding stale result for image #{ticket} dt={dt}ms")
            return
        if report is not None:
            self.report = report
            self.state = "result"
            self.status.log(f"shell: image #{ticket} → {report.inspection_result} dt={dt}ms")
        else:
            self.error = ANALYSIS_FAILED_MESSAGE
            self.state = "error"
            self.status.log(f"shell: image #{ticket} analysis failed dt={dt}ms: {error}")

    async def capture_and_analyze(self):
        ticket = await self.capture()
        if ticket is not None:
            await self.analyze(ticket)

    def reset(self):
        if self.state == "idle":
            return
        if self.state == "analyzing":
            self.status.log(f"shell: reset while analyzing image #{self._ticket}, result will be dropped")
        self.state = "idle"
        self.image = None
        self.report = None
        self.error = None
        self._ticket = 0
        self.status.log("shell: reset → idle")
