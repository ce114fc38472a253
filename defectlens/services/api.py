from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from defectlens.adapters.camera.codec import decode_data_url
from defectlens.config import Settings, load_settings
from defectlens.orchestrator.errors import BadImage, CameraError, InvalidTransition
from defectlens.orchestrator.state_machine import InspectionShell
from defectlens.services.models import (
    ActionResponse, CaptureFrameRequest, HealthResponse, StatusResponse,
)
from defectlens.services.status_store import StatusStore


def build_camera(settings: Settings, status: StatusStore):
    """CAMERA_ADAPTER: cv2 | mock (default: cv2)."""
    size = dict(width=settings.camera_width, height=settings.camera_height,
                jpeg_quality=settings.jpeg_quality)
    if settings.camera_adapter == "mock":
        from defectlens.adapters.camera.mock_camera import MockCamera
        return MockCamera(status, failure=settings.mock_camera_failure, **size)
    from defectlens.adapters.camera.cv2_camera import CV2Camera
    return CV2Camera(status, index=settings.camera_index, **size)


def build_vision(settings: Settings, status: StatusStore):
    """VISION_ADAPTER: gemini | claude | mock (default: gemini)."""
    if settings.vision_adapter == "gemini":
        from defectlens.adapters.vision.gemini_vision import GeminiVision
        return GeminiVision(
            status,
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.vision_timeout_s,
        )
    if settings.vision_adapter == "claude":
        from defectlens.adapters.vision.claude_vision import ClaudeVision
        return ClaudeVision(
            status,
            api_key=settings.anthropic_api_key,
            model=settings.claude_model,
            timeout=settings.vision_timeout_s,
        )
    from defectlens.adapters.vision.mock_vision import MockVision
    return MockVision(status)


def create_app(settings: Settings | None = None, camera=None, vision=None,
               status: StatusStore | None = None) -> FastAPI:
    settings = settings or load_settings()
    status = status or StatusStore()
    camera = camera or build_camera(settings, status)
    vision = vision or build_vision(settings, status)
    status.log(f"camera adapter: {type(camera).__name__}")
    status.log(f"vision adapter: {type(vision).__name__}")

    shell = InspectionShell(camera=camera, vision=vision, status_store=status)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        camera.stop()
        vision.close()

    app = FastAPI(title="defectlens", lifespan=lifespan)
    app.state.shell = shell
    app.state.status = status

    def status_out() -> StatusResponse:
        return StatusResponse.from_snapshot(shell.snapshot(), status.tail())

    def camera_result(ok: bool) -> ActionResponse:
        err = shell.camera_error
        return ActionResponse(
            ok=ok,
            error_code=None if ok or err is None else err.code,
            error=None if ok or err is None else err.message,
            status=status_out(),
        )

    @app.exception_handler(InvalidTransition)
    async def invalid_transition(request: Request, exc: InvalidTransition):
        status.log(f"{request.url.path} rejected: {exc}")
        return JSONResponse(status_code=409, content={"ok": False, "error_code": exc.code, "error": str(exc)})

    @app.exception_handler(BadImage)
    async def bad_image(request: Request, exc: BadImage):
        status.log(f"{request.url.path} bad image: {exc}")
        return JSONResponse(status_code=400, content={"ok": False, "error_code": exc.code, "error": str(exc)})

    @app.get("/status", response_model=StatusResponse)
    async def get_status():
        return status_out()

    @app.post("/camera/start", response_model=ActionResponse)
    async def camera_start():
        status.log("CAMERA_START")
        ok = await shell.start_camera()
        return camera_result(ok)

    @app.post("/camera/stop", response_model=ActionResponse)
    async def camera_stop():
        status.log("CAMERA_STOP")
        await shell.stop_camera()
        return ActionResponse(ok=True, status=status_out())

    @app.get("/camera/frame")
    async def camera_frame():
        """Live-preview JPEG; the page re-requests it while the camera streams."""
        try:
            jpeg = await shell.preview()
        except CameraError as e:
            return JSONResponse(status_code=503, content={"ok": False, "error_code": e.code, "error": e.message})
        return Response(content=jpeg, media_type="image/jpeg", headers={"Cache-Control": "no-store"})

    @app.post("/camera/capture", response_model=ActionResponse)
    async def camera_capture(background_tasks: BackgroundTasks):
        """Grab the still frame (stream stops) and analyze it after responding."""
        status.log("CAPTURE")
        ticket = await shell.capture()
        if ticket is None:
            return camera_result(False)
        background_tasks.add_task(shell.analyze, ticket)
        return ActionResponse(ok=True, status=status_out())

    @app.post("/capture_frame", response_model=ActionResponse)
    async def capture_frame(req: CaptureFrameRequest, background_tasks: BackgroundTasks):
        """Browser-side capture: the page already has the photo as a data URL."""
        image = decode_data_url(req.image)
        status.log(f"CAPTURE_FRAME received {image.width}x{image.height}")
        ticket = await shell.submit(image)
        background_tasks.add_task(shell.analyze, ticket)
        return ActionResponse(ok=True, status=status_out())

    @app.post("/reset", response_model=ActionResponse)
    async def reset():
        status.log("RESET")
        shell.reset()
        return ActionResponse(ok=True, status=status_out())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            vision_adapter=type(vision).__name__,
            camera_adapter=type(camera).__name__,
            camera_active=camera.is_active,
            credential_set=bool(settings.api_key),
            state=shell.state,
        )

    return app


app = create_app()
