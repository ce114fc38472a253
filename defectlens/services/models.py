from pydantic import BaseModel
from typing import Literal, Optional

from defectlens.orchestrator.contracts import InspectionReport, ShellSnapshot


class CameraOut(BaseModel):
    active: bool
    error_code: Optional[str] = None
    error: Optional[str] = None   # user-facing message, shown inline with a retry


class StatusResponse(BaseModel):
    state: Literal["idle", "analyzing", "result", "error"]
    image: Optional[str] = None            # held photo as data URL
    report: Optional[InspectionReport] = None   # only in "result"
    error: Optional[str] = None                 # only in "error"
    camera: CameraOut
    logs: list[str]

    @classmethod
    def from_snapshot(cls, snap: ShellSnapshot, logs: list[str]) -> "StatusResponse":
        return cls(
            state=snap.state,
            image=snap.image.data_url if snap.image else None,
            report=snap.report,
            error=snap.error,
            camera=CameraOut(
                active=snap.camera_active,
                error_code=snap.camera_error_code,
                error=snap.camera_error,
            ),
            logs=logs,
        )


class ActionResponse(BaseModel):
    ok: bool
    error_code: Optional[str] = None
    error: Optional[str] = None
    status: StatusResponse


class CaptureFrameRequest(BaseModel):
    image: str  # data URL or bare base64


class HealthResponse(BaseModel):
    api: bool = True
    vision_adapter: str
    camera_adapter: str
    camera_active: bool
    credential_set: bool
    state: str
