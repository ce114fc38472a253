ERR_CAMERA_PERMISSION = "CAMERA_PERMISSION_DENIED"
ERR_CAMERA_NOT_FOUND = "CAMERA_NOT_FOUND"
ERR_CAMERA_OTHER = "CAMERA_OTHER_ERROR"
ERR_ANALYSIS_SERVICE = "ANALYSIS_SERVICE_ERROR"
ERR_ANALYSIS_PARSE = "ANALYSIS_PARSE_ERROR"
ERR_INVALID_TRANSITION = "INVALID_TRANSITION"
ERR_BAD_IMAGE = "BAD_IMAGE"

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."


class CameraError(Exception):
    code = ERR_CAMERA_OTHER
    message = "Could not access camera. Please check your device settings."


class CameraPermissionDenied(CameraError):
    code = ERR_CAMERA_PERMISSION
    message = "Permission denied. Please allow access to the camera device and try again."


class CameraNotFound(CameraError):
    code = ERR_CAMERA_NOT_FOUND
    message = "No camera found on this device."


class CameraOtherError(CameraError):
    pass


class AnalysisFailure(Exception):
    code = ERR_ANALYSIS_SERVICE
    message = ANALYSIS_FAILED_MESSAGE


class AnalysisServiceError(AnalysisFailure):
    """Transport or service-level failure of the analysis call."""


class AnalysisParseError(AnalysisFailure):
    """The service answered, but not with a valid inspection report."""
    code = ERR_ANALYSIS_PARSE


class InvalidTransition(Exception):
    code = ERR_INVALID_TRANSITION

    def __init__(self, action: str, state: str, reason: str = ""):
        self.action = action
        self.state = state
        detail = f"{action} not allowed in state {state}"
        super().__init__(f"{detail}: {reason}" if reason else detail)


class BadImage(ValueError):
    code = ERR_BAD_IMAGE
