import pytest

from defectlens.adapters.camera.mock_camera import MockCamera
from defectlens.adapters.vision.mock_vision import MockVision
from defectlens.services.status_store import StatusStore

SCRATCH_REPORT = {
    "inspectionResult": "FAIL",
    "defectIdentified": "Scratch",
    "locationOfDefect": "Top-left corner",
    "severityLevel": "Medium",
    "suggestedFix": "Sand and repaint",
    "confidenceLevel": "87%",
}

PASS_REPORT = {
    "inspectionResult": "PASS",
    "defectIdentified": "None",
    "locationOfDefect": "N/A",
    "severityLevel": "N/A",
    "suggestedFix": "No action needed",
    "confidenceLevel": "95%",
}


@pytest.fixture
def status():
    return StatusStore()


@pytest.fixture
def camera(status):
    return MockCamera(status)


@pytest.fixture
def vision(status):
    return MockVision(status)
