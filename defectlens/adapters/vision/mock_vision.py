import json

from defectlens.adapters.vision.base import VisionAdapter
from defectlens.adapters.vision.schema import parse_report
from defectlens.orchestrator.contracts import EncodedImage, InspectionReport
from defectlens.orchestrator.errors import AnalysisServiceError

SAMPLE_RESPONSE = json.dumps({
    "inspectionResult": "FAIL",
    "defectIdentified": "Scratch",
    "locationOfDefect": "Top-left corner",
    "severityLevel": "Medium",
    "suggestedFix": "Sand and repaint",
    "confidenceLevel": "87%",
})


class MockVision(VisionAdapter):
    """Answers every call with a canned response text, parsed like a real one."""

    def __init__(self, status_store, raw: str = SAMPLE_RESPONSE, fail: bool = False):
        self.status = status_store
        self.raw = raw
        self.fail = fail
        self.calls: list[EncodedImage] = []

    def analyze(self, image: EncodedImage) -> InspectionReport:
        self.calls.append(image)
        if self.fail:
            self.status.log("mock_vision: simulating service error")
            raise AnalysisServiceError("mock service error")
        report = parse_report(self.raw)
        self.status.log(f"mock_vision: {report.inspection_result}")
        return report
