import json

import httpx
import pytest

from defectlens.adapters.camera.codec import encode_frame
from defectlens.adapters.camera.mock_camera import synthetic_frame
from defectlens.adapters.vision.gemini_vision import GeminiVision
from defectlens.adapters.vision.schema import INSPECTION_PROMPT, REPORT_FIELDS
from defectlens.orchestrator.errors import AnalysisParseError, AnalysisServiceError

from conftest import SCRATCH_REPORT

BASE_URL = "https://gemini.test/v1beta"


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


def make_vision(status, handler, api_key="test-key"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GeminiVision(status, api_key=api_key, model="gemini-test", base_url=BASE_URL, client=client)


@pytest.fixture
def image():
    return encode_frame(synthetic_frame(160, 120))


def test_request_shape_and_result(status, image):
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_body(json.dumps(SCRATCH_REPORT)))

    report = make_vision(status, handler).analyze(image)

    assert report.to_wire() == SCRATCH_REPORT
    assert seen["url"] == f"{BASE_URL}/models/gemini-test:generateContent"
    assert seen["key"] == "test-key"

    parts = seen["body"]["contents"][0]["parts"]
    assert parts[0] == {"text": INSPECTION_PROMPT}
    assert parts[1]["inlineData"]["mimeType"] == "image/jpeg"
    assert parts[1]["inlineData"]["data"] == image.payload
    assert not parts[1]["inlineData"]["data"].startswith("data:")

    config = seen["body"]["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["responseSchema"]["required"] == REPORT_FIELDS


def test_http_error_is_service_error(status, image):
    vision = make_vision(status, lambda r: httpx.Response(500, json={"error": {"message": "boom"}}))
    with pytest.raises(AnalysisServiceError):
        vision.analyze(image)
    assert any("HTTP 500" in line for line in status.logs)


def test_empty_credential_fails_at_the_service(status, image):
    def handler(request):
        if not request.headers.get("x-goog-api-key"):
            return httpx.Response(403, json={"error": {"message": "API key missing"}})
        return httpx.Response(200, json=gemini_body(json.dumps(SCRATCH_REPORT)))

    vision = make_vision(status, handler, api_key="")
    with pytest.raises(AnalysisServiceError):
        vision.analyze(image)


def test_transport_error_is_service_error(status, image):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AnalysisServiceError):
        make_vision(status, handler).analyze(image)


def test_blocked_prompt_is_service_error(status, image):
    body = {"promptFeedback": {"blockReason": "SAFETY"}}
    with pytest.raises(AnalysisServiceError):
        make_vision(status, lambda r: httpx.Response(200, json=body)).analyze(image)


def test_no_candidates_is_service_error(status, image):
    with pytest.raises(AnalysisServiceError):
        make_vision(status, lambda r: httpx.Response(200, json={"candidates": []})).analyze(image)


@pytest.mark.parametrize("text", [
    "I think the part is fine.",
    json.dumps({k: v for k, v in SCRATCH_REPORT.items() if k != "suggestedFix"}),
    json.dumps(dict(SCRATCH_REPORT, severityLevel="Critical")),
])
def test_bad_report_text_is_parse_error(status, image, text):
    vision = make_vision(status, lambda r: httpx.Response(200, json=gemini_body(text)))
    with pytest.raises(AnalysisParseError):
        vision.analyze(image)


def test_non_json_body_is_parse_error(status, image):
    vision = make_vision(status, lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(AnalysisParseError):
        vision.analyze(image)


def test_multi_part_text_is_joined(status, image):
    text = json.dumps(SCRATCH_REPORT)
    body = {"candidates": [{"content": {"parts": [{"text": text[:10]}, {"text": text[10:]}]}}]}
    report = make_vision(status, lambda r: httpx.Response(200, json=body)).analyze(image)
    assert report.confidence_level == "87%"
