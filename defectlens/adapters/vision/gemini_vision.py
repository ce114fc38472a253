"""
Google Gemini inspection client over the generateContent REST endpoint.

The key comes from Settings.gemini_api_key (GEMINI_API_KEY). An empty key is
sent as-is: the service rejects the call and that surfaces as an ordinary
AnalysisServiceError.
"""
import httpx

from defectlens.adapters.vision.base import VisionAdapter
from defectlens.adapters.vision.schema import INSPECTION_PROMPT, RESPONSE_SCHEMA, parse_report
from defectlens.orchestrator.contracts import EncodedImage, InspectionReport
from defectlens.orchestrator.errors import AnalysisParseError, AnalysisServiceError


class GeminiVision(VisionAdapter):
    def __init__(self, status_store, api_key: str, model: str, base_url: str,
                 timeout: float = 60.0, client: httpx.Client | None = None):
        self.status = status_store
        self.model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }
        if api_key:
            self.status.log(f"gemini_vision: ready (model={model})")
        else:
            self.status.log("gemini_vision: GEMINI_API_KEY not set, calls will fail")

    def build_request(self, image: EncodedImage) -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": INSPECTION_PROMPT},
                        {
                            "inlineData": {
                                "mimeType": "image/jpeg",
                                "data": image.payload,
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def analyze(self, image: EncodedImage) -> InspectionReport:
        payload = self.build_request(image)
        self.status.log(f"gemini_vision: POST generateContent ({len(image.payload)} b64 chars)")
        try:
            resp = self._client.post(self._url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            self.status.log(f"gemini_vision: transport error: {e}")
            raise AnalysisServiceError(f"request failed: {e}") from e

        if not resp.is_success:
            self.status.log(f"gemini_vision: HTTP {resp.status_code} — {resp.text[:300]}")
            raise AnalysisServiceError(f"HTTP {resp.status_code}")

        text = self._response_text(resp)
        self.status.log(f"gemini_vision: raw={text[:200]!r}")
        try:
            report = parse_report(text)
        except AnalysisParseError as e:
            self.status.log(f"gemini_vision: parse error: {e}")
            raise
        self.status.log(f"gemini_vision: → {report.inspection_result} severity={report.severity_level}")
        return report

    def _response_text(self, resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError as e:
            raise AnalysisParseError(f"response body is not JSON: {e}") from e
        if not isinstance(body, dict):
            raise AnalysisParseError("response body is not a JSON object")

        block = (body.get("promptFeedback") or {}).get("blockReason")
        if block:
            self.status.log(f"gemini_vision: prompt blocked ({block})")
            raise AnalysisServiceError(f"prompt blocked: {block}")

        candidates = body.get("candidates") or []
        if not candidates:
            raise AnalysisServiceError("no candidates in response")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    def close(self):
        self._client.close()
