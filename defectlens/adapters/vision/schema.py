"""
Instruction text, output schema, and the client-side parse step shared by
every vision adapter.

The remote service is asked to fill RESPONSE_SCHEMA, but nothing it returns
is trusted until parse_report() has validated it into an InspectionReport.
"""
import json

from pydantic import ValidationError

from defectlens.orchestrator.contracts import InspectionReport
from defectlens.orchestrator.errors import AnalysisParseError

INSPECTION_PROMPT = (
    "You are an AI defect detection assistant for small-scale industries.\n"
    "Analyze the product image taken from a smartphone.\n\n"
    "Tasks:\n"
    "1. Detect visible manufacturing defects.\n"
    "2. Classify defect type.\n"
    "3. Suggest corrective action.\n\n"
    "Use simple language. Return the analysis in a structured JSON format."
)

REPORT_FIELDS = [
    "inspectionResult",
    "defectIdentified",
    "locationOfDefect",
    "severityLevel",
    "suggestedFix",
    "confidenceLevel",
]

_FIELD_SPECS = {
    "inspectionResult": {"enum": ["PASS", "FAIL"]},
    "defectIdentified": {"description": "Name/type of defect found, or 'None' if PASS"},
    "locationOfDefect": {"description": "Where the defect is located on the product, or 'N/A' if PASS"},
    "severityLevel": {"enum": ["Low", "Medium", "High", "N/A"]},
    "suggestedFix": {"description": "Simple corrective action to fix the defect"},
    "confidenceLevel": {"description": "Confidence percentage (e.g. 95%)"},
}

# Gemini responseSchema (OpenAPI subset, upper-case type names)
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {name: {"type": "STRING", **_FIELD_SPECS[name]} for name in REPORT_FIELDS},
    "required": REPORT_FIELDS,
    "propertyOrdering": REPORT_FIELDS,
}

# Same contract as JSON Schema, for tool-use style APIs
REPORT_JSON_SCHEMA = {
    "type": "object",
    "properties": {name: {"type": "string", **_FIELD_SPECS[name]} for name in REPORT_FIELDS},
    "required": REPORT_FIELDS,
}


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    if text[:4].lower() == "json":
        text = text[4:]
    return text.strip()


def parse_report_dict(data) -> InspectionReport:
    if not isinstance(data, dict):
        raise AnalysisParseError(f"expected a JSON object, got {type(data).__name__}")
    try:
        return InspectionReport.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(f"response does not match report schema: {e.error_count()} error(s): {e}") from e


def parse_report(text: str | None) -> InspectionReport:
    if not text or not text.strip():
        raise AnalysisParseError("empty response text")
    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"response is not JSON: {e}") from e
    return parse_report_dict(data)
