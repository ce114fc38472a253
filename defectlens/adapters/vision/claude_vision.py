"""
Claude inspection client.

Claude has no response-schema switch, so the report schema is declared as a
single tool and the model is forced to call it. The tool input is then run
through the same validator as every other adapter.

Requires ANTHROPIC_API_KEY (Settings.anthropic_api_key).
"""
import anthropic

from defectlens.adapters.vision.base import VisionAdapter
from defectlens.adapters.vision.schema import INSPECTION_PROMPT, REPORT_JSON_SCHEMA, parse_report_dict
from defectlens.orchestrator.contracts import EncodedImage, InspectionReport
from defectlens.orchestrator.errors import AnalysisParseError, AnalysisServiceError

TOOL_NAME = "record_inspection"


class ClaudeVision(VisionAdapter):
    def __init__(self, status_store, api_key: str, model: str, timeout: float = 60.0, client=None):
        self.status = status_store
        self.model = model
        self._client = client or anthropic.Anthropic(api_key=api_key, timeout=timeout)
        if api_key:
            self.status.log(f"claude_vision: ready ({model})")
        else:
            self.status.log("claude_vision: ANTHROPIC_API_KEY not set, calls will fail")

    def analyze(self, image: EncodedImage) -> InspectionReport:
        try:
            message = self._client.messages.create(
                model=self.model,
                max_tokens=1024,
                tools=[
                    {
                        "name": TOOL_NAME,
                        "description": "Record the defect inspection report for the photographed product.",
                        "input_schema": REPORT_JSON_SCHEMA,
                    }
                ],
                tool_choice={"type": "tool", "name": TOOL_NAME},
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/jpeg",
                                    "data": image.payload,
                                },
                            },
                            {"type": "text", "text": INSPECTION_PROMPT},
                        ],
                    }
                ],
            )
        # the SDK raises TypeError when no credential resolves at request time
        except (anthropic.AnthropicError, TypeError) as e:
            self.status.log(f"claude_vision: API error: {e}")
            raise AnalysisServiceError(f"API error: {e}") from e

        tool_input = next(
            (block.input for block in message.content
             if block.type == "tool_use" and block.name == TOOL_NAME),
            None,
        )
        if tool_input is None:
            self.status.log(f"claude_vision: no {TOOL_NAME} call in response (stop={message.stop_reason})")
            raise AnalysisParseError(f"no {TOOL_NAME} tool call in response")

        try:
            report = parse_report_dict(tool_input)
        except AnalysisParseError as e:
            self.status.log(f"claude_vision: parse error: {e}")
            raise
        self.status.log(f"claude_vision: → {report.inspection_result} severity={report.severity_level}")
        return report

    def close(self):
        self._client.close()
