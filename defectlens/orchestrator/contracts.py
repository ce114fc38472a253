from dataclasses import dataclass
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field

Verdict = Literal["PASS", "FAIL"]
Severity = Literal["Low", "Medium", "High", "N/A"]
ShellState = Literal["idle", "analyzing", "result", "error"]

JPEG_DATA_URL_PREFIX = "data:image/jpeg;base64,"


class InspectionReport(BaseModel):
    """Six-field verdict returned by the analysis service. Built whole or not at all."""

    model_config = ConfigDict(frozen=True, strict=True)

    inspection_result: Verdict = Field(alias="inspectionResult")
    defect_identified: str = Field(alias="defectIdentified", min_length=1)   # "None" on PASS
    location_of_defect: str = Field(alias="locationOfDefect", min_length=1)  # "N/A" on PASS
    severity_level: Severity = Field(alias="severityLevel")
    suggested_fix: str = Field(alias="suggestedFix", min_length=1)
    confidence_level: str = Field(alias="confidenceLevel", min_length=1)     # e.g. "87%"

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class EncodedImage:
    data_url: str                 # "data:image/jpeg;base64,..." or bare base64
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def mime_type(self) -> str:
        if self.data_url.startswith("data:") and ";" in self.data_url:
            return self.data_url[5:self.data_url.index(";")]
        return "image/jpeg"

    @property
    def payload(self) -> str:
        """Base64 text with any data-URL prefix stripped."""
        head, sep, tail = self.data_url.partition(",")
        return tail if sep and head.startswith("data:") else self.data_url


@dataclass(frozen=True)
class ShellSnapshot:
    state: ShellState
    image: Optional[EncodedImage] = None
    report: Optional[InspectionReport] = None
    error: Optional[str] = None
    camera_active: bool = False
    camera_error_code: Optional[str] = None
    camera_error: Optional[str] = None
