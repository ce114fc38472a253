"""
Startup configuration.

Reads defectlens/.env (if present) and the process environment once and
freezes the result. The app factory and adapters receive this value
explicitly instead of calling os.getenv() themselves.
"""
import os
from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv

VisionName = Literal["gemini", "claude", "mock"]
CameraName = Literal["cv2", "mock"]

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_CLAUDE_MODEL = "claude-haiku-4-5-20251001"


@dataclass(frozen=True)
class Settings:
    vision_adapter: VisionName = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    anthropic_api_key: str = ""
    claude_model: str = DEFAULT_CLAUDE_MODEL
    vision_timeout_s: float = 60.0

    camera_adapter: CameraName = "cv2"
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    jpeg_quality: int = 80
    # permission | missing | other — only read by MockCamera
    mock_camera_failure: Optional[str] = None

    @property
    def api_key(self) -> str:
        """The one credential the selected vision adapter sends."""
        if self.vision_adapter == "claude":
            return self.anthropic_api_key
        if self.vision_adapter == "gemini":
            return self.gemini_api_key
        return ""


def load_settings(dotenv_path: str = "defectlens/.env") -> Settings:
    load_dotenv(dotenv_path=dotenv_path, override=False)

    vision = os.getenv("VISION_ADAPTER", "gemini").strip().lower()
    if vision not in ("gemini", "claude", "mock"):
        raise ValueError(f"unknown VISION_ADAPTER {vision!r}, expected gemini, claude or mock")
    camera = os.getenv("CAMERA_ADAPTER", "cv2").strip().lower()
    if camera not in ("cv2", "mock"):
        raise ValueError(f"unknown CAMERA_ADAPTER {camera!r}, expected cv2 or mock")

    return Settings(
        vision_adapter=vision,
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
        vision_timeout_s=float(os.getenv("VISION_TIMEOUT_S", "60")),
        camera_adapter=camera,
        camera_index=int(os.getenv("CAMERA_INDEX", "0")),
        camera_width=int(os.getenv("CAMERA_WIDTH", "1280")),
        camera_height=int(os.getenv("CAMERA_HEIGHT", "720")),
        jpeg_quality=int(os.getenv("JPEG_QUALITY", "80")),
        mock_camera_failure=os.getenv("MOCK_CAMERA_FAILURE") or None,
    )
