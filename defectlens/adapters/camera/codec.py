"""JPEG <-> base64 data-URL conversion for captured frames."""
import base64
import binascii

import cv2
import numpy as np

from defectlens.orchestrator.contracts import EncodedImage, JPEG_DATA_URL_PREFIX
from defectlens.orchestrator.errors import BadImage

JPEG_SOI = b"\xff\xd8"


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
    ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise BadImage("jpeg encode failed")
    return buf.tobytes()


def encode_frame(frame: np.ndarray, quality: int = 80) -> EncodedImage:
    """Serialize a BGR frame at its native size as a JPEG data URL."""
    h, w = frame.shape[:2]
    b64 = base64.b64encode(encode_jpeg(frame, quality)).decode("ascii")
    return EncodedImage(data_url=JPEG_DATA_URL_PREFIX + b64, width=w, height=h)


def decode_data_url(image: str) -> EncodedImage:
    """
    Validate an uploaded image (data URL or bare base64) and re-wrap it as
    a JPEG data URL. Non-JPEG uploads are re-encoded so the analysis request
    always carries image/jpeg.
    """
    raw = EncodedImage(data_url=image.strip())
    try:
        image_bytes = base64.b64decode(raw.payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadImage(f"base64 decode failed: {e}") from e

    frame = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if frame is None:
        raise BadImage("image decode failed")

    h, w = frame.shape[:2]
    if not image_bytes.startswith(JPEG_SOI):
        return encode_frame(frame)
    return EncodedImage(data_url=JPEG_DATA_URL_PREFIX + raw.payload, width=w, height=h)
