"""
Fake Gemini generateContent server for exercising GeminiVision without a key.

Answers every generateContent call with one canned inspection report.
FAKE_GEMINI_MODE=garbage returns non-JSON text, FAKE_GEMINI_MODE=error
returns HTTP 500, so the UI's error path can be checked by hand too.

Usage:
    python defectlens/scripts/fake_gemini_server.py                  (terminal 1)
    GEMINI_BASE_URL=http://127.0.0.1:9100/v1beta CAMERA_ADAPTER=mock \
        uvicorn defectlens.web.app:app --port 8000                   (terminal 2)
"""

import json
import os
import time
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="fake-gemini-server")

MODE = os.getenv("FAKE_GEMINI_MODE", "ok")
DELAY_S = float(os.getenv("FAKE_GEMINI_DELAY_S", "1.0"))

REPORT = {
    "inspectionResult": "FAIL",
    "defectIdentified": "Scratch",
    "locationOfDefect": "Top-left corner",
    "severityLevel": "Medium",
    "suggestedFix": "Sand and repaint",
    "confidenceLevel": "87%",
}


@app.post("/v1beta/models/{model_action}")
async def generate_content(model_action: str, request: Request):
    body = await request.json()
    parts = body["contents"][0]["parts"]
    image = next((p["inlineData"] for p in parts if "inlineData" in p), {})
    print(f"[gemini] {model_action} key={request.headers.get('x-goog-api-key', '')[:4]}... "
          f"image={image.get('mimeType')} {len(image.get('data', ''))} chars")
    time.sleep(DELAY_S)

    if MODE == "error":
        return JSONResponse(status_code=500, content={"error": {"code": 500, "message": "fake failure"}})
    text = "sorry, I cannot help with that" if MODE == "garbage" else json.dumps(REPORT)
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ]
    }


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=9100)
