from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from defectlens.services.api import app as api_app

root = Path(__file__).resolve().parent

# mounted sub-apps get no lifespan events; run the API's (camera/vision cleanup) here
app = FastAPI(title="defectlens web", lifespan=api_app.router.lifespan_context)

# "/" must be registered BEFORE the catch-all mount("") or it gets intercepted
@app.get("/", response_class=HTMLResponse)
def index():
    return (root / "templates" / "index.html").read_text(encoding="utf-8")

app.mount("/static", StaticFiles(directory=str(root / "static")), name="static")

# mount API sub-app last — catch-all prefix "" would shadow routes above it
app.mount("", api_app)
