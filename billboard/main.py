import os
import time
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from . import metrics
from .pipeline import api_router, session_router

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    metrics.set_gauge("start_time", time.time())
    missing = [k for k in ("GEMINI_API_KEY", "RUNWAYML_API_SECRET") if not os.environ.get(k)]
    if missing:
        logger.warning(f"Missing provider credentials: {', '.join(missing)}; affected steps will fail")
    yield


app = FastAPI(title="Billboard Studio", lifespan=lifespan)
app.include_router(api_router)
app.include_router(session_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics_endpoint():
    """In-memory provider and session metrics."""
    return metrics.get_snapshot()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
