from __future__ import annotations  # FastAPI server exposing the interview orchestrator

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as interview_router


logger = logging.getLogger(__name__)

app = FastAPI(title="Interview Orchestrator API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interview_router)


@app.get("/healthz")
def healthz() -> dict:  # Liveness probe
    return {"status": "ok"}
