# api/app.py
from __future__ import annotations
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskstream.core.config import bootstrap_env
from taskstream.api.routes_agent import router as agent_router

bootstrap_env()
app = FastAPI(title="taskstream API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

app.include_router(agent_router, prefix="/api")
