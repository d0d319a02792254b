"""FastAPI application entrypoint for mimickit service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, model_validator

from .. import MODEL_VERSION
from ..config import load_config
from ..ingest import IngestError
from ..models import (
    DEFAULT_TARGET_AGENT,
    IntentSpecification,
    LocalSource,
    RemoteSource,
    ScanMode,
    Source,
    TargetAgent,
)
from ..orchestrator import Orchestrator
from ..stores import UnknownRunError

T = TypeVar("T")


class AnalyzeRequest(BaseModel):
    repo_url: Optional[str] = None
    repo_path: Optional[str] = None
    branch: Optional[str] = None
    scan_mode: ScanMode = "quick"
    github_token: Optional[str] = None
    target_agent: TargetAgent = DEFAULT_TARGET_AGENT

    @model_validator(mode="after")
    def _one_source(self) -> "AnalyzeRequest":
        if bool(self.repo_url) == bool(self.repo_path):
            raise ValueError("Provide exactly one of repo_url or repo_path")
        return self

    def source(self) -> Source:
        if self.repo_path:
            return LocalSource(path=self.repo_path, ref=self.branch)
        return RemoteSource(url=self.repo_url or "", ref=self.branch, github_token=self.github_token)


class RecompileRequest(BaseModel):
    run_id: str
    intent: IntentSpecification
    target_agent: Optional[TargetAgent] = None


class StackSwapRequest(BaseModel):
    run_id: str
    category: str
    current: str
    replacement: str
    target_agent: TargetAgent = DEFAULT_TARGET_AGENT


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator(load_config(Path.cwd()))


async def _in_executor(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing mimickit operations."""

    app = FastAPI(title="mimickit", version=MODEL_VERSION)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        run = await _in_executor(
            lambda: orchestrator.run(
                payload.source(), payload.scan_mode, target_agent=payload.target_agent
            )
        )
        return run.to_dict()

    @app.get("/runs")
    async def list_runs(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, List[Dict[str, Any]]]:
        runs = await _in_executor(orchestrator.list_runs)
        return {"runs": [run.to_dict() for run in runs]}

    @app.get("/runs/{run_id}")
    async def get_run(
        run_id: str,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        run = await _in_executor(lambda: orchestrator.get_run(run_id))
        return run.to_dict()

    @app.post("/recompile")
    async def recompile(
        payload: RecompileRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        run = await _in_executor(
            lambda: orchestrator.recompile(payload.run_id, payload.intent, payload.target_agent)
        )
        return run.to_dict()

    @app.post("/stack-swap")
    async def stack_swap(
        payload: StackSwapRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        run = await _in_executor(
            lambda: orchestrator.swap(
                payload.run_id,
                payload.category,
                payload.current,
                payload.replacement,
                payload.target_agent,
            )
        )
        return run.to_dict()

    @app.exception_handler(UnknownRunError)
    async def unknown_run_handler(_: Any, exc: UnknownRunError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(IngestError)
    async def ingest_error_handler(_: Any, exc: IngestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)


__all__ = [
    "AnalyzeRequest",
    "RecompileRequest",
    "StackSwapRequest",
    "create_app",
    "run_service",
]
