"""FastAPI application entrypoint for nx-affected service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import NxAffectedError
from ..orchestrator import Orchestrator

OrchestratorFactory = Callable[..., Orchestrator]


class AffectedRequest(BaseModel):
    path: str
    base: Optional[str] = None
    head: str = "HEAD"
    tags: List[str] = Field(default_factory=list)
    minimum_nx_version: Optional[str] = None


class AffectedResponse(BaseModel):
    affected: List[str]
    affected_string: str


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator(
    root: Path, *, head: str = "HEAD", minimum_nx_version: str | None = None
) -> Orchestrator:
    return Orchestrator(root, head=head, minimum_nx_version=minimum_nx_version)


def create_app(
    orchestrator_factory: OrchestratorFactory = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing affected-app resolution."""

    app = FastAPI(title="nx-affected Service", version="1.0.0")

    async def get_factory() -> OrchestratorFactory:
        return orchestrator_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/affected", response_model=AffectedResponse)
    async def affected(
        payload: AffectedRequest,
        factory: OrchestratorFactory = Depends(get_factory),
    ) -> AffectedResponse:
        root = Path(payload.path).expanduser().resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"Workspace {payload.path} does not exist")

        def _run() -> List[str]:
            orchestrator = factory(
                root, head=payload.head, minimum_nx_version=payload.minimum_nx_version
            )
            return orchestrator.resolve_affected(payload.base, payload.tags)

        loop = asyncio.get_running_loop()
        apps = await loop.run_in_executor(None, _run)
        return AffectedResponse(affected=apps, affected_string=",".join(apps))

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NxAffectedError)
    async def affected_error_handler(_: Any, exc: NxAffectedError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
