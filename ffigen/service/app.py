"""FastAPI application exposing ffigen over HTTP."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..errors import FfigenError
from ..library_mode import BindingGenerator, Source


class GenerateRequest(BaseModel):
    library_path: str
    languages: List[str] = Field(min_length=1)
    out_dir: str
    crate_name: Optional[str] = None
    try_format_code: bool = True
    config_override: Optional[str] = None


class InspectRequest(BaseModel):
    library_path: str
    crate_name: Optional[str] = None
    config_override: Optional[str] = None


class SourceSummary(BaseModel):
    crate_name: str
    package: str
    namespace: Optional[str] = None
    checksum: str
    inherited_from: List[str] = Field(default_factory=list)


class SourcesResponse(BaseModel):
    status: str
    sources: List[SourceSummary]


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_generator() -> BindingGenerator:
    return BindingGenerator()


def _summarise(sources: List[Source]) -> List[SourceSummary]:
    return [
        SourceSummary(
            crate_name=source.crate_name,
            package=source.package.name,
            namespace=source.ci.namespace,
            checksum=source.ci.checksum(),
            inherited_from=list(source.config.inherited_from),
        )
        for source in sorted(sources, key=lambda s: s.crate_name)
    ]


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


def create_app(
    generator_factory: Callable[[], BindingGenerator] = _default_generator,
) -> FastAPI:
    """Create the FastAPI application exposing generation and inspection."""

    app = FastAPI(title="ffigen service", version=__version__)

    async def get_generator() -> BindingGenerator:
        # One generator per request; each run re-queries the build graph.
        return generator_factory()

    async def _run_blocking(func: Callable[[], List[Source]]) -> List[Source]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/generate", response_model=SourcesResponse)
    async def generate(
        payload: GenerateRequest,
        generator: BindingGenerator = Depends(get_generator),
    ) -> SourcesResponse:
        def _run() -> List[Source]:
            return generator.generate_bindings(
                payload.library_path,
                payload.crate_name,
                payload.languages,
                payload.out_dir,
                payload.try_format_code,
                config_override=_optional_path(payload.config_override),
            )

        sources = await _run_blocking(_run)
        return SourcesResponse(status="ok", sources=_summarise(sources))

    @app.post("/inspect", response_model=SourcesResponse)
    async def inspect(
        payload: InspectRequest,
        generator: BindingGenerator = Depends(get_generator),
    ) -> SourcesResponse:
        def _run() -> List[Source]:
            return generator.load_sources(
                payload.library_path,
                payload.crate_name,
                config_override=_optional_path(payload.config_override),
            )

        sources = await _run_blocking(_run)
        return SourcesResponse(status="ok", sources=_summarise(sources))

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FfigenError)
    async def ffigen_error_handler(_: Any, exc: FfigenError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)
