"""FastAPI application entrypoint for the roxdoc lookup service."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import AmbiguousQueryError, NotFoundError, RoxdocError
from ..logging import get_logger
from ..lookup import LookupResolver, RenderedTopic, Scope
from ..orchestrator import Orchestrator

logger = get_logger("service")

T = TypeVar("T")


class LookupResponse(BaseModel):
    topic: str
    text: str


class RefreshRequest(BaseModel):
    scope: Optional[Scope] = None


class RefreshResponse(BaseModel):
    status: str
    topics: Dict[str, int]


class HealthResponse(BaseModel):
    status: str


class ErrorResponse(BaseModel):
    detail: str
    candidates: List[str] = []


def _default_resolver() -> LookupResolver:
    return Orchestrator().resolver(".")


async def _run_blocking(func: Callable[[], T]) -> T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    resolver_factory: Callable[[], LookupResolver] = _default_resolver,
) -> FastAPI:
    """Create the FastAPI application around one resident resolver."""

    app = FastAPI(title="roxdoc lookup service", version="1.0.0")
    app.state.resolver = resolver_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get(
        "/lookup",
        response_model=LookupResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    )
    async def lookup(
        q: str = Query(..., description="name, ns?name or generic(types)"),
        scope: Scope = Scope.SOURCE,
    ) -> LookupResponse:
        resolver: LookupResolver = app.state.resolver

        def _resolve() -> RenderedTopic:
            return resolver.resolve(q, scope)

        result = await _run_blocking(_resolve)
        return LookupResponse(topic=result.topic, text=result.text)

    @app.post("/refresh", response_model=RefreshResponse)
    async def refresh(payload: Optional[RefreshRequest] = None) -> RefreshResponse:
        resolver: LookupResolver = app.state.resolver
        scope = payload.scope if payload is not None else None

        def _refresh() -> Dict[str, int]:
            resolver.refresh(scope)
            scopes = [scope] if scope is not None else resolver.scopes
            return {item.value: len(resolver.index(item).topics) for item in scopes}

        counts = await _run_blocking(_refresh)
        logger.info("Refreshed lookup tables: %s", counts)
        return RefreshResponse(status="ok", topics=counts)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_: Any, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(AmbiguousQueryError)
    async def ambiguous_handler(_: Any, exc: AmbiguousQueryError) -> JSONResponse:
        return JSONResponse(
            status_code=409, content={"detail": str(exc), "candidates": exc.candidates}
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RoxdocError)
    async def roxdoc_error_handler(
        _: Any, exc: RoxdocError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    path: str = ".", host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(lambda: Orchestrator().resolver(path))
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
