from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taxotariff.api.dependencies import get_services
from taxotariff.api.routes_category import router as category_router
from taxotariff.api.routes_suggest import router as suggest_router
from taxotariff.bootstrap import ResolverServices, build_services
from taxotariff.errors import ResolverError
from taxotariff.observability import (
    bind_run_id,
    current_run_id,
    log_event,
    new_run_id,
    reset_run_id,
)
from taxotariff.version import __version__

logger = logging.getLogger(__name__)


def _normalize_validation_errors(raw_errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    fields: List[Dict[str, str]] = []
    for err in raw_errors:
        loc = err.get("loc", [])
        loc_parts = [str(part) for part in loc if part != "body"]
        path = ".".join(["request", *loc_parts]) if loc_parts else "request"
        message = err.get("msg", "Invalid request")
        if message.lower().startswith("value error, "):
            message = message.split(", ", 1)[1]
        fields.append({"path": path, "message": message})
    return {"error": "VALIDATION_ERROR", "fields": fields}


def create_app(services: Optional[ResolverServices] = None) -> FastAPI:
    """Build the API.

    With ``services`` omitted, the lifespan hook builds them from the
    environment on startup and closes them on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services if services is not None else build_services()
        try:
            yield
        finally:
            if owned:
                app.state.services.close()
            app.state.services = None

    app = FastAPI(title="taxotariff API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Run-ID"],
    )
    app.include_router(category_router)
    app.include_router(suggest_router)

    @app.middleware("http")
    async def attach_run_id(request: Request, call_next):
        run_id = current_run_id() or new_run_id()
        token = bind_run_id(run_id)
        log_event("request.start", method=request.method, path=str(request.url.path))
        try:
            response = await call_next(request)
            response.headers["X-Run-ID"] = run_id
            return response
        finally:
            log_event("request.end", method=request.method, path=str(request.url.path))
            reset_run_id(token)

    @app.exception_handler(ResolverError)
    async def handle_resolver_error(request: Request, exc: ResolverError):
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content=_normalize_validation_errors(exc.errors()))

    @app.get("/health")
    def health(services: ResolverServices = Depends(get_services)) -> Dict[str, Any]:
        stores = {
            "results": services.results.ping(),
            "tariff": services.tariff_store.ping(),
        }
        return {"ok": all(stores.values()), "version": __version__, "stores": stores}

    return app


app = create_app()
