"""FastAPI application setup for Second Brain."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from second_brain.api.routes_content import router as content_router
from second_brain.api.routes_query import router as query_router
from second_brain.core.config import get_settings
from second_brain.core.errors import SecondBrainError
from second_brain.core.logging import configure_logging, get_logger
from second_brain.core.metrics import metrics_response
from second_brain.core.runtime import build_runtime

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Second Brain",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(content_router, prefix="/content", tags=["content"])
app.include_router(query_router, prefix="", tags=["query"])


@app.exception_handler(SecondBrainError)
async def handle_domain_error(request: Request, exc: SecondBrainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup() -> None:
    """Open stores and detect the embedding dimension before serving."""
    app.state.runtime = build_runtime(get_settings())


@app.on_event("shutdown")
async def shutdown() -> None:
    runtime = getattr(app.state, "runtime", None)
    if runtime is not None:
        runtime.close()
        app.state.runtime = None


@app.get("/health", tags=["admin"])
def health(request: Request) -> dict[str, object]:
    """Liveness check with document-store status."""
    runtime = getattr(request.app.state, "runtime", None)
    connected = runtime is not None and runtime.document_db.ping()
    return {"ok": True, "database": "connected" if connected else "disconnected"}


@app.get("/metrics", tags=["admin"])
def metrics():
    return metrics_response()
