"""FastAPI application exposing exchange reads and quotes."""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dex.api.endpoints import router
from dex.errors import DexError, PairNotFound
from dex.models.api import ErrorResponse

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("DEX_HOST", "0.0.0.0")
PORT = int(os.environ.get("DEX_PORT", "8000"))
DEBUG = os.environ.get("DEX_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="DEX Core",
    description="Constant product exchange core: pairs, reserves and path quotes",
    version="0.1.0",
)

app.include_router(router)


@app.exception_handler(DexError)
async def dex_error_handler(request: Request, exc: DexError) -> JSONResponse:
    """Surface exchange errors by kind: 404 for a missing pair, 400 otherwise."""
    status_code = 404 if isinstance(exc, PairNotFound) else 400
    logger.warning("request_failed", path=request.url.path, error=exc.kind, detail=str(exc))
    body = ErrorResponse(error=exc.kind, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Run the API server.

    Configuration via environment variables:
    - DEX_HOST: Host to bind to (default: 0.0.0.0)
    - DEX_PORT: Port to bind to (default: 8000)
    - DEX_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "dex.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
