"""FastAPI application main module.

This module defines the FastAPI application instance for the FeedRank
service. It wires the feed router, request logging, and the error handler
that renders engine exceptions as JSON.
"""

from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.api.logging_config import RequestLoggingMiddleware, setup_logging
from src.api.metrics import metrics_service
from src.api.routes import feed
from src.ranking.config import get_settings
from src.ranking.exceptions import FeedRankException

setup_logging(get_settings().log_level)

# Create FastAPI application instance
app = FastAPI(
    title="FeedRank API",
    description="Personalized product ranking and progressive feed composition",
    version="0.1.0",
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(feed.router)


@app.exception_handler(FeedRankException)
async def feedrank_exception_handler(request: Request, exc: FeedRankException) -> JSONResponse:
    """Render engine errors as ``{"error", "message", "details"}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Returns:
        Dictionary with status key set to "ok".
    """
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Dict:
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
