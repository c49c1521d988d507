"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from synthesis.api import router as api_router
from synthesis.core.config import get_settings
from synthesis.core.logging import configure_logging

configure_logging(get_settings())

app = FastAPI(
    title="Observations to Insights",
    description="Design-synthesis worksheet: observations, harms, criteria and How Might We strategies",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint; reports which backing services are configured."""
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "store": "supabase" if settings.store_configured else "local",
            "suggestions": bool(settings.ANTHROPIC_API_KEY),
        },
        status_code=200,
    )


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
