"""FastAPI application creation and configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.cron.router import router as cron_router


def create_app():
    """Create the FastAPI app with the cron routes and health check."""
    app = FastAPI(
        title="DC Policy Tracker",
        description="Scheduled jobs for the DC Council LIMS bill cache and tracked-bill checks",
        version="0.1.0",
        redirect_slashes=False,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(cron_router)

    @app.get("/healthcheck")
    async def health_check():
        return {"status": "healthy"}

    return app
