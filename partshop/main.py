"""
FastAPI Production Application

Main entry point for the forklift parts store API.
"""

from partshop.config import get_settings
from partshop.serving.api import create_api_app

settings = get_settings()

app = create_api_app(settings)


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
        "currency": settings.commerce.currency,
        "documentation": "/docs" if settings.is_development else None,
    }


def run() -> None:
    import uvicorn
    uvicorn.run(
        "partshop.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
