import logging
from typing import Optional

from fastapi import FastAPI

from firmware_selector import __version__
from firmware_selector.api.packages import router as packages_router
from firmware_selector.core.config import Settings, load_settings
from firmware_selector.services.package_store import PackageStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[PackageStore] = None) -> FastAPI:
    """
    Build the API application around explicitly constructed services.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title=f"{settings.brand_name} Firmware Package Selector",
        version=__version__,
        description="Package-index ingestion and package selection for firmware builds.",
    )
    app.state.settings = settings
    app.state.package_store = store or PackageStore(settings)

    @app.get("/health")
    async def health() -> dict:
        """
        Lightweight health check endpoint.
        """
        return {"status": "ok"}

    app.include_router(packages_router, prefix="/api", tags=["packages"])
    logger.info(f"Package selector ready (image server {settings.image_url})")
    return app


if __name__ == "__main__":
    """
    Allow running `python -m firmware_selector.main` to start the Uvicorn
    development server.
    """
    import uvicorn

    uvicorn.run(
        "firmware_selector.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
