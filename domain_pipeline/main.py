"""FastAPI application exposing the forecast lookup pipeline."""

import logging

from fastapi import FastAPI

from domain_pipeline import __version__
from domain_pipeline.api.forecasts import router as forecasts_router
from domain_pipeline.config import API_PORT, configure_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Domain Pipelines API", version=__version__)
    app.include_router(forecasts_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    logger.info("Domain Pipelines API initialized")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=API_PORT)
