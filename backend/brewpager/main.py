from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from brewpager.api.beers import router as beers_router
from brewpager.core.config import settings
from brewpager.core.errors import BrewpagerError, DecodeError, NetworkError, PipelineCancelled

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def _upstream_error(request: Request, exc: BrewpagerError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=502, content=exc.to_dict())


async def _cancelled(request: Request, exc: PipelineCancelled) -> JSONResponse:
    # Client is gone; nothing will read this.
    return JSONResponse(status_code=499, content=exc.to_dict())


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="brewpager", version="0.1.0")

    app.add_exception_handler(NetworkError, _upstream_error)
    app.add_exception_handler(DecodeError, _upstream_error)
    app.add_exception_handler(PipelineCancelled, _cancelled)

    app.include_router(beers_router)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    logger.info("brewpager ready: upstream=%s", settings.upstream().beers_url)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("brewpager.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
