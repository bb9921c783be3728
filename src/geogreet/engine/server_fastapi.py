from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from geogreet.common.config import ServiceConfig
from geogreet.common.log import configure_logging
from geogreet.engine.generator import TextGenerator
from geogreet.engine.request import UNKNOWN_LOCATION, RequestContext

logger = logging.getLogger(__name__)


class ReplyMeta(BaseModel):
    served_from_region: str
    user_detected_location: str


class ReplyEnvelope(BaseModel):
    ai_response: str
    meta: ReplyMeta


def build_generator(config: ServiceConfig) -> TextGenerator:
    if config.backend == "local":
        from geogreet.engine.runner import LocalGenerator

        return LocalGenerator.from_config(config.local_model)

    from geogreet.engine.vertex_client import VertexGenerator

    return VertexGenerator(config.project_id, config.vertex_location, config.model_name)


def create_app(config: ServiceConfig, generator: TextGenerator) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "serving region=%s backend=%s model=%s",
            config.region, generator.name, config.model_name,
        )
        yield
        generator.close()

    app = FastAPI(title="geogreet", lifespan=lifespan)
    app.state.config = config
    app.state.generator = generator

    @app.get("/health")
    def health():
        return {"status": "ok", "region": config.region}

    # Sync route: runs in the threadpool while the model call blocks.
    @app.api_route("/", methods=["GET", "POST"], response_model=ReplyEnvelope)
    def respond(request: Request):
        location = request.headers.get(config.location_header)
        ctx = RequestContext(
            user_location=UNKNOWN_LOCATION if location is None else location,
            region=config.region,
        )
        logger.debug("request from %r", ctx.user_location)

        try:
            text = generator.generate(ctx.prompt())
        except Exception as e:
            logger.exception("generation failed for location %r", ctx.user_location)
            return JSONResponse(status_code=500, content={"error": str(e)})

        return ReplyEnvelope(
            ai_response=text,
            meta=ReplyMeta(
                served_from_region=ctx.region,
                user_detected_location=ctx.user_location,
            ),
        )

    return app


def build_app() -> FastAPI:
    """uvicorn factory: ``uvicorn --factory geogreet.engine.server_fastapi:build_app``."""
    config = ServiceConfig.from_env()
    configure_logging(config.log_level)
    return create_app(config, build_generator(config))
