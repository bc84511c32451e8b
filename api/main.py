import sys
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.exceptions import AppException
from api.shared.response import ResponseModel
from core.logging import configure_logging
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer

configure_logging(SETTINGS.APP)

logger = structlog.get_logger("analytics")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("app.startup.begin")
    start_time = time.time()

    try:
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            await _conn.execute(text("SELECT 1"))
        logger.info("app.startup.database_ready", seconds=round(time.time() - db_start, 2))

        redis_start = time.time()
        redis_resource = _app.container.infrastructure.redis_db()
        await redis_resource.init()
        try:
            await redis_resource.connect()
            logger.info("app.startup.redis_ready", seconds=round(time.time() - redis_start, 2))
        except Exception as e:
            # Geo cache is advisory; keep serving without it
            logger.warning("app.startup.redis_unavailable", error=str(e))

        ipdb_resource = _app.container.infrastructure.ip_database()
        try:
            await ipdb_resource.init()
            logger.info("app.startup.ip_database_ready", path=ipdb_resource.database_path)
        except Exception as e:
            # Lookups fail as GeoLookupError and conversations carry no location
            logger.warning(
                "app.startup.ip_database_unavailable",
                path=ipdb_resource.database_path,
                error=str(e),
            )

        logger.info("app.startup.complete", seconds=round(time.time() - start_time, 2))
    except Exception as e:
        logger.exception("app.startup.failed", error=str(e))
        raise

    yield

    try:
        await _app.container.infrastructure.redis_db().disconnect()
        await _app.container.infrastructure.ip_database().shutdown()
        await _app.container.infrastructure.database().shutdown()
        logger.info("app.shutdown.complete")
    except Exception as e:
        logger.exception("app.shutdown.failed", error=str(e))


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Conversation Analytics API",
        description="Conversation references, geo enrichment and statistics retention",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(SETTINGS.model_dump())
    _app.container.wire(modules=[sys.modules[__name__]])
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.features.conversation.router import router as conversation_router

    _app.include_router(
        conversation_router, prefix="/api/v1/conversations", tags=["Conversations"]
    )

    return _app


app = create_fastapi_app()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": f"{exc.detail} : {request.url}",
            "status_code": 404,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Validation Error", "detail": str(exc), "status_code": 422},
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning("app.request_failed", error_code=exc.error_code, error=exc.message)
    return JSONResponse(
        status_code=400,
        content=ResponseModel.error(exc.message, error_code=exc.error_code).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("app.unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred",
            "status_code": 500,
        },
    )
