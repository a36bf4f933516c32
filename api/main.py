import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import ErrorResponse, HealthCheckResponse
from api.shared.exceptions import ChatAppException
from core.logging_config import configure_logging
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer

configure_logging(SETTINGS.APP)

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            if _conn.dialect.name == "postgresql":
                await _conn.execute(text("SET lock_timeout = '4s'"))
                await _conn.execute(text("SET statement_timeout = '8s'"))
            # Verify database connection
            await _conn.execute(text("SELECT 1"))
        logger.info(f"Database connection established in {time.time() - db_start:.2f}s")

        if SETTINGS.DATABASE.DB_AUTO_CREATE:
            from api.shared.entities.registry import BaseEntity

            await db_resource.create_all(BaseEntity)
            logger.info("Database tables ensured")

        model_client = _app.container.infrastructure.model_client()
        if not model_client.is_configured:
            logger.warning(
                f"Model provider '{model_client.name}' has no credential; chat turns will fail"
            )

        logger.info(f"Application startup completed in {time.time() - start_time:.2f}s")
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Chat Relay API",
        description="Streaming chat relay with conversation history",
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
        allow_origins=SETTINGS.APP.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Conversation-Id"],
    )

    # Include feature routers
    from api.features.chat.router import router as chat_router
    from api.features.conversation.router import router as conversation_router
    from api.features.messages.router import router as messages_router
    from api.features.users.router import router as users_router

    _app.include_router(chat_router, prefix="/api/v1/chat", tags=["Chat"])
    _app.include_router(users_router, prefix="/api/v1/users", tags=["Users"])
    _app.include_router(
        conversation_router, prefix="/api/v1/conversations", tags=["Conversations"]
    )
    _app.include_router(messages_router, prefix="/api/v1/messages", tags=["Messages"])

    _register_routes(_app)
    _register_exception_handlers(_app)
    return _app


def _register_routes(_app: CustomFastAPI) -> None:
    @_app.get("/")
    async def root():
        return {"message": "Chat Relay API is running", "status": "ok"}

    @_app.get("/health")
    async def health():
        return {"status": "ok"}

    @_app.get("/ready", response_model=HealthCheckResponse)
    async def ready(request: Request):
        db_resource = request.app.container.infrastructure.database()
        model_client = request.app.container.infrastructure.model_client()
        dependencies = {
            "model": "configured" if model_client.is_configured else "missing credential"
        }
        try:
            async with db_resource.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            dependencies["database"] = "ok"
        except Exception:
            logger.exception("Readiness check failed")
            dependencies["database"] = "unavailable"
            return JSONResponse(
                status_code=503,
                content=jsonable_encoder(
                    HealthCheckResponse(status="unavailable", dependencies=dependencies),
                    by_alias=True,
                ),
            )
        return HealthCheckResponse(status="ok", dependencies=dependencies)


def _register_exception_handlers(_app: CustomFastAPI) -> None:
    @_app.exception_handler(ChatAppException)
    async def chat_app_exception_handler(request: Request, exc: ChatAppException):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.message, details=jsonable_encoder(exc.details) or None
            ).model_dump(exclude_none=True),
        )

    @_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="Validation Error",
                details={"errors": jsonable_encoder(exc.errors())},
            ).model_dump(),
        )

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="An unexpected error occurred").model_dump(exclude_none=True),
        )


app = create_fastapi_app()
