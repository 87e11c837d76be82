"""FastAPI 앱 팩토리"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import health_router, search_router, settings_router
from src.api.dependencies import get_session_sweeper, shutdown_dependencies
from src.core.config import settings
from src.core.database import init_db
from src.core.exceptions import ContentSearchException
from src.core.logging import logger
from src.core.security import log_request
from src.providers import shutdown_shared_http_client
from src.schemas.api_schema import ErrorResponse

# error_code → HTTP 상태 코드 (없으면 500)
ERROR_STATUS_CODES = {
    "INVALID_QUERY": 400,
    "UNKNOWN_PROVIDER": 400,
    "SESSION_EXPIRED": 410,
    "OWNERSHIP_VIOLATION": 403,
    "UPSTREAM_REJECTED": 422,
    "UPSTREAM_FAILURE": 503,
    "UPSTREAM_TIMEOUT": 503,
    "CIRCUIT_OPEN": 503,
    "CACHE_CONNECTION_ERROR": 503,
    "DB_ERROR": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기"""
    logger.info("Starting application...")
    if settings.persistence_backend == "database":
        init_db()
    get_session_sweeper().start()
    logger.info(f"Application started (persistence={settings.persistence_backend})")
    yield
    logger.info("Shutting down application...")
    await shutdown_dependencies()
    await shutdown_shared_http_client()


async def content_search_exception_handler(request: Request, exc: ContentSearchException) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(exc.error_code, 500)
    if status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} -> {status_code} {exc.error_code}")
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        await log_request(request)
        return await call_next(request)

    app.add_exception_handler(ContentSearchException, content_search_exception_handler)

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(search_router)
    app.include_router(settings_router)

    return app

# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
