"""
Portals Signage Dashboard - FastAPI Application Entry Point

启动命令:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core import cache, settings, setup_logging
from app.core.logging import logger
from app.middleware.trace import trace_middleware
from app.services.rbac import GrantValidationError, StorageError, get_role_registry
from app.services.signage import SignageClientError

# 设置日志
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("application_startup", extra={"project": settings.PROJECT_NAME})

    # 角色配置错误直接阻止启动
    get_role_registry()

    try:
        cache.init()
    except Exception as exc:
        logger.warning(f"cache_init_failed: {exc}")

    yield

    await cache.close()
    logger.info("application_shutdown")


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """存储故障：失败关闭，细节只进日志"""
    logger.opt(exception=exc.cause or exc).error(
        "storage_error",
        extra={
            "operation": exc.operation,
            "path": request.url.path,
            "trace_id": getattr(request.state, "trace_id", None),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


async def grant_validation_error_handler(request: Request, exc: GrantValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": [{"field": exc.field, "message": exc.message}]},
    )


async def signage_error_handler(request: Request, exc: SignageClientError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    app.middleware("http")(trace_middleware)

    # CORS 配置
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=settings.BACKEND_CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.BACKEND_CORS_ALLOW_METHODS,
        allow_headers=settings.BACKEND_CORS_ALLOW_HEADERS,
    )

    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(GrantValidationError, grant_validation_error_handler)
    app.add_exception_handler(SignageClientError, signage_error_handler)

    # 注册路由
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """注册所有 API 路由"""
    from app.api.v1 import (
        admin_permissions_router,
        health_router,
        players_router,
        users_router,
    )

    api_prefix = settings.API_V1_STR

    app.include_router(health_router, prefix=api_prefix, tags=["Health"])
    app.include_router(users_router, prefix=api_prefix, tags=["Users"])
    app.include_router(players_router, prefix=api_prefix, tags=["Players"])
    app.include_router(admin_permissions_router, prefix=api_prefix, tags=["Admin - Permissions"])


# 创建应用实例
app = create_app()


def run():
    """脚本入口点"""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
