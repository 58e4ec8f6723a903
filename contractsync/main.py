from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from contractsync.api.routes import contacts, contracts, health, sweeps, webhooks
from contractsync.core.config import settings
from contractsync.core.logging_setup import logger
from contractsync.db.session import init_db

CORS_METHODS = "GET, POST, OPTIONS"


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
    # Inicializa banco / tabelas
    init_db()
    yield


def _cors_headers(origin: str | None = None) -> dict[str, str]:
    allowed = settings.allowed_origins
    if not allowed or "*" in allowed:
        allow_origin = "*"
    else:
        allow_origin = origin if origin in allowed else allowed[0]
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": settings.allowed_headers,
        "Access-Control-Allow-Methods": CORS_METHODS,
    }


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    logger.info("ContractSync API inicializada")

    # ===============================================================
    # CORS (webhooks e gatilhos aceitam qualquer origem)
    # ===============================================================
    @application.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("Exceção não tratada em %s %s", request.method, request.url.path)
            response = JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
        response.headers.update(_cors_headers(request.headers.get("origin")))
        return response

    @application.options("/{rest_of_path:path}", include_in_schema=False)
    async def preflight_handler(request: Request, rest_of_path: str) -> Response:
        return Response(status_code=200, headers=_cors_headers(request.headers.get("origin")))

    # ===============================================================
    # ROTAS
    # ===============================================================
    application.include_router(health.router, prefix="/health")
    application.include_router(webhooks.router, prefix=settings.api_v1_str)
    application.include_router(sweeps.router, prefix=settings.api_v1_str)
    application.include_router(contracts.router, prefix=settings.api_v1_str)
    application.include_router(contacts.router, prefix=settings.api_v1_str)

    @application.get("/")
    def root():
        return {"service": settings.project_name}

    return application


app = create_app()
