import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from kubeconverge.api.router import api_router
from kubeconverge.core.logging import get_logger, setup_logging
from kubeconverge.dependencies import get_cluster
from kubeconverge.exceptions import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger(__name__)
    logger.info("app.startup")
    yield
    if get_cluster.cache_info().currsize:
        get_cluster().close()
    logger.info("app.shutdown")


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title="kubeconverge",
        description="Manifest reconciliation and readiness checks for Kubernetes",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
