from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request
import uvicorn

from vacancy_outreach.api.router import api_router
from vacancy_outreach.core.config import get_settings
from vacancy_outreach.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from vacancy_outreach.jobs.runtime import IngestionRuntime
from vacancy_outreach.services.repository import RepositoryUnavailableError
from vacancy_outreach.services.store import get_repository

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    telemetry_runtime = setup_telemetry(settings)
    repository = get_repository()
    try:
        await repository.ensure_schema()
    except RepositoryUnavailableError as exc:
        logger.error("vacancy store unavailable at startup: %s", exc)

    runtime = IngestionRuntime.from_settings(settings, repository)
    if runtime is not None:
        try:
            await runtime.start()
        except Exception:  # pragma: no cover - depends on Telegram availability
            logger.exception("channel ingestion failed to start; serving HTTP only")
            await runtime.stop()
            runtime = None
    app.state.runtime = runtime
    try:
        yield
    finally:
        if runtime is not None:
            await runtime.stop()
        app.state.runtime = None
        shutdown_telemetry(telemetry_runtime)
        await repository.close()
        get_repository.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.state.runtime = None


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
