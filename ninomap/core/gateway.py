"""FastAPI app entry."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, FastAPI, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ninomap.config.settings import settings
from ninomap.core.errors import StoreTimeoutError, StoreUnavailableError
from ninomap.core.models import NINO_MAX_LENGTH, NINO_MIN_LENGTH, CreateStatus, MappingIn, ReadStatus
from ninomap.core.service import MappingService
from ninomap.storage import create_cache, create_store
from ninomap.util.logger import logger

router = APIRouter(tags=["mappings"])

_CREATE_STATUS_CODES = {
    CreateStatus.CREATED: 201,
    CreateStatus.REPLAYED_IDEMPOTENT: 200,
    CreateStatus.CONFLICT: 409,
}


def get_service(request: Request) -> MappingService:
    return request.app.state.service


def _error_response(status_code: int, error: str, detail: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


@router.post("/mappings")
def create_mapping(mapping: MappingIn, service: MappingService = Depends(get_service)) -> JSONResponse:
    result = service.create(mapping)
    content: dict = {"status": result.status.value}
    if result.record is not None:
        content["record"] = result.record.to_wire()
    if result.status is CreateStatus.CONFLICT:
        content["error"] = "conflict"
        content["detail"] = "NINO or GUID already bound to a different mapping"
    return JSONResponse(status_code=_CREATE_STATUS_CODES[result.status], content=content)


@router.get("/mappings/{nino}")
def get_mapping(
    nino: str = Path(min_length=NINO_MIN_LENGTH, max_length=NINO_MAX_LENGTH),
    service: MappingService = Depends(get_service),
) -> JSONResponse:
    result = service.get_mapping(nino)
    if result.status is ReadStatus.NOT_FOUND or result.record is None:
        return JSONResponse(status_code=404, content={"status": result.status.value, "message": "Mapping not found"})
    return JSONResponse(content={"status": result.status.value, "record": result.record.to_wire()})


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


async def request_timing_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request rejected validation path=%s errors=%d", request.url.path, len(exc.errors()))
    return _error_response(400, "validation_error", [err.get("msg", "") for err in exc.errors()])


async def _store_timeout_handler(request: Request, exc: StoreTimeoutError) -> JSONResponse:
    logger.error("store timeout path=%s error=%s", request.url.path, exc)
    return _error_response(504, "store_timeout", "store did not answer in time; the write may have been applied")


async def _store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("store unavailable path=%s error=%s", request.url.path, exc)
    return _error_response(503, "store_unavailable", "durable store unavailable")


def build_service() -> MappingService:
    return MappingService(create_store(), create_cache(), cache_ttl_seconds=settings.cache_ttl_seconds)


def create_app(service: MappingService | None = None) -> FastAPI:
    """Build the app; pass ``service`` to skip settings-driven backend construction."""

    app = FastAPI(title=settings.app_name)
    app.state.service = service
    app.include_router(router)
    app.middleware("http")(request_timing_middleware)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StoreTimeoutError, _store_timeout_handler)
    app.add_exception_handler(StoreUnavailableError, _store_unavailable_handler)

    owns_service = service is None

    @app.on_event("startup")
    async def startup_backends() -> None:
        if app.state.service is None:
            app.state.service = build_service()
            logger.info(
                "backends ready store=%s cache=%s ttl=%ss",
                settings.store_backend,
                settings.cache_backend,
                settings.cache_ttl_seconds,
            )

    @app.on_event("shutdown")
    async def shutdown_backends() -> None:
        if owns_service and app.state.service is not None:
            app.state.service.close()
            app.state.service = None

    return app


app = create_app()
