import logging

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from objstore.api.v1.deps import get_store, require_api_key
from objstore.api.v1.routers.objects import router as objects_router
from objstore.common.config import get_settings
from objstore.common.logging import setup_logging
from objstore.infra.observability.metrics import metrics_app
from objstore.infra.observability.middleware import MetricsMiddleware
from objstore.infra.storage.client import StorageInitError
from objstore.infra.storage.provider import StoreProvider

ERROR_CODE_BY_STATUS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    429: "too_many_requests",
    500: "internal_error",
    502: "bad_gateway",
    503: "service_unavailable",
}


def _normalize_detail(detail):
    if isinstance(detail, dict):
        maybe_code = detail.get("error_code")
        cleaned = {k: v for k, v in detail.items() if k != "error_code"}
        if len(cleaned) == 1 and "message" in cleaned:
            cleaned = cleaned["message"]
        if not cleaned:
            cleaned = None
        return cleaned, maybe_code if isinstance(maybe_code, str) else None
    return detail, None


def _resolve_error_code(status_code: int, override: str | None = None) -> str:
    if override:
        return override
    if status_code == 422:
        return "validation_error"
    return ERROR_CODE_BY_STATUS.get(status_code, "unknown_error")


def _describe_store_target(settings) -> str:
    endpoint = settings.S3_ENDPOINT_URL or "<aws default>"
    region = settings.S3_REGION or "<default>"
    return (
        f"bucket={settings.S3_BUCKET}, endpoint={endpoint}, region={region}, "
        f"addressing_style={settings.S3_ADDRESSING_STYLE}"
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)
    app = FastAPI(
        title="Object Store Service",
        version="v1.0",
        description="Read, write and probe objects in a single S3 bucket",
    )

    app.include_router(
        objects_router,
        prefix="/api/v1",
        tags=["objects"],
        dependencies=[Depends(require_api_key)],
    )

    if settings.ENABLE_METRICS:
        app.add_middleware(MetricsMiddleware)
        app.mount("/metrics", metrics_app)

    @app.on_event("startup")
    def on_startup() -> None:
        startup_logger = logging.getLogger("objstore.startup")
        startup_logger.info(
            "Object store configured; the bucket is created on first use."
            " [event=storage_configured] (%s)",
            _describe_store_target(settings),
        )
        if settings.S3_ACCEPT_EXISTING_BUCKET:
            startup_logger.info(
                "An existing bucket owned by this account will be reused."
                " [event=storage_accept_existing_bucket]"
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger = logging.getLogger("http")
        normalized_detail, code_override = _normalize_detail(exc.detail)
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "http_exception status=%s detail=%s method=%s path=%s request_id=%s",
            exc.status_code,
            normalized_detail,
            request.method,
            request.url.path,
            request.headers.get("X-Request-Id"),
            extra={
                "extra": {
                    "status": exc.status_code,
                    "detail": normalized_detail,
                    "method": request.method,
                    "route": request.url.path,
                    "request_id": request.headers.get("X-Request-Id"),
                }
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            media_type="application/problem+json",
            content={
                "type": "about:blank",
                "title": "HTTP Error",
                "status": exc.status_code,
                "detail": normalized_detail,
                "error_code": _resolve_error_code(exc.status_code, code_override),
                "instance": str(request.url),
                "request_id": request.headers.get("X-Request-Id"),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(
            status_code=422,
            media_type="application/problem+json",
            content={
                "type": "about:blank",
                "title": "Validation Error",
                "status": 422,
                "detail": jsonable_encoder(exc.errors()),
                "error_code": _resolve_error_code(422),
                "instance": str(request.url),
                "request_id": request.headers.get("X-Request-Id"),
            },
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/ready")
    def ready(store: StoreProvider = Depends(get_store)):
        try:
            client = store.get_client()
        except StorageInitError as exc:
            detail: dict[str, object] = {"storage": str(exc)}
            if exc.code:
                detail["code"] = exc.code
            return {"status": "not_ready", "detail": detail}
        return {"status": "ready", "bucket": client.bucket}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("objstore.main:app", host="0.0.0.0", port=8000, reload=True)
