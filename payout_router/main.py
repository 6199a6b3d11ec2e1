import hmac
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from .errors import PaymentError
from .health import HealthProber
from .registry import build_registry
from .routes import envelope, router
from .routing import FailoverSelector
from .service import UnifiedPaymentService
from .settings import AuthSettings, Settings, settings as default_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service(settings: Settings) -> UnifiedPaymentService:
    registry = build_registry(settings)
    prober = HealthProber(registry, timeout=settings.health_check_timeout_seconds)
    selector = FailoverSelector(registry, prober, enable_failover=settings.enable_failover)
    return UnifiedPaymentService(registry, selector, prober)


def install_auth(app: FastAPI, auth: AuthSettings) -> None:
    keys = [k for k in auth.api_keys if k]

    @app.middleware("http")
    async def require_api_key(request: Request, call_next):
        path = request.url.path
        if any(path == p or path.startswith(p.rstrip("/") + "/") for p in auth.excluded_paths):
            return await call_next(request)
        supplied = request.headers.get(auth.header_name, "")
        if not supplied or not any(hmac.compare_digest(supplied, k) for k in keys):
            logger.warning(f"Rejected request to {path}: missing or invalid API key")
            return envelope(401, success=False, errorCode="UNAUTHORIZED", errorMessage="Invalid or missing API key")
        return await call_next(request)


def create_app(settings: Optional[Settings] = None, service: Optional[UnifiedPaymentService] = None) -> FastAPI:
    settings = settings or default_settings
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await service.registry.close()

    app = FastAPI(title="Payout Routing Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service

    @app.exception_handler(PaymentError)
    async def payment_error(request: Request, exc: PaymentError):
        logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return envelope(exc.status_code, success=False, errorCode=exc.error_code, errorMessage=exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return envelope(422, success=False, errorCode="VALIDATION_ERROR", errorMessage=message)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return envelope(500, success=False, errorCode="INTERNAL_ERROR", errorMessage="An unexpected error occurred")

    if settings.auth.enabled:
        install_auth(app, settings.auth)

    @app.get("/health")
    def health():
        return {"ok": True, "providers": len(service.registry)}

    app.include_router(router)
    return app


configure_logging(default_settings.log_level)
app = create_app()
