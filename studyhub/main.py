import time
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from studyhub.core.config import get_settings
from studyhub.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from studyhub.core.logging import bind_request_id, configure_logging, get_logger
from studyhub.db.init import init_db
from studyhub.routers import payments, users
from studyhub.services.gateway import build_gateway
from studyhub.services.mailer import build_mailer

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title="StudyHub API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(payments.router, prefix="/v1/payment", tags=["payment"])
app.include_router(users.router, prefix="/v1/users", tags=["users"])


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    app.state.mongo_client = await init_db()
    log.info("startup", msg="DB connected")
    app.state.payment_gateway = build_gateway(settings)
    if app.state.payment_gateway is None:
        log.warning("startup", msg="Razorpay keys not set; order creation disabled")
    if not settings.razorpay_webhook_secret:
        log.warning("startup", msg="RAZORPAY_WEBHOOK_SECRET not set; webhooks will be rejected")
    app.state.mailer = build_mailer(settings)
    app.state.arq_pool = None
    if settings.notification_backend == "arq":
        from arq import create_pool
        from studyhub.worker.tasks import get_redis_settings
        app.state.arq_pool = await create_pool(get_redis_settings())
        log.info("startup", msg="ARQ notification queue connected")


@app.on_event("shutdown")
async def shutdown():
    if getattr(app.state, "arq_pool", None) is not None:
        await app.state.arq_pool.aclose()
    if getattr(app.state, "mailer", None) is not None:
        await app.state.mailer.aclose()
    if getattr(app.state, "mongo_client", None) is not None:
        app.state.mongo_client.close()


@app.get("/health")
async def health():
    """Health check for load balancers and monitoring."""
    return {"status": "ok"}
