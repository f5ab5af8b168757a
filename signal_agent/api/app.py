"""
FastAPI application for the Token Signal Agent.
"""
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from signal_agent import __version__
from signal_agent.api.payments import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    FacilitatorError,
    PaymentRequired,
)
from signal_agent.api.routes.dashboard import router as dashboard_router
from signal_agent.api.routes.monitoring import (
    increment_errors,
    increment_payments_required,
    increment_requests,
    record_request_duration,
    router as monitoring_router,
)
from signal_agent.api.routes.paid import router as paid_router
from signal_agent.api.routes.skills import router as skills_router
from signal_agent.api.routes.status import router as status_router
from signal_agent.config.settings import settings
from signal_agent.utils.logging import configure_logging, get_logger, is_configured

if not is_configured():
    configure_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(
    title="Token Signal Agent API",
    description="Pay-per-call token signals, reports and free market skills",
    version=__version__,
)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "Starting Token Signal Agent API",
        network=settings.payments.NETWORK,
        payments_enabled=settings.payments.ENABLED,
    )
    if settings.payments.ENABLED and not settings.payments.PAY_TO:
        logger.error("PAYMENTS_PAY_TO is not set, paid endpoints will not accept payments")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", PAYMENT_HEADER],
    expose_headers=[PAYMENT_RESPONSE_HEADER],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    increment_requests()

    try:
        response = await call_next(request)
    except Exception:
        increment_errors()
        raise
    record_request_duration(time.time() - start_time)
    if response.status_code >= 500:
        increment_errors()
    return response


@app.exception_handler(PaymentRequired)
async def payment_required_handler(request: Request, exc: PaymentRequired):
    increment_payments_required()
    return JSONResponse(status_code=402, content=exc.body)


@app.exception_handler(FacilitatorError)
async def facilitator_error_handler(request: Request, exc: FacilitatorError):
    return JSONResponse(status_code=502, content={"detail": "payment facilitator unavailable"})


app.include_router(status_router, tags=["status"])
app.include_router(skills_router, tags=["skills"])
app.include_router(paid_router, tags=["paid"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
app.include_router(monitoring_router, prefix="/monitoring", tags=["monitoring"])


@app.get("/")
async def root():
    return {"message": "Token Signal Agent API", "version": __version__}
