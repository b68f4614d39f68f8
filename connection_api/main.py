"""
The Connection API entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present (database storage only)
  3. Start the Kafka notifier (kafka notifications only)
  4. Expose Prometheus /metrics endpoint
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from starlette.middleware.sessions import SessionMiddleware

from connection_api.config import settings
from connection_api.database import dispose_db, init_db
from connection_api.dependencies import kafka_notifier
from connection_api.routers import auth, communities, microblogs, recommendations, users
from connection_api.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info(
        "Starting The Connection API (env=%s, storage=%s, notifications=%s)",
        settings.environment, settings.storage_backend, settings.notification_backend,
    )

    if settings.storage_backend == "database":
        await init_db()
    if settings.notification_backend == "kafka":
        await kafka_notifier.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    if settings.notification_backend == "kafka":
        await kafka_notifier.stop()
    if settings.storage_backend == "database":
        await dispose_db()


app = FastAPI(
    title="The Connection API",
    description=(
        "Community platform API: accounts, follows, microblogs, communities "
        "and a personalised recommendation feed."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie,
    max_age=settings.session_max_age,
    same_site="lax",
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report invalid input as 400 with one reason per offending field."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "reason": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Invalid request", "errors": errors},
    )


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(microblogs.router, prefix="/api/microblogs", tags=["Microblogs"])
app.include_router(communities.router, prefix="/api/communities", tags=["Communities"])
app.include_router(
    recommendations.router, prefix="/api/recommendations", tags=["Recommendations"]
)

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
