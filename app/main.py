from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import redis
from slowapi.errors import RateLimitExceeded
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from app.config import settings
from app.database import engine
from app.routers import notes, folders, payments, subscription, user, realtime
from app.services.plan_notifier import PlanStateNotifier

# Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Rate limiter (memory:// locally, Redis in production)
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    default_limits=[settings.RATE_LIMIT_PER_IP]
)

app = FastAPI(
    title="Notes API",
    description="Personal notes backend with plan quotas and Stripe upgrades",
    version="1.0.0",
    debug=settings.DEBUG,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# One notifier per process; websocket sessions and the webhook share it
app.state.plan_notifier = PlanStateNotifier(queue_size=settings.NOTIFIER_QUEUE_SIZE)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(notes.router, prefix=settings.API_V1_PREFIX, tags=["notes"])
app.include_router(folders.router, prefix=settings.API_V1_PREFIX, tags=["folders"])
app.include_router(subscription.router, prefix=settings.API_V1_PREFIX, tags=["subscription"])
app.include_router(payments.router, prefix=settings.API_V1_PREFIX, tags=["payments"])
app.include_router(user.router, prefix=settings.API_V1_PREFIX, tags=["user"])
app.include_router(realtime.router, prefix=settings.API_V1_PREFIX, tags=["realtime"])

# Stripe delivers in bursts from a few IPs and retries on 429; the signature is the guard
limiter.exempt(payments.stripe_webhook)


@app.get("/")
async def root():
    return {"message": "Notes API is running"}


@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy"}


@app.get("/health/detailed")
async def health_detailed():
    """Health check with dependency status"""
    health_status = {
        "status": "healthy",
        "checks": {}
    }

    # Database
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    # Redis only backs the rate limiter when configured for it
    if settings.RATE_LIMIT_STORAGE_URI.startswith("redis"):
        try:
            r = redis.from_url(settings.RATE_LIMIT_STORAGE_URI)
            r.ping()
            health_status["checks"]["redis"] = "ok"
        except Exception as e:
            health_status["checks"]["redis"] = f"error: {str(e)}"
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"

    health_status["checks"]["stripe"] = "ok" if settings.STRIPE_WEBHOOK_SECRET else "not_configured"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/health/ready")
async def health_ready():
    """Readiness check - database reachable"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )


@app.get("/health/live")
async def health_live():
    """Liveness check"""
    return {"status": "alive"}
