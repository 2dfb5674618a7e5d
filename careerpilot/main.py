from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from careerpilot.config import get_settings
from careerpilot.database import init_db
from careerpilot.middleware.correlation import CorrelationMiddleware
from careerpilot.middleware.rate_limit import RedisRateLimitMiddleware
from careerpilot.routes import auth, users, interviews, feedback, suggestions, challenges, voice, product_feedback
from careerpilot.services.gateway import get_gateway
from careerpilot.services.redis_client import init_redis, close_redis, is_redis_healthy
from careerpilot.utils.errors import AppError, handle_error
from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import get_snapshot

settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.app_version)
# Route-level limits (register, rotate-key) live on the auth router's limiter
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware: the last one added runs first
app.add_middleware(RedisRateLimitMiddleware)
app.add_middleware(CorrelationMiddleware)

# CORS - Explicit origins for security
allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,  # Explicit origins from config
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    handle_error(exc, {"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    error = handle_error(exc, {"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": error["message"], "code": error["code"]},
    )


# Startup: Initialize database and Redis
@app.on_event("startup")
async def startup_event():
    logger.info("Starting CareerPilot Backend...")
    await init_db()
    await init_redis()
    logger.info(f"Backend ready at http://{settings.backend_host}:{settings.backend_port}")


@app.on_event("shutdown")
async def shutdown_event():
    await close_redis()


# Health check endpoint (minimal response to prevent information disclosure)
@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/health/ready")
async def readiness_check():
    return {
        "status": "ok",
        "redis": await is_redis_healthy(),
        "circuits": get_gateway().get_circuit_states(),
    }


@app.get("/metrics")
async def metrics():
    return {**get_snapshot(), "circuits": get_gateway().describe()}


# Root endpoint (minimal response to prevent information disclosure)
@app.get("/")
async def root():
    return {"status": "ok"}


# Register routes
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api", tags=["Users"])
app.include_router(interviews.router, prefix="/api", tags=["Interviews"])
app.include_router(feedback.router, prefix="/api/feedback", tags=["Feedback"])
app.include_router(suggestions.router, prefix="/api", tags=["Suggestions"])
app.include_router(challenges.router, prefix="/api/challenges", tags=["Technical Challenges"])
app.include_router(voice.router, prefix="/api/voice", tags=["Voice Agent"])
app.include_router(product_feedback.router, prefix="/api/user-feedback", tags=["Product Feedback"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "careerpilot.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.debug
    )
