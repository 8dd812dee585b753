from fastapi import FastAPI, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from campushub.core.database import session_manager, aget_db
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.api.v1.endpoints.events import router as events_router
from campushub.api.v1.endpoints.approvals import router as approvals_router
from campushub.api.v1.endpoints.venues import router as venues_router
from campushub.api.v1.endpoints.equipment import router as equipment_router
from campushub.api.v1.endpoints.bookings import router as bookings_router
from campushub.api.v1.endpoints.rsvp import router as rsvp_router
from campushub.api.v1.endpoints.users import router as users_router

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
import logging
from contextlib import asynccontextmanager
from campushub.core.config import settings
from campushub.core.exceptions import CampusHubError
from campushub.core.ratelimit import limiter

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async context manager for app lifespan events"""

    try:
        logger.info("🚀 Starting CampusHub application...")

        logger.info("🔌 Initializing database connection pool...")
        await session_manager.init()
        logger.info("✅ Database ready, tables created")

    except Exception as e:
        logger.critical(f"🔥 Application startup failed: {str(e)}")
        raise

    try:
        logger.info("🏁 CampusHub application startup complete")
        yield
    finally:
        try:
            logger.info("🛑 Beginning application shutdown...")
            logger.info("🔌 Closing database connections...")
            await session_manager.close()
            logger.info("✅ Database connections closed cleanly")
        except Exception as e:
            logger.error(f"⚠️ Error during shutdown: {str(e)}")
            raise
        finally:
            logger.info("👋 Application shutdown complete")


app = FastAPI(
    title="CampusHub API",
    description="API for CampusHub - campus events, venue and equipment booking, approvals and RSVPs",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


# CORS Configuration
if settings.ENVIRONMENT == "production":
    allowed_origins = [settings.FRONTEND_URL]
else:
    allowed_origins = [
        settings.FRONTEND_URL,
        "http://localhost:3000",
        "http://localhost:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder({"detail": exc.errors()}),
    )


@app.exception_handler(CampusHubError)
async def campushub_exception_handler(request: Request, exc: CampusHubError):
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_dict()),
    )


@app.get("/", tags=["Health Check"])
async def health_check(db: AsyncSession = Depends(aget_db)):
    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "CampusHub API",
            "database": "connected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "service": "CampusHub API",
            "database": "disconnected",
            "error": str(e)
        }


app.include_router(events_router, prefix="/api/v1", tags=["Events"])
app.include_router(approvals_router, prefix="/api/v1", tags=["Approvals"])
app.include_router(venues_router, prefix="/api/v1", tags=["Venues"])
app.include_router(equipment_router, prefix="/api/v1", tags=["Equipment"])
app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(rsvp_router, prefix="/api/v1", tags=["RSVP"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])

logger.info(f"✅ Loaded {len(app.routes)} routes")
