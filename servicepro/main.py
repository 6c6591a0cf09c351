# servicepro/main.py
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from servicepro.api.routes import admin as admin_router
from servicepro.api.routes import appointments as appointments_router
from servicepro.api.routes import auth as auth_router
from servicepro.api.routes import availability as availability_router
from servicepro.api.routes import blog_posts as blog_posts_router
from servicepro.api.routes import categories as categories_router
from servicepro.api.routes import complaints as complaints_router
from servicepro.api.routes import messages as messages_router
from servicepro.api.routes import notifications as notifications_router
from servicepro.api.routes import provider_portal as provider_portal_router
from servicepro.api.routes import providers as providers_router
from servicepro.api.routes import quality as quality_router
from servicepro.api.routes import rbac as rbac_router
from servicepro.api.routes import reviews as reviews_router
from servicepro.api.routes import user_dashboard as user_dashboard_router
from servicepro.core.config import CORS_ORIGINS, ENABLE_REQUEST_LOGGING, ENVIRONMENT, LOG_LEVEL, SEED_RBAC_ON_STARTUP
from servicepro.db.base import Base, SessionLocal, engine

# Register every table on Base.metadata before create_all
from servicepro.db.models import appointment, availability, blog, category, complaint  # noqa: F401
from servicepro.db.models import meeting, messaging, notification, provider, quality, rbac, review, user  # noqa: F401
from servicepro.services.rbac import seed_default_rbac

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("passlib").setLevel(logging.ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up (%s)...", ENVIRONMENT)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database tables created successfully")

    if SEED_RBAC_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_default_rbac(db)
        finally:
            db.close()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="ServicePro API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


if ENABLE_REQUEST_LOGGING:

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


@app.get("/")
def root():
    return {"message": "ServicePro API running"}


@app.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": ENVIRONMENT,
    }


app.include_router(auth_router.router)
app.include_router(categories_router.router)
app.include_router(providers_router.router)
app.include_router(availability_router.router)
app.include_router(appointments_router.router)
app.include_router(provider_portal_router.router)
app.include_router(reviews_router.router)
app.include_router(complaints_router.router)
app.include_router(quality_router.router)
app.include_router(messages_router.router)
app.include_router(notifications_router.router)
app.include_router(rbac_router.router)
app.include_router(admin_router.router)
app.include_router(blog_posts_router.router)
app.include_router(user_dashboard_router.router)
