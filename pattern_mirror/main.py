import logging
from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from pattern_mirror.core.database import dispose_db, init_db
from pattern_mirror.core.settings import settings
from pattern_mirror.errors import PatternMirrorError
from pattern_mirror.api_v1.endpoints import auth, journal, pages, readings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up Pattern Mirror...")
    if settings.GEMINI_API_KEY:
        logger.info(f"Completion service configured with model: {settings.GEMINI_MODEL}")
    else:
        logger.warning("GEMINI_API_KEY is not set; reading generation will fail until it is configured.")
    try:
        await init_db()
        logger.info("Database initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Pattern Mirror...")
    await dispose_db()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Generates reflective pattern readings from a short form and stores them for later viewing.",
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PatternMirrorError)
async def pattern_mirror_error_handler(request: Request, exc: PatternMirrorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Create API router
api_router = APIRouter(prefix=settings.API_PREFIX)

# Include all endpoint routers
api_router.include_router(readings.router, tags=["Readings"])
api_router.include_router(journal.router, tags=["Journal"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

app.include_router(api_router)
app.include_router(pages.router, tags=["Pages"])

# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "service": "pattern-mirror"}

if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Uvicorn server for development...")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
