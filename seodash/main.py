"""
SEO Editorial Dashboard
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
from pathlib import Path

from seodash.config import get_settings
from seodash.utils.logger import log
from seodash import __version__

# Import routers
from seodash.api import calendar, editorial, generation, health, sites_airtable, system_prompts, webhook, websites
from seodash.middleware.security_middleware import SecurityMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    if settings.airtable_configured:
        log.info(f"Editorial content backed by Airtable base {settings.airtable_base_id}")
    else:
        log.warning("Airtable not configured; editorial content is kept in memory")
    if not settings.seo_webhook_url:
        log.warning("SEO_WEBHOOK_URL not set; website analyses will fail")

    yield

    log.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Backend of the SEO / editorial marketing dashboard

    - Websites and their SEO analysis (n8n crawl workflow)
    - Editorial calendar stored in Airtable
    - AI-written posts (Claude) and illustrations (DALL-E)
    - Social publishing program and credentials per site
    """,
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid bodies and parameters answer 400 with the field errors"""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    log.warning(f"Validation failed on {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Route errors carry a dict detail that becomes the body as-is"""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# X-Robots-Tag, Cache-Control
app.add_middleware(SecurityMiddleware)

app.add_middleware(GZipMiddleware, minimum_size=500)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(websites.router)
app.include_router(editorial.router)
app.include_router(sites_airtable.router)
app.include_router(system_prompts.router)
app.include_router(generation.router)
app.include_router(calendar.router)
app.include_router(webhook.router)

# Uploaded images
upload_dir = Path(settings.upload_dir)
upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "seodash.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
