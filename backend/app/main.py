# pathify backend api
# fastapi app with async mongodb, jwt auth, and the child assessment workflow

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.errors import PathifyError
from app.services.db import db
from app.routers import auth, psychologists, admin, children, assessments, games, analysis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb and ensure indexes. shutdown: close connection."""
    logger.info("Starting Pathify backend...")
    await db.connect()
    await db.ensure_indexes()
    logger.info("Pathify backend ready")
    yield
    logger.info("Shutting down Pathify backend...")
    await db.close()


app = FastAPI(
    title="Pathify API",
    description="Backend API for Pathify: parents, psychologists, and admins around child assessments",
    version="1.0.0",
    lifespan=lifespan,
)

# cors, allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://127.0.0.1:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PathifyError)
async def pathify_error_handler(request: Request, exc: PathifyError):
    """typed workflow errors become {detail, code} with their own status"""
    if exc.status_code >= 409:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# register routers
app.include_router(auth.router)
app.include_router(psychologists.router)
app.include_router(admin.router)
app.include_router(children.router)
app.include_router(assessments.router)
app.include_router(games.router)
app.include_router(analysis.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "pathify-api"}
