import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from app.api.router import api_router
from app.core.config import settings
from app.core.services import build_services

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# StaticFiles checks the directory when mounted, before the lifespan runs
Path(settings.DIAGRAMS_DIR).mkdir(parents=True, exist_ok=True)


# Build the pool, cache and clients once and release them on shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Server is starting...")
    app.state.services = build_services(settings)

    yield
    await app.state.services.aclose()
    logger.info("Server stopped")


app = FastAPI(title="SQL Diagram Gateway", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Incoming request: {request.method} {request.url.path}")
    return await call_next(request)


# Rendered diagrams are public, the API routes are not
app.mount("/diagrams", StaticFiles(directory=settings.DIAGRAMS_DIR), name="diagrams")

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the SQL Diagram Gateway"}


if __name__ == "__main__":
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)
