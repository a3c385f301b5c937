"""
wasmrepro API - Main Application
Read-only HTTP view over packaged wasm builds: list, inspect manifests, compare.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import artifacts

_log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report where packaged builds are read from."""
    root = Path(settings.ARTIFACTS_PATH)
    if root.is_dir():
        _log.info("serving packaged builds from %s", root.resolve())
    else:
        _log.warning("artifacts root %s does not exist yet; listing will be empty", root)
    yield


app = FastAPI(
    title=settings.API_TITLE,
    description="Browse and compare deterministic wasm32 build artifacts across hosts",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Nothing here mutates state, so only GET is exposed cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return 422 with structured error details."""
    _log.warning(
        "422 on %s %s  query=%s  errors=%s",
        request.method, request.url.path, request.url.query, exc.errors()[:3],
    )
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "wasmrepro-api",
        "version": settings.API_VERSION,
        "artifacts_root": settings.ARTIFACTS_PATH,
    }


@app.get("/")
async def root():
    return {
        "message": "wasmrepro API - packaged wasm builds under artifacts/<arch>/<timestamp>/",
        "builds": "/artifacts",
        "compare": "/artifacts/compare?left=<arch>/<timestamp>&right=<arch>/<timestamp>",
        "docs": "/docs",
    }


app.include_router(artifacts.router, prefix="/artifacts", tags=["artifacts"])


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT)
