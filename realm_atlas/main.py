"""FastAPI application entry point."""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from realm_atlas.api import regions
from realm_atlas.core.config import settings
from realm_atlas.core.errors import RegionGraphError
from realm_atlas.services.region_graph import describe_validation_error

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Realm Atlas", version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every failure is answered as {"error": "..."}
@app.exception_handler(RegionGraphError)
async def region_graph_error_handler(request: Request, exc: RegionGraphError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"error": describe_validation_error(exc)})


# Routes
app.include_router(regions.router, prefix="/regions", tags=["regions"])


@app.get("/")
def read_root():
    return {"message": "Realm Atlas API"}
