import logging
from contextlib import AsyncExitStack
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront.connections import mongo_lifespan
from storefront.api.auth import router as auth_router
from storefront.api.products import router as products_router
from storefront.utils.base import ServiceError
from storefront.utils.config import settings


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
PRODUCTS_PREFIX = f"{API_PREFIX}/products"


async def combined_lifespan(app: FastAPI):
    async with AsyncExitStack() as stack:
        await stack.enter_async_context(mongo_lifespan(app))
        Path(settings.upload_dir, "products").mkdir(parents=True, exist_ok=True)
        logger.info("%s started (%s)", settings.app_name, settings.environment)

        yield


app = FastAPI(title="Storefront API (Mongo)", version="0.1.0", lifespan=combined_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    # Product routes keep their {success} envelope, auth routes use {status}
    if request.url.path.startswith(PRODUCTS_PREFIX):
        return JSONResponse(status_code=status_code, content={"success": False, "message": message})
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in err["loc"][1:]) for err in exc.errors() if len(err["loc"]) > 1})
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request body"
    return error_response(request, 400, message)


app.include_router(auth_router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
app.include_router(products_router, prefix=PRODUCTS_PREFIX, tags=["products"])
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
