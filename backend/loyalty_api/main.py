"""
Loyalty Platform - Backend API
Customer loyalty, catalog, store services and chat assistant
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.exceptions import HTTPException as StarletteHTTPException  # noqa: E402

# Import API routers
from loyalty_api.api import (  # noqa: E402
    appointments,
    auth,
    chat,
    dashboard,
    loyalty,
    products,
    profile,
    service_worker,
    stores,
    transactions,
    wishlist,
    work_orders,
)
from loyalty_api.api import settings as settings_api  # noqa: E402
from loyalty_api.core.config import settings  # noqa: E402
from loyalty_api.core.database import health_check  # noqa: E402
from loyalty_api.core.logging_config import configure_logging  # noqa: E402
from loyalty_api.services.settings_service import get_settings_service  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    try:
        get_settings_service().initialize_default_settings()
    except Exception as e:
        logger.warning(f"Could not initialize default settings: {e}")
    logger.info(f"{settings.API_TITLE} {settings.API_VERSION} started")
    yield


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Errors are returned as {"error": message}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": details})


# Include API routers
app.include_router(auth.router)
app.include_router(products.router)
app.include_router(wishlist.router)
app.include_router(loyalty.router)
app.include_router(stores.router)
app.include_router(appointments.router)
app.include_router(work_orders.router)
app.include_router(transactions.router)
app.include_router(chat.router)
app.include_router(settings_api.router)
app.include_router(profile.router)
app.include_router(dashboard.router)
app.include_router(service_worker.router)


@app.get("/")
async def root():
    """Endpoint raíz - Verificación de estado de la API"""
    return {
        "message": "Loyalty API",
        "status": "online",
        "version": settings.API_VERSION,
        "description": settings.API_DESCRIPTION,
    }


@app.get("/health")
async def health():
    """Health check endpoint para monitoreo - tests database connectivity"""
    start_time = time.time()
    database = health_check()
    total_latency_ms = round((time.time() - start_time) * 1000, 2)

    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "service": "loyalty-api",
        "version": settings.API_VERSION,
        "database": {
            "status": database["status"],
            "latency_ms": database["latency_ms"],
            "error": database["error"],
            "connection_timeout_s": settings.DB_CONNECT_TIMEOUT,
        },
        "total_latency_ms": total_latency_ms,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("loyalty_api.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)
