"""
FastAPI application entry point for the Refashion jobs service.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from refashion.api.v1 import api_router
from refashion.core.config import settings
from refashion.core.exceptions import RefashionBaseException
from refashion.utils.logging import get_logger, setup_logging

# Setup structured logging
setup_logging()

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    "CONFIGURATION_ERROR": 503,
    "KEY_SET_FETCH_ERROR": 503,
    "WEBHOOK_VERIFICATION_ERROR": 401,
    "JOB_NOT_FOUND": 404,
    "PROVIDER_ERROR": 502,
    "RETRY_EXHAUSTED": 502,
}

app = FastAPI(
    title="Refashion Jobs",
    description="Asynchronous image and video generation jobs with verified provider webhooks",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RefashionBaseException)
async def refashion_exception_handler(request: Request, exc: RefashionBaseException):
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message, "details": exc.details},
    )


# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "refashion-jobs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
