"""Entry point for the file store HTTP service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from filestore.catalog import open_catalog
from filestore.config import API_HOST, API_PORT
from filestore.exceptions import (
    ConfigurationError,
    FileRecordNotFoundError,
    FileStoreException,
    IntegrityMismatchError,
    InvalidMetadataError,
    MissingChunkError,
    StoreError,
)
from api.routes import file_router

logger = setup_logging('api')
setup_logging('filestore')

app = FastAPI(
    title="Chunked File Store",
    description="Stores files as checksummed fixed-size chunks with deduplicating writes",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Open the store unless a catalog was installed beforehand.
    """
    if getattr(app.state, "catalog", None) is not None:
        logger.info("Using preconfigured file catalog")
        return

    logger.info("File store service starting up...")
    app.state.catalog = open_catalog()
    app.state.owns_catalog = True
    logger.info("File catalog opened")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Release the store connection on application shutdown.
    """
    if getattr(app.state, "owns_catalog", False):
        app.state.catalog.close()
        app.state.catalog = None
        app.state.owns_catalog = False
        logger.info("File catalog closed")


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    if status_code >= 500:
        logger.error(message, exc_info=True)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(FileRecordNotFoundError)
async def file_not_found_handler(request: Request, exc: FileRecordNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND")


@app.exception_handler(InvalidMetadataError)
async def invalid_metadata_handler(request: Request, exc: InvalidMetadataError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_METADATA")


@app.exception_handler(MissingChunkError)
async def missing_chunk_handler(request: Request, exc: MissingChunkError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "MISSING_CHUNK")


@app.exception_handler(IntegrityMismatchError)
async def integrity_mismatch_handler(request: Request, exc: IntegrityMismatchError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTEGRITY_MISMATCH")


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "STORE_ERROR")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "CONFIGURATION_ERROR")


@app.exception_handler(FileStoreException)
async def file_store_exception_handler(request: Request, exc: FileStoreException):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


app.include_router(file_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Chunked File Store API", "status": "running"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
    )


if __name__ == "__main__":
    main()
