"""Translation of catalog exceptions into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shardcatalog.domain.exceptions import (CatalogException, CatalogNotInitializedError,
                                            ConcurrentUpdateError, InvalidKeyError,
                                            MappingConflictError, MappingNotFoundError,
                                            ProvisioningAbortedError, ServerNotFoundError,
                                            TenantAlreadyExistsError, UnknownShardError,
                                            ValidationException)
from shardcatalog.infrastructure.exceptions import (OperationTimeoutError, ResourceNotFoundError,
                                                    TransportError)

logger = logging.getLogger(__name__)

# Starlette names its 422 constant differently across versions
HTTP_422_UNPROCESSABLE = 422

# Most specific class first: OperationTimeoutError is a TransportError
STATUS_CODES: list[tuple[type[CatalogException], int]] = [
    (ValidationException, HTTP_422_UNPROCESSABLE),
    (InvalidKeyError, HTTP_422_UNPROCESSABLE),
    (ServerNotFoundError, status.HTTP_404_NOT_FOUND),
    (MappingNotFoundError, status.HTTP_404_NOT_FOUND),
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (TenantAlreadyExistsError, status.HTTP_409_CONFLICT),
    (UnknownShardError, status.HTTP_409_CONFLICT),
    (MappingConflictError, status.HTTP_409_CONFLICT),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
    (CatalogNotInitializedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ProvisioningAbortedError, status.HTTP_502_BAD_GATEWAY),
    (OperationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (TransportError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: CatalogException) -> int:
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def catalog_exception_handler(request: Request, exc: CatalogException) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogException, catalog_exception_handler)  # type: ignore[arg-type]
