"""
Error responses for the HTTP layer.

Every error body has the shape {"detail": str, "code": str}. Pipeline errors
keep their own code; plain HTTP errors get a code derived from the status.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inference.errors import VisionError

STATUS_BY_CODE = {
    "DETECTOR_NOT_FOUND": 404,
    "ASSET_UNAVAILABLE": 404,
    "MODEL_NOT_LOADED": 409,
    "CANCELLED": 409,
    "DECODE_FAILURE": 422,
    "RESIZE_FAILURE": 422,
    "INVALID_OUTPUT": 500,
    "INFERENCE_FAILURE": 500,
}

CODE_BY_STATUS = {
    400: "INVALID_REQUEST",
    404: "NOT_FOUND",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
}


async def vision_error_handler(request: Request, exc: VisionError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status >= 500:
        logging.error(f"{request.method} {request.url.path} failed: [{exc.code}] {exc}")
    else:
        logging.warning(f"{request.method} {request.url.path}: [{exc.code}] {exc}")
    return JSONResponse({"detail": str(exc), "code": exc.code}, status_code=status)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = CODE_BY_STATUS.get(exc.status_code, f"HTTP_{exc.status_code}")
    return JSONResponse({"detail": exc.detail, "code": code}, status_code=exc.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VisionError, vision_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
