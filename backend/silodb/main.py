# backend/silodb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .apps.inventory.errors import (
    DuplicateCode,
    InsufficientStock,
    InvalidIdentifier,
    InvalidRange,
    InventoryError,
    NotFound,
    SnapshotMismatch,
)
from .apps.inventory.router import router as inventory_router

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    SnapshotMismatch: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InsufficientStock: status.HTTP_409_CONFLICT,
    DuplicateCode: status.HTTP_409_CONFLICT,
    InvalidRange: status.HTTP_400_BAD_REQUEST,
    InvalidIdentifier: status.HTTP_400_BAD_REQUEST,
}


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


app = FastAPI(title="Silo Inventory API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info(
        "request rejected",
        extra={"path": request.url.path, "error_code": exc.code, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Silo inventory backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(inventory_router)
