"""
FastAPI application serving a single storage backend.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..storage.base import StorageBackend
from ..storage.exceptions import (
    StorageError,
    StorageInvalidError,
    StorageIOError,
    StorageNotFoundError,
    StorageNotSupportedError,
    StorageTransientError,
)

log = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (StorageInvalidError, status.HTTP_400_BAD_REQUEST),
    (StorageNotFoundError, status.HTTP_404_NOT_FOUND),
    (StorageNotSupportedError, status.HTTP_501_NOT_IMPLEMENTED),
    (StorageTransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageIOError, status.HTTP_502_BAD_GATEWAY),
]


class RefItem(BaseModel):
    ref: str
    size: int


class ListRefsResponse(BaseModel):
    refs: List[RefItem]
    next_token: str


class LinkBaseResponse(BaseModel):
    base: str


router = APIRouter()


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


@router.get("/health", response_model=Dict[str, str])
def health():
    return {"status": "ok"}


@router.get("/refs", response_model=ListRefsResponse)
def list_refs(
    token: str = Query(default=""),
    storage: StorageBackend = Depends(get_storage),
):
    """
    Returns one page of refs. Pass the returned next_token to continue;
    an empty next_token means the listing is complete.
    """
    refs, next_token = storage.list(token)
    log.debug("[GET /refs] returning %d refs, more=%s", len(refs), bool(next_token))
    return ListRefsResponse(
        refs=[RefItem(ref=item.ref, size=item.size) for item in refs],
        next_token=next_token,
    )


@router.get("/link-base", response_model=LinkBaseResponse)
def link_base(storage: StorageBackend = Depends(get_storage)):
    return LinkBaseResponse(base=storage.link_base())


@router.get("/refs/{ref:path}")
def download_ref(ref: str, storage: StorageBackend = Depends(get_storage)):
    return Response(content=storage.download(ref), media_type="application/octet-stream")


@router.put("/refs/{ref:path}", status_code=status.HTTP_204_NO_CONTENT)
async def put_ref(ref: str, request: Request, storage: StorageBackend = Depends(get_storage)):
    contents = await request.body()
    await run_in_threadpool(storage.put, ref, contents)
    log.info("[PUT /refs] stored %s (%d bytes)", ref, len(contents))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/refs/{ref:path}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ref(ref: str, storage: StorageBackend = Depends(get_storage)):
    storage.delete(ref)
    log.info("[DELETE /refs] deleted %s", ref)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_cls, mapped in _STATUS_BY_ERROR:
        if isinstance(exc, exc_cls):
            code = mapped
            break
    if code >= 500 and code != status.HTTP_501_NOT_IMPLEMENTED:
        log.error("[%s %s] storage error: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(storage: StorageBackend) -> FastAPI:
    """
    Builds the application around *storage*. The backend is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        log.info("Closing storage backend")
        storage.close()

    app = FastAPI(
        title="B2CS Store Server",
        lifespan=lifespan,
        version=__version__,
        description="Blob store backed by Backblaze B2 Cloud Storage",
    )
    app.state.storage = storage
    app.include_router(router)
    app.add_exception_handler(StorageError, _storage_error_handler)
    return app
