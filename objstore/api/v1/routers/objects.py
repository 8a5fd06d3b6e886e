"""Object API router.

Exposes write, read and existence checks for keys in the configured bucket.
Bodies are raw bytes in both directions.
"""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.concurrency import run_in_threadpool

from objstore.api.v1.deps import get_store
from objstore.api.v1.schemas.objects import ObjectOut
from objstore.infra.storage.client import (
    ObjectInfo,
    ObjectNotFoundError,
    StorageInitError,
    TransferError,
)
from objstore.infra.storage.objects import StoredObject
from objstore.infra.storage.provider import StoreProvider

router = APIRouter()


def _open_object(store: StoreProvider, key: str) -> StoredObject:
    try:
        return store.new_object(key)
    except StorageInitError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "error_code": "storage_unavailable"},
        ) from exc


@router.put(
    "/objects/{key:path}",
    response_model=ObjectOut,
    status_code=status.HTTP_201_CREATED,
    summary="Write object",
    description="Upload the request body under the key, replacing any existing object.",
)
async def write_object(
    key: str,
    request: Request,
    store: StoreProvider = Depends(get_store),
) -> ObjectOut:
    data = await request.body()
    obj = await run_in_threadpool(_open_object, store, key)
    try:
        await run_in_threadpool(obj.write, data)
    except TransferError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": str(exc), "error_code": "storage_transfer_failed"},
        ) from exc
    return ObjectOut.model_validate(ObjectInfo(key=obj.file_name, size_bytes=len(data)))


@router.get(
    "/objects/{key:path}",
    response_class=Response,
    summary="Read object",
    description="Download the full object stored under the key.",
)
async def read_object(
    key: str,
    store: StoreProvider = Depends(get_store),
) -> Response:
    obj = await run_in_threadpool(_open_object, store, key)
    try:
        data = await run_in_threadpool(obj.read)
    except ObjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(exc), "error_code": "object_not_found"},
        ) from exc
    except TransferError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": str(exc), "error_code": "storage_transfer_failed"},
        ) from exc
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)


@router.head(
    "/objects/{key:path}",
    summary="Check object",
    description="200 if the key can be found, 404 otherwise.",
)
async def object_exists(
    key: str,
    store: StoreProvider = Depends(get_store),
) -> Response:
    obj = await run_in_threadpool(_open_object, store, key)
    found = await run_in_threadpool(obj.exists)
    return Response(
        status_code=status.HTTP_200_OK if found else status.HTTP_404_NOT_FOUND
    )
