from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from folio.config import settings
from folio.core.dependencies import require_editor, require_user
from folio.modules.storage.schemas import (
    BucketResponse, CreateBucketRequest, RemoveRequest, SignedUrlRequest,
    SignedUrlResponse, UploadResponse,
)
from folio.modules.storage.service import StorageService, read_limited
from folio.storage.client import ObjectStorage, get_object_storage

router = APIRouter(prefix="/storage", tags=["storage"])

PUBLIC_CACHE_CONTROL = "public, max-age=31536000, immutable"


def get_storage_service(storage: ObjectStorage = Depends(get_object_storage)) -> StorageService:
    return StorageService(storage)


@router.post("/buckets", response_model=BucketResponse, status_code=201)
async def create_bucket(
    data: CreateBucketRequest,
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    return service.create_bucket(data.name, data.public)


@router.get("/buckets", response_model=List[BucketResponse])
async def list_buckets(
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    return service.list_buckets()


@router.get("/buckets/{bucket_id}", response_model=BucketResponse)
async def get_bucket(
    bucket_id: str,
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    return service.get_bucket(bucket_id)


@router.delete("/buckets/{bucket_id}")
async def delete_bucket(
    bucket_id: str,
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    service.delete_bucket(bucket_id)
    return {"message": "Bucket deleted successfully"}


@router.post("/{bucket}/upload", response_model=UploadResponse, response_model_by_alias=True)
async def upload_file(
    bucket: str,
    file: UploadFile = File(...),
    path: Optional[str] = Form(None),
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    """Upload one file; the object key defaults to the uploaded filename"""
    data = await read_limited(file, settings.max_upload_bytes)
    return service.upload(bucket, path or file.filename or "", data, file.content_type)


@router.get("/{bucket}/download/{path:path}")
async def download_file(
    bucket: str,
    path: str,
    current_user: Dict = Depends(require_user),
    service: StorageService = Depends(get_storage_service),
):
    data, content_type = service.download(bucket, path)
    return Response(content=data, media_type=content_type)


@router.get("/{bucket}/public/{path:path}")
async def public_file(
    bucket: str,
    path: str,
    service: StorageService = Depends(get_storage_service),
):
    """Anonymous read from a public bucket"""
    data, content_type = service.download_public(bucket, path)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": PUBLIC_CACHE_CONTROL},
    )


@router.get("/{bucket}/list")
async def list_files(
    bucket: str,
    path: str = "",
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    return service.list(bucket, path)


@router.delete("/{bucket}/remove")
async def remove_files(
    bucket: str,
    data: RemoveRequest,
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    removed = service.remove(bucket, data.paths)
    return {"removed": removed}


@router.post("/{bucket}/signed-url", response_model=SignedUrlResponse, response_model_by_alias=True)
async def create_signed_url(
    bucket: str,
    data: SignedUrlRequest,
    current_user: Dict = Depends(require_editor),
    service: StorageService = Depends(get_storage_service),
):
    return SignedUrlResponse(signed_url=service.signed_url(bucket, data.path, data.expires_in))
