"""
Uploads API

Image uploads to the public storage buckets (project images and avatars).
Each upload is a single request; there is no chunking or resume.
"""

import logging
import re
import secrets

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.storage_client import BUCKETS, StorageClient, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
SAFE_EXTENSION = re.compile(r"[a-z0-9]{1,5}")


class UploadResponse(BaseModel):
    """Stored image"""
    url: str
    path: str


def storage_client() -> StorageClient:
    return StorageClient()


def make_object_name(filename: str) -> str:
    """Random object name that keeps the original extension when it is a plain one."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not SAFE_EXTENSION.fullmatch(ext):
        ext = "bin"
    return f"{secrets.token_hex(8)}.{ext}"


@router.post("/uploads/{bucket}", response_model=UploadResponse)
async def upload_image(
    bucket: str,
    user: AuthorizedUser,
    file: UploadFile = File(...),
    storage: StorageClient = Depends(storage_client),
):
    """
    Upload an image and return its public URL.

    Args:
        bucket: 'project-images' or 'user-avatars'
        file: Image file, at most 5MB
    """
    if bucket not in BUCKETS:
        raise HTTPException(status_code=404, detail=f'Storage bucket "{bucket}" not found')

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file")

    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size must be less than 5MB")

    path = make_object_name(file.filename or "")
    try:
        url = await storage.upload(bucket, path, data, content_type)
    except StorageError as e:
        logger.error(f"Upload to {bucket} failed for user {user.sub}: {e.message}")
        raise HTTPException(status_code=e.status_code if e.status_code and e.status_code < 500 else 502, detail=e.message)

    return UploadResponse(url=url, path=path)
