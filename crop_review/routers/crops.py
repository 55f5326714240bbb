"""
Crop upload, review and download endpoints.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse

from crop_review.config import settings
from crop_review.dependencies import get_lifecycle_manager
from crop_review.models.jobs import (
    DERIVED_URL_PREFIX,
    ActionResponse,
    ApprovedCropView,
    CropDetailView,
    PendingCropView,
    PresetView,
    UploadResponse,
)
from crop_review.services import crop_policy
from crop_review.services.lifecycle import CropLifecycleManager
from crop_review.utils.errors import APIError, ErrorCodes, NotFoundError

logger = logging.getLogger("crop_review")

router = APIRouter(tags=["crops"])

UPLOAD_CHUNK_BYTES = 8192


def _validate_file(image: Optional[UploadFile]) -> UploadFile:
    """
    Validate uploaded file.

    Args:
        image: Uploaded file, if any

    Returns:
        The upload, known to be present and of an allowed type

    Raises:
        APIError: If file is missing or of a disallowed type
    """
    if image is None or not image.filename:
        raise APIError(
            code=ErrorCodes.INVALID_INPUT,
            message="No image file uploaded",
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    if image.content_type not in settings.ALLOWED_MIME_TYPES:
        raise APIError(
            code=ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
            message="Invalid file type. Only JPEG, PNG, WebP, and TIFF are allowed.",
            http_status=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            details={"contentType": image.content_type},
        )
    return image


async def _read_upload(image: UploadFile) -> bytes:
    """
    Read the upload in chunks, enforcing the size limit.

    Raises:
        APIError: If the file exceeds MAX_UPLOAD_MB
    """
    chunks = []
    size = 0
    while chunk := await image.read(UPLOAD_CHUNK_BYTES):
        size += len(chunk)
        if size > settings.MAX_UPLOAD_SIZE_BYTES:
            raise APIError(
                code=ErrorCodes.PAYLOAD_TOO_LARGE,
                message=f"File too large. Maximum size is {settings.MAX_UPLOAD_MB}MB.",
                http_status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    cropType: Optional[str] = Form(None),
    customWidth: Optional[str] = Form(None),
    customHeight: Optional[str] = Form(None),
    manager: CropLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Upload an image, crop it and queue the result for review.

    Args:
        image: Image file (JPEG, PNG, WebP or TIFF)
        cropType: Preset name or "custom"
        customWidth: Target width for "custom"
        customHeight: Target height for "custom"

    Returns:
        UploadResponse with the new crop id
    """
    try:
        upload = _validate_file(image)
        data = await _read_upload(upload)
        job = await manager.ingest(
            data,
            original_name=upload.filename,
            crop_type=cropType,
            custom_width=customWidth,
            custom_height=customHeight,
        )
        return UploadResponse(
            cropId=job.id,
            message="Image cropped successfully and pending approval",
        )

    except APIError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error processing upload: {e}", exc_info=True)
        raise APIError(
            code=ErrorCodes.INTERNAL_ERROR,
            message="Failed to process image.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


@router.get("/api/presets", response_model=List[PresetView])
async def list_presets():
    """List the fixed crop presets."""
    return crop_policy.list_presets()


@router.get("/api/pending", response_model=List[PendingCropView])
def list_pending(manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Snapshot of crops awaiting review."""
    return [job.to_pending_view() for job in manager.list_pending()]


@router.get("/api/approved", response_model=List[ApprovedCropView])
def list_approved(manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Snapshot of approved crops."""
    return [job.to_approved_view() for job in manager.list_approved()]


@router.get("/api/crops/{crop_id}", response_model=CropDetailView)
def get_crop(crop_id: str, manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Get a single live crop by id."""
    return manager.get(crop_id).to_detail_view()


@router.post("/api/approve/{crop_id}", response_model=ActionResponse)
def approve_crop(crop_id: str, manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Approve a pending crop; its original upload is discarded."""
    manager.approve(crop_id)
    return ActionResponse(message="Crop approved successfully")


@router.post("/api/reject/{crop_id}", response_model=ActionResponse)
def reject_crop(crop_id: str, manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Reject a pending crop and remove all of its files."""
    manager.reject(crop_id)
    return ActionResponse(message="Crop rejected and files cleaned up")


@router.delete("/api/delete/{crop_id}", response_model=ActionResponse)
def delete_crop(crop_id: str, manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Delete an approved crop and its derived image."""
    manager.delete(crop_id)
    return ActionResponse(message="Approved crop deleted successfully")


@router.get(f"/{DERIVED_URL_PREFIX}/{{file_name}}")
def download_cropped(file_name: str, manager: CropLifecycleManager = Depends(get_lifecycle_manager)):
    """Serve a derived image."""
    path = manager.derived_file(file_name)
    if path is None:
        raise NotFoundError("Cropped image not found")
    return FileResponse(path, media_type="image/jpeg")
