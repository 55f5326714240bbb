"""
Pydantic models for API request/response schemas and internal crop job representation.
"""
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# URL prefix under which derived images are served as static files
DERIVED_URL_PREFIX = "cropped"


class FitMode(str, Enum):
    """How the source aspect ratio is reconciled with the target box."""

    COVER = "cover"  # fill the box, crop overflow, center-anchored
    BOUNDED = "bounded"  # fit inside the box, no cropping


class JobState(str, Enum):
    """Crop job state. Rejected and deleted jobs are removed, not stored."""

    PENDING = "pending"
    APPROVED = "approved"


class Dimensions(BaseModel):
    """Width/height pair in pixels."""

    width: int
    height: int


class ResizeSpec(BaseModel):
    """Concrete resize parameters resolved from a crop kind."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    fit: FitMode


class ErrorInfo(BaseModel):
    """Error information in API error envelopes."""

    code: str
    message: str
    retryable: bool = False
    details: Optional[dict] = None


class UploadResponse(BaseModel):
    """Response for POST /upload."""

    success: bool = True
    cropId: str
    message: str


class ActionResponse(BaseModel):
    """Response for approve/reject/delete actions."""

    success: bool = True
    message: str


class PresetView(BaseModel):
    """A named crop preset as exposed to clients."""

    cropType: str
    width: int
    height: int
    fit: FitMode


class PendingCropView(BaseModel):
    """Record shape for GET /api/pending."""

    id: str
    originalName: str
    cropType: str
    dimensions: Dimensions
    originalDimensions: Dimensions
    createdAt: datetime
    croppedPath: str


class ApprovedCropView(PendingCropView):
    """Record shape for GET /api/approved."""

    approvedAt: datetime


class CropDetailView(PendingCropView):
    """Record shape for GET /api/crops/{id}."""

    state: JobState
    approvedAt: Optional[datetime] = None


# Internal job model (not exposed directly in API)
class CropJob(BaseModel):
    """Internal representation of a crop job."""

    id: str
    state: JobState = JobState.PENDING
    createdAt: datetime
    approvedAt: Optional[datetime] = None
    cropKind: str
    fitMode: FitMode
    targetDimensions: Dimensions
    sourceDimensions: Dimensions
    originalName: str
    # Internal fields
    sourcePath: str
    derivedPath: str

    @property
    def cropped_url_path(self) -> str:
        """Relative URL path of the derived image, e.g. ``cropped/<file>.jpg``."""
        return f"{DERIVED_URL_PREFIX}/{Path(self.derivedPath).name}"

    def to_pending_view(self) -> PendingCropView:
        """Convert internal job to the pending listing format."""
        return PendingCropView(
            id=self.id,
            originalName=self.originalName,
            cropType=self.cropKind,
            dimensions=self.targetDimensions,
            originalDimensions=self.sourceDimensions,
            createdAt=self.createdAt,
            croppedPath=self.cropped_url_path,
        )

    def to_approved_view(self) -> ApprovedCropView:
        """Convert internal job to the approved listing format."""
        if self.approvedAt is None:
            raise ValueError(f"Crop job {self.id} has not been approved")
        return ApprovedCropView(
            **self.to_pending_view().model_dump(),
            approvedAt=self.approvedAt,
        )

    def to_detail_view(self) -> CropDetailView:
        """Convert internal job to the single-record format."""
        return CropDetailView(
            **self.to_pending_view().model_dump(),
            state=self.state,
            approvedAt=self.approvedAt,
        )
