"""
Crop job lifecycle: ingest -> pending -> approved -> deleted, or pending -> rejected.

The manager is the only writer of crop job state. Store transitions are
committed first under the store lock; file cleanup runs afterwards, outside
the lock, by whichever caller won the transition. A cleanup failure never
rolls the transition back, it is raised as CleanupFailureError instead.
"""
import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from crop_review.clients.interfaces import IImageTransformer, TransformResult
from crop_review.clients.pillow_transformer import PillowImageTransformer
from crop_review.config import settings
from crop_review.models.jobs import CropJob, Dimensions, JobState, ResizeSpec
from crop_review.services import crop_policy
from crop_review.services.job_store import JobStore
from crop_review.utils.errors import CleanupFailureError, NotFoundError, StorageFailureError
from crop_review.utils.logging import trace_calls

logger = logging.getLogger("crop_review")

DERIVED_SUFFIX = ".jpg"
DERIVED_PREFIX = "cropped-"


class CropLifecycleManager:
    """Owns the job store and the upload/cropped directories for the process lifetime."""

    def __init__(
        self,
        upload_dir: Union[str, Path],
        cropped_dir: Union[str, Path],
        transformer: Optional[IImageTransformer] = None,
        store: Optional[JobStore] = None,
    ):
        """
        Initialize the lifecycle manager.

        Args:
            upload_dir: Directory for original uploads
            cropped_dir: Directory for derived images
            transformer: Image transformer (defaults to PillowImageTransformer)
            store: Job store (defaults to a new empty JobStore)
        """
        self.upload_dir = Path(upload_dir)
        self.cropped_dir = Path(cropped_dir)
        self._transformer = transformer or PillowImageTransformer()
        self._store = store or JobStore()

    @classmethod
    def from_settings(cls) -> "CropLifecycleManager":
        """Build a manager from the current application settings."""
        return cls(upload_dir=settings.UPLOAD_DIR, cropped_dir=settings.CROPPED_DIR)

    def ensure_directories(self) -> None:
        """Create the upload and cropped directories if missing."""
        for directory in (self.upload_dir, self.cropped_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    @trace_calls
    async def ingest(
        self,
        data: bytes,
        original_name: str,
        crop_type: Optional[str],
        custom_width: Union[str, int, None] = None,
        custom_height: Union[str, int, None] = None,
    ) -> CropJob:
        """
        Transform an upload and register it as a pending crop job.

        Args:
            data: Uploaded image bytes
            original_name: Client-declared filename (display only)
            crop_type: Preset name or "custom"
            custom_width: Width for "custom"
            custom_height: Height for "custom"

        Returns:
            The new pending CropJob

        Raises:
            InvalidCropSpecError: Crop type/dimensions invalid (nothing written)
            DecodeFailureError: Upload could not be decoded
            UnsupportedFormatError: Upload encoding not supported
            StorageFailureError: Upload or derived image could not be written
        """
        spec = crop_policy.resolve(crop_type, custom_width, custom_height)

        job_id = str(uuid.uuid4())
        source_path = self.upload_dir / self._source_file_name(job_id, original_name)
        derived_path = self.cropped_dir / f"{DERIVED_PREFIX}{job_id}{DERIVED_SUFFIX}"

        # Transformation runs in a worker thread and never holds the store lock
        result = await asyncio.to_thread(
            self._materialize, data, spec, source_path, derived_path
        )

        job = CropJob(
            id=job_id,
            state=JobState.PENDING,
            createdAt=datetime.now(timezone.utc),
            cropKind=crop_type,
            fitMode=spec.fit,
            targetDimensions=Dimensions(width=spec.width, height=spec.height),
            sourceDimensions=result.source_dimensions,
            originalName=original_name,
            sourcePath=str(source_path),
            derivedPath=str(result.derived_path),
        )
        self._store.insert(job)
        logger.info(
            f"CropIngested job={job_id} kind={crop_type} "
            f"target={spec.width}x{spec.height} fit={spec.fit.value} "
            f"source={result.source_dimensions.width}x{result.source_dimensions.height} "
            f"bytes={len(data)}"
        )
        return job

    def _materialize(
        self, data: bytes, spec: ResizeSpec, source_path: Path, derived_path: Path
    ) -> TransformResult:
        """Persist the upload and run the transformer; remove both files on any failure."""
        try:
            with open(source_path, "wb") as f:
                f.write(data)
        except OSError as e:
            source_path.unlink(missing_ok=True)
            logger.error(f"Failed to save uploaded file: {e}", exc_info=True)
            raise StorageFailureError(
                "Failed to save uploaded file", details={"reason": str(e)}
            ) from e

        try:
            return self._transformer.transform(source_path, spec, derived_path)
        except Exception as e:
            logger.warning(
                f"CropTransformFailed source={source_path.name} error={type(e).__name__}"
            )
            for path in (source_path, derived_path):
                try:
                    path.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.warning(f"CleanupFailed path={path} error={cleanup_error}")
            raise

    @staticmethod
    def _source_file_name(job_id: str, original_name: str) -> str:
        """Generated upload name; only an allow-listed extension is taken from the client name."""
        suffix = Path(original_name or "").suffix.lower()
        if suffix not in settings.ALLOWED_EXTENSIONS:
            suffix = ""
        return f"{int(time.time() * 1000)}-{job_id}{suffix}"

    # ------------------------------------------------------------------
    # Review actions
    # ------------------------------------------------------------------

    @trace_calls
    def approve(self, job_id: str) -> CropJob:
        """
        Approve a pending job and discard its original upload.

        Raises:
            NotFoundError: No pending job with this id
            CleanupFailureError: Approved, but the original could not be deleted
        """
        job = self._store.approve(job_id)
        if job is None:
            raise NotFoundError("Crop not found", job_id=job_id)
        logger.info(f"CropApproved job={job_id} approvedAt={job.approvedAt.isoformat()}")
        self._cleanup(job_id, "approve", [job.sourcePath])
        return job

    @trace_calls
    def reject(self, job_id: str) -> CropJob:
        """
        Reject a pending job, removing the record and both of its files.

        Raises:
            NotFoundError: No pending job with this id
            CleanupFailureError: Rejected, but a file could not be deleted
        """
        job = self._store.remove(job_id, JobState.PENDING)
        if job is None:
            raise NotFoundError("Crop not found", job_id=job_id)
        logger.info(f"CropRejected job={job_id}")
        self._cleanup(job_id, "reject", [job.sourcePath, job.derivedPath])
        return job

    @trace_calls
    def delete(self, job_id: str) -> CropJob:
        """
        Delete an approved job and its derived image.

        Raises:
            NotFoundError: No approved job with this id
            CleanupFailureError: Deleted, but the derived image could not be removed
        """
        job = self._store.remove(job_id, JobState.APPROVED)
        if job is None:
            raise NotFoundError("Approved crop not found", job_id=job_id)
        logger.info(f"CropDeleted job={job_id}")
        self._cleanup(job_id, "delete", [job.derivedPath])
        return job

    def _cleanup(self, job_id: str, action: str, paths: Iterable[str]) -> None:
        """Attempt every removal, then raise once if any failed."""
        failed: List[str] = []
        for path in paths:
            try:
                Path(path).unlink()
            except OSError as e:
                failed.append(path)
                logger.warning(
                    f"CleanupFailed job={job_id} action={action} path={path} "
                    f"error={type(e).__name__} message={e}"
                )
        if failed:
            raise CleanupFailureError(job_id=job_id, action=action, failed_paths=failed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, job_id: str) -> CropJob:
        """
        Get a live job by id.

        Raises:
            NotFoundError: Unknown or removed id
        """
        job = self._store.get(job_id)
        if job is None:
            raise NotFoundError("Crop not found", job_id=job_id)
        return job

    def list_pending(self) -> List[CropJob]:
        """Snapshot of pending jobs in creation order."""
        return self._store.list_jobs(JobState.PENDING)

    def list_approved(self) -> List[CropJob]:
        """Snapshot of approved jobs in creation order."""
        return self._store.list_jobs(JobState.APPROVED)

    def counts(self) -> Dict[str, int]:
        """Number of live jobs per state."""
        return self._store.count()

    def derived_file(self, file_name: str) -> Optional[Path]:
        """
        Resolve a derived image name to the file of a live job.

        Only names of the form cropped-<id>.jpg whose job is still in the store
        resolve; files of removed jobs, temp files and anything else return None.
        """
        if not (file_name.startswith(DERIVED_PREFIX) and file_name.endswith(DERIVED_SUFFIX)):
            return None
        job_id = file_name[len(DERIVED_PREFIX):-len(DERIVED_SUFFIX)]
        job = self._store.get(job_id) if job_id else None
        if job is None or Path(job.derivedPath).name != file_name:
            return None
        path = Path(job.derivedPath)
        return path if path.is_file() else None
