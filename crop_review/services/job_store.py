"""
In-memory job store for crop jobs.

One keyed record set holds every live job; "pending" and "approved" are views
filtered on the job's state, so a job can never sit in both. Every read and
mutation goes through a single lock.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from crop_review.models.jobs import CropJob, JobState

logger = logging.getLogger("crop_review")


class JobStore:
    """Thread-safe in-memory crop job store."""

    def __init__(self):
        """Initialize an empty job store."""
        self._jobs: Dict[str, CropJob] = {}
        self._lock = threading.Lock()

    def insert(self, job: CropJob) -> None:
        """
        Add a new job.

        Args:
            job: Fully populated CropJob (derived file already written)

        Raises:
            ValueError: If the job id is already present
        """
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Crop job {job.id} already exists")
            self._jobs[job.id] = job.model_copy(deep=True)
        logger.debug(f"JobInserted job={job.id} state={job.state.value}")

    def get(self, job_id: str) -> Optional[CropJob]:
        """
        Get a copy of a job by ID.

        Args:
            job_id: Job identifier

        Returns:
            CropJob if found, None otherwise
        """
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def list_jobs(self, state: Optional[JobState] = None) -> List[CropJob]:
        """
        Snapshot of jobs, optionally filtered by state, in insertion order.

        Returned jobs are copies; later store mutations are not reflected.
        """
        with self._lock:
            return [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if state is None or job.state == state
            ]

    def count(self) -> Dict[str, int]:
        """Number of live jobs per state."""
        with self._lock:
            counts = {state.value: 0 for state in JobState}
            for job in self._jobs.values():
                counts[job.state.value] += 1
            return counts

    def approve(self, job_id: str, approved_at: Optional[datetime] = None) -> Optional[CropJob]:
        """
        Move a pending job to approved.

        Args:
            job_id: Job identifier
            approved_at: Approval timestamp (defaults to now, UTC)

        Returns:
            Copy of the approved job, or None if no pending job has this id
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != JobState.PENDING:
                return None
            job.state = JobState.APPROVED
            job.approvedAt = approved_at or datetime.now(timezone.utc)
            approved = job.model_copy(deep=True)
        logger.debug(f"JobMoved job={job_id} state={JobState.APPROVED.value}")
        return approved

    def remove(self, job_id: str, expected_state: JobState) -> Optional[CropJob]:
        """
        Remove a job if it is currently in the expected state.

        Args:
            job_id: Job identifier
            expected_state: State the job must be in to be removed

        Returns:
            The removed job, or None if absent or in another state
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != expected_state:
                return None
            del self._jobs[job_id]
        logger.debug(f"JobRemoved job={job_id} state={expected_state.value}")
        return job
