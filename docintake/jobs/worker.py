"""
Import Worker Module.

Runs import jobs on a thread pool, one file per task.

Retry policy:
    Only transient failures are retried: TransientError, SQLAlchemy
    OperationalError (locked or unreachable database) and OSError. The
    delay before attempt ``n`` is ``min(base * 2**n, max)``. A job that
    keeps failing after ``max_retries`` retries is dead-lettered and
    reported as failed.

Cancellation:
    The import session is checked before each file. Files of a cancelled
    session are skipped with a "Cancelled" result and their temp files
    deleted.

Author: Finance Platform Team
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import OperationalError

from config import get_config
from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import JobCancelledError, TransientError
from docintake.session.import_store import ImportStore
from docintake.storage.router import StorageRouter
from .job import ImportJob, JobResult
from .pipeline import ImportPipeline

# Initialize module logger
logger = get_logger(__name__)

RETRYABLE_ERRORS = (TransientError, OperationalError, OSError)

CANCELLED_MESSAGE = "Cancelled"


@dataclass
class WorkerConfig:
    """Thread pool size and retry settings."""
    max_workers: int = 4
    max_retries: int = 3
    retry_delay_base: float = 5.0
    retry_delay_max: float = 300.0

    @classmethod
    def from_config(cls) -> 'WorkerConfig':
        return cls(
            max_workers=int(get_config("worker.max_workers", 4)),
            max_retries=int(get_config("worker.max_retries", 3)),
            retry_delay_base=float(get_config("worker.retry_delay_base", 5.0)),
            retry_delay_max=float(get_config("worker.retry_delay_max", 300.0)),
        )

    def retry_delay(self, attempt: int) -> float:
        """
        Delay before retry number ``attempt`` (0-based).

        Example:
            >>> WorkerConfig(retry_delay_base=5.0, retry_delay_max=300.0).retry_delay(3)
            40.0
        """
        return min(self.retry_delay_base * (2 ** attempt), self.retry_delay_max)


@dataclass
class DeadLetter:
    """A job that exhausted its retries."""
    job: ImportJob
    error: str
    attempts: int
    failed_at: datetime = field(default_factory=datetime.now)


class ImportWorker:
    """
    Executes import jobs with retries and cancellation.

    Every job ends with exactly one result appended to its import session.

    Attributes:
        pipeline: Single-attempt pipeline.
        store: Import session store.
        config: Pool and retry settings.
        dead_letters: Jobs that exhausted their retries.

    Example:
        >>> worker = ImportWorker(pipeline, store)
        >>> results = worker.run_batch(jobs)
        >>> sum(r.success for r in results)
        3
    """

    def __init__(
        self,
        pipeline: ImportPipeline,
        store: ImportStore,
        config: Optional[WorkerConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        progress_callback: Optional[Callable[[ImportJob, int], None]] = None
    ) -> None:
        self.pipeline = pipeline
        self.store = store
        self.config = config or WorkerConfig.from_config()
        self.sleep = sleep
        self.progress_callback = progress_callback
        self.dead_letters: List[DeadLetter] = []

    def run_job(self, job: ImportJob) -> JobResult:
        """Run one job to a final result and record it on its session."""
        prefix = import_prefix(job.import_id)

        try:
            self.ensure_active(job)
        except JobCancelledError:
            logger.info(f"{prefix}Import cancelled, skipping {job.display_name}")
            StorageRouter(import_id=job.import_id).discard(job.file_path)
            result = JobResult.failure(job, CANCELLED_MESSAGE)
        else:
            self.store.update(job.import_id, current_file=job.display_name)
            result = self._run_with_retries(job, prefix)

        if job.import_id:
            self.store.add_result(job.import_id, result.to_dict())
        return result

    def ensure_active(self, job: ImportJob) -> None:
        """
        Raises:
            JobCancelledError: The job's import session was cancelled.
        """
        if self.store.is_cancelled(job.import_id):
            raise JobCancelledError(job.import_id)

    def run_batch(self, jobs: Iterable[ImportJob]) -> List[JobResult]:
        """
        Run jobs on the thread pool.

        Returns:
            Results in job order.
        """
        jobs = list(jobs)
        if not jobs:
            return []

        logger.info(f"Running {len(jobs)} import job(s) on {self.config.max_workers} worker(s)")
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            return list(executor.map(self.run_job, jobs))

    def _run_with_retries(self, job: ImportJob, prefix: str) -> JobResult:
        attempt = 0
        while True:
            try:
                return self.pipeline.process(job, self._progress_for(job))
            except RETRYABLE_ERRORS as e:
                if attempt >= self.config.max_retries:
                    return self._dead_letter(job, e, attempt + 1, prefix)

                delay = self.config.retry_delay(attempt)
                attempt += 1
                logger.warning(
                    f"{prefix}Transient failure on {job.display_name}: {e}; "
                    f"retry {attempt}/{self.config.max_retries} in {delay:.1f}s"
                )
                self.sleep(delay)
            except Exception as e:
                logger.exception(f"{prefix}Unexpected error importing {job.display_name}: {e}")
                StorageRouter(import_id=job.import_id).discard(job.file_path)
                return JobResult.failure(job, str(e) or e.__class__.__name__)

    def _dead_letter(self, job: ImportJob, error: Exception, attempts: int, prefix: str) -> JobResult:
        logger.error(
            f"{prefix}Giving up on {job.display_name} after {attempts} attempt(s): {error}"
        )
        self.dead_letters.append(DeadLetter(job=job, error=str(error), attempts=attempts))
        StorageRouter(import_id=job.import_id).discard(job.file_path)
        return JobResult.failure(job, f"Failed after {attempts} attempt(s): {error}")

    def _progress_for(self, job: ImportJob) -> Optional[Callable[[int], None]]:
        if self.progress_callback is None:
            return None
        return lambda value: self.progress_callback(job, value)

    def dead_letter_summary(self) -> List[Dict[str, object]]:
        return [
            {
                "fileName": letter.job.display_name,
                "importId": letter.job.import_id,
                "error": letter.error,
                "attempts": letter.attempts,
                "failedAt": letter.failed_at.isoformat(),
            }
            for letter in self.dead_letters
        ]


__all__ = ['ImportWorker', 'WorkerConfig', 'DeadLetter', 'RETRYABLE_ERRORS', 'CANCELLED_MESSAGE']
