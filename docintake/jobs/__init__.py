"""
Jobs Module.

Import jobs, the single-attempt pipeline and the retrying worker.
"""

from .job import ImportJob, JobResult
from .pipeline import ImportPipeline
from .worker import ImportWorker, WorkerConfig, DeadLetter

__all__ = [
    'ImportJob',
    'JobResult',
    'ImportPipeline',
    'ImportWorker',
    'WorkerConfig',
    'DeadLetter',
]
