"""Tests for the import worker: retries, dead letters and cancellation."""

import pytest
from sqlalchemy.exc import OperationalError

from docintake.jobs.job import ImportJob, JobResult
from docintake.jobs.worker import CANCELLED_MESSAGE, ImportWorker, WorkerConfig
from docintake.session.import_store import ImportStore
from docintake.session.notifications import NotificationDispatcher
from docintake.utils.exceptions import TransientError


class ScriptedPipeline:
    """Pipeline double raising the scripted errors before succeeding."""

    def __init__(self, errors=()) -> None:
        self.errors = list(errors)
        self.calls = 0

    def process(self, job, progress_callback=None):
        self.calls += 1
        if progress_callback:
            progress_callback(100)
        if self.errors:
            raise self.errors.pop(0)
        return JobResult(success=True, file_name=job.display_name, file_id=1, company_id=3, status="parsed")


@pytest.fixture
def store() -> ImportStore:
    return ImportStore(NotificationDispatcher(include_logging=False))


@pytest.fixture
def temp_file(tmp_path):
    path = tmp_path / "upload-1"
    path.write_bytes(b"%PDF-1.4")
    return path


def make_worker(pipeline, store, max_retries=3):
    sleeps = []
    config = WorkerConfig(max_workers=2, max_retries=max_retries, retry_delay_base=5.0, retry_delay_max=300.0)
    worker = ImportWorker(pipeline, store, config, sleep=sleeps.append)
    return worker, sleeps


class TestWorkerConfig:
    """Tests for WorkerConfig."""

    def test_backoff(self) -> None:
        config = WorkerConfig(retry_delay_base=5.0, retry_delay_max=300.0)
        assert [config.retry_delay(n) for n in range(8)] == [5.0, 10.0, 20.0, 40.0, 80.0, 160.0, 300.0, 300.0]

    def test_from_config(self, config) -> None:
        config.set("worker.max_retries", 7)
        assert WorkerConfig.from_config().max_retries == 7


class TestImportJob:
    """Tests for ImportJob payloads."""

    def test_payload_round_trip(self) -> None:
        payload = {
            "filePath": "/tmp/up-1",
            "originalName": "inv.pdf",
            "importId": "imp-1",
            "precomputedDuplicateInfo": {"isDuplicate": True, "duplicateFileId": 4},
        }
        job = ImportJob.from_payload(payload)

        assert job.display_name == "inv.pdf"
        assert job.to_payload()["precomputedDuplicateInfo"] == {"isDuplicate": True, "duplicateFileId": 4}

    def test_payload_requires_file_path(self) -> None:
        with pytest.raises(ValueError):
            ImportJob.from_payload({"originalName": "inv.pdf"})


class TestImportWorker:
    """Tests for ImportWorker.run_job and run_batch."""

    def test_success_recorded_on_session(self, store, temp_file) -> None:
        store.create("imp-1", 1)
        worker, sleeps = make_worker(ScriptedPipeline(), store)

        result = worker.run_job(ImportJob(file_path=str(temp_file), original_name="a.pdf", import_id="imp-1"))

        assert result.success is True
        assert sleeps == []
        assert store.get("imp-1").results[0]["fileName"] == "a.pdf"
        assert store.get("imp-1").current_file == "a.pdf"

    def test_transient_errors_are_retried_with_backoff(self, store, temp_file) -> None:
        pipeline = ScriptedPipeline([TransientError("database locked"), OSError("disk busy")])
        worker, sleeps = make_worker(pipeline, store)

        result = worker.run_job(ImportJob(file_path=str(temp_file)))

        assert result.success is True
        assert pipeline.calls == 3
        assert sleeps == [5.0, 10.0]

    def test_operational_error_is_retried(self, store, temp_file) -> None:
        error = OperationalError("INSERT", {}, Exception("database is locked"))
        pipeline = ScriptedPipeline([error])
        worker, sleeps = make_worker(pipeline, store)

        assert worker.run_job(ImportJob(file_path=str(temp_file))).success is True
        assert sleeps == [5.0]

    def test_dead_letter_after_max_retries(self, store, temp_file) -> None:
        pipeline = ScriptedPipeline([TransientError("database locked")] * 5)
        worker, sleeps = make_worker(pipeline, store, max_retries=2)

        result = worker.run_job(ImportJob(file_path=str(temp_file), original_name="a.pdf"))

        assert result.success is False
        assert "3 attempt(s)" in result.error
        assert pipeline.calls == 3
        assert sleeps == [5.0, 10.0]
        assert not temp_file.exists()
        assert worker.dead_letter_summary()[0]["attempts"] == 3

    def test_unexpected_error_is_not_retried(self, store, temp_file) -> None:
        pipeline = ScriptedPipeline([KeyError("parsedData")])
        worker, sleeps = make_worker(pipeline, store)

        result = worker.run_job(ImportJob(file_path=str(temp_file)))

        assert result.success is False
        assert pipeline.calls == 1
        assert sleeps == []
        assert not temp_file.exists()

    def test_cancelled_session_skips_file(self, store, temp_file) -> None:
        store.create("imp-1", 1)
        store.cancel("imp-1")
        pipeline = ScriptedPipeline()
        worker, _ = make_worker(pipeline, store)

        result = worker.run_job(ImportJob(file_path=str(temp_file), import_id="imp-1"))

        assert result.error == CANCELLED_MESSAGE
        assert pipeline.calls == 0
        assert not temp_file.exists()
        assert store.get("imp-1").processed_files == 1

    def test_progress_callback(self, store, temp_file) -> None:
        seen = []
        worker = ImportWorker(
            ScriptedPipeline(), store, WorkerConfig(max_workers=1),
            progress_callback=lambda job, value: seen.append((job.display_name, value)),
        )

        worker.run_job(ImportJob(file_path=str(temp_file), original_name="a.pdf"))

        assert seen == [("a.pdf", 100)]

    def test_run_batch_keeps_job_order(self, store, tmp_path) -> None:
        store.create("imp-1", 3)
        jobs = [ImportJob(file_path=str(tmp_path / f"f{i}"), original_name=f"f{i}.pdf", import_id="imp-1")
                for i in range(3)]
        worker, _ = make_worker(ScriptedPipeline(), store)

        results = worker.run_batch(jobs)

        assert [r.file_name for r in results] == ["f0.pdf", "f1.pdf", "f2.pdf"]
        assert store.get("imp-1").status == "completed"
        assert worker.run_batch([]) == []
