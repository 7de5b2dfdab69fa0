"""
Import Pipeline Module.

Runs one file through the complete import flow:

    1. Validation and content hash
    2. Duplicate resolution (orphans are reprocessed as new)
    3. Document-type sniffing and template resolution
    4. Field extraction (PDF regions, Excel cells or generic text)
    5. Classification (company match, missing fields, duplicates)
    6. Storage, business document, file record

Each file is attempted exactly once and the outcome is idempotent per
content hash; retrying is the worker's decision. Terminal failures
(unreadable file, missing template, storage failure) discard the temp
file and produce a failure result without touching the file record.

Usage:
    from docintake.jobs import ImportPipeline, ImportJob

    pipeline = ImportPipeline(DatabaseHandler())
    result = pipeline.process(ImportJob(file_path="/tmp/up-1", original_name="inv.pdf"))

Author: Finance Platform Team
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import DocIntakeError, TransientError
from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry
from docintake.fields.resolver import FieldNameResolver
from docintake.dedup.hasher import compute_content_hash
from docintake.dedup.resolver import DuplicateCheck, DuplicateResolver
from docintake.input_handler.handler import FORMAT_PDF, IncomingFile, InputHandler
from docintake.input_handler.pdf_processor import PDFProcessor
from docintake.templates.generic import GenericTextExtractor
from docintake.templates.resolver import TemplateResolver
from docintake.templates.sniffer import DOCUMENT_INVOICE, DocumentTypeSniffer
from docintake.extraction.extraction_result import ExtractionResult
from docintake.extraction.extractor import RegionExtractor
from docintake.extraction.excel_extractor import ExcelCellExtractor
from docintake.postprocessor.normalizers import is_blank, normalize_document_type
from docintake.classification.classifier import Classification, Classifier
from docintake.classification.documents import BusinessDocumentWriter
from docintake.classification.retention import RetentionPolicy
from docintake.storage.router import StoragePlan, StorageRouter
from docintake.store.database_handler import DatabaseHandler
from docintake.store.recorder import ImportOutcome, OutcomeRecorder
from docintake.session.notifications import NotificationDispatcher
from .job import ImportJob, JobResult

# Initialize module logger
logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class _Extraction:
    values: Dict[str, Any]
    parsed_data: Optional[Dict[str, Any]]
    method: Optional[str]
    early_exit: bool = False
    document_type: Optional[str] = None


class ImportPipeline:
    """
    Single-attempt import of one file.

    Attributes:
        database: Database handler providing sessions.
        notifications: Receives duplicate events.
        registry: Standard field registry shared by every stage.

    Example:
        >>> pipeline = ImportPipeline(DatabaseHandler())
        >>> result = pipeline.process(job, progress_callback=print)
        10
        20
        ...
        >>> result.status
        'parsed'
    """

    def __init__(
        self,
        database: DatabaseHandler,
        notifications: Optional[NotificationDispatcher] = None,
        registry: FieldRegistry = DEFAULT_REGISTRY,
        retention_policy: Optional[RetentionPolicy] = None,
        pdf_processor: Optional[PDFProcessor] = None
    ) -> None:
        self.database = database
        self.notifications = notifications or NotificationDispatcher()
        self.registry = registry
        self.field_resolver = FieldNameResolver(registry)
        self.retention_policy = retention_policy
        self.input_handler = InputHandler()
        self.pdf_processor = pdf_processor or PDFProcessor()
        self.sniffer = DocumentTypeSniffer()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def process(self, job: ImportJob, progress_callback: Optional[ProgressCallback] = None) -> JobResult:
        """
        Import one file.

        Args:
            job: File to import.
            progress_callback: Called with 10, 20, ... 100 as stages finish.

        Returns:
            JobResult; ``success`` is False for terminal failures.

        Raises:
            TransientError, sqlalchemy OperationalError, OSError: Retryable
                failures; the temp file is kept for the next attempt.
        """
        start_time = time.time()
        progress = progress_callback or (lambda value: None)
        router = StorageRouter(import_id=job.import_id)
        prefix = import_prefix(job.import_id)

        logger.info(f"{prefix}Processing {job.display_name}")
        progress(10)

        stored: Dict[str, Any] = {}
        try:
            with self.database.session_scope() as session:
                result, duplicate = self._run(session, job, router, progress, stored)
        except TransientError:
            self._undo_copy(router, stored)
            raise
        except DocIntakeError as e:
            self._undo_copy(router, stored)
            router.discard(job.file_path)
            logger.error(f"{prefix}Import of {job.display_name} failed: {e}")
            return JobResult.failure(job, e.message, time.time() - start_time)
        except Exception:
            self._undo_copy(router, stored)
            raise

        router.discard(job.file_path)
        if duplicate is not None:
            self.notifications.duplicate_detected(
                job.import_id,
                job.display_name,
                duplicate.record.file_hash,
                duplicate.duplicate_file_id,
                original_file_name=duplicate.original_file_name,
            )

        result.processing_time = time.time() - start_time
        progress(100)
        logger.info(
            f"{prefix}Imported {job.display_name}: status={result.status}, "
            f"company={result.company_id}, document={result.document_id} "
            f"({result.processing_time:.2f}s)"
        )
        return result

    # =========================================================================
    # STAGES
    # =========================================================================

    def _run(
        self,
        session,
        job: ImportJob,
        router: StorageRouter,
        progress: ProgressCallback,
        stored: Dict[str, Any]
    ) -> Tuple[JobResult, Optional[DuplicateCheck]]:
        incoming = self.input_handler.prepare(
            job.file_path,
            original_name=job.original_name,
            file_name=job.file_name,
            import_id=job.import_id,
            user_id=job.user_id,
        )
        content_hash = job.precomputed_hash or compute_content_hash(incoming.path)
        progress(20)

        check = DuplicateResolver(import_id=job.import_id).resolve(
            session, content_hash, job.precomputed_duplicate_info
        )
        progress(30)

        classifier = Classifier(import_id=job.import_id)
        if check.is_duplicate:
            extraction = self._reuse_previous(check)
            fallback_type = self._duplicate_type(job, check)
            classification = classifier.classify(
                session, extraction.values, is_duplicate=True, document_type=fallback_type
            )
            progress(80)
        else:
            extraction = self._extract(session, incoming, job, progress)
            progress(60)
            progress(70)
            classification = classifier.classify(
                session,
                extraction.values,
                early_exit=extraction.early_exit,
                document_type=job.document_type_hint or extraction.document_type,
            )
            progress(80)

        plan = router.plan(incoming.original_name, classification.document_type, classification.is_allocated)
        router.store(plan, incoming.path, remove_source=False)
        stored["path"] = plan.path
        progress(90)

        writer = BusinessDocumentWriter(policy=self.retention_policy, import_id=job.import_id)
        document = writer.create(
            session,
            classification,
            extraction.values,
            content_hash=content_hash,
            file_url=str(plan.path),
            file_name=incoming.display_name,
            processing_method=extraction.method,
            parsed_data=extraction.parsed_data,
            record=check.record,
        )

        outcome = self._outcome(job, incoming, content_hash, check, classification, extraction, plan, document)
        record = OutcomeRecorder(import_id=job.import_id).record(session, outcome)
        session.flush()

        result = JobResult(
            success=True,
            file_name=incoming.display_name,
            file_id=record.id,
            document_id=document.id if document is not None else None,
            company_id=classification.company_id if classification.is_allocated else None,
            status=classification.status,
            document_type=classification.document_type,
            is_duplicate=classification.is_duplicate,
            duplicate_file_id=check.duplicate_file_id,
        )
        return result, (check if check.is_duplicate else None)

    def _extract(
        self,
        session,
        incoming: IncomingFile,
        job: ImportJob,
        progress: ProgressCallback
    ) -> _Extraction:
        """Resolve a template and extract fields."""
        templates = TemplateResolver(import_id=job.import_id)

        if incoming.file_format == FORMAT_PDF:
            with self.pdf_processor.open(incoming.path) as pdf:
                text = pdf.full_text()
                document_type = normalize_document_type(job.document_type_hint) \
                    if job.document_type_hint else self.sniffer.sniff(text)
                match = templates.resolve(session, FORMAT_PDF, document_type)
                progress(40)

                if match.fallback:
                    result = GenericTextExtractor(self.registry).extract(text, pdf.page_count)
                else:
                    extractor = RegionExtractor(self.registry, self.field_resolver, import_id=job.import_id)
                    result = extractor.extract(match.template, pdf)
                    result.full_text = text
        else:
            document_type = normalize_document_type(job.document_type_hint or DOCUMENT_INVOICE)
            match = templates.resolve(session, incoming.file_format, document_type)
            progress(40)
            extractor = ExcelCellExtractor(self.registry, self.field_resolver, import_id=job.import_id)
            result = extractor.extract(match.template, incoming.path)

        # the matched template decides the type when no documentType was read
        if match.template is not None and not is_blank(match.template.template_type):
            document_type = match.template.template_type
        return self._from_result(result, match.method, document_type)

    @staticmethod
    def _from_result(result: ExtractionResult, method: str, document_type: Optional[str] = None) -> _Extraction:
        return _Extraction(
            values=dict(result.fields),
            parsed_data=result.to_dict(),
            method=method,
            early_exit=result.early_exit,
            document_type=document_type,
        )

    def _reuse_previous(self, check: DuplicateCheck) -> _Extraction:
        """Values of the original import; duplicates are never re-extracted."""
        record = check.record
        parsed = record.parsed_data or {}
        values = {name: value for name, value in parsed.items() if name in self.registry}
        return _Extraction(values=values, parsed_data=record.parsed_data, method=record.processing_method)

    @staticmethod
    def _duplicate_type(job: ImportJob, check: DuplicateCheck) -> str:
        if check.linked_document:
            return check.linked_document[0]
        if not is_blank(job.document_type_hint):
            return normalize_document_type(job.document_type_hint)
        return DOCUMENT_INVOICE

    def _outcome(
        self,
        job: ImportJob,
        incoming: IncomingFile,
        content_hash: str,
        check: DuplicateCheck,
        classification: Classification,
        extraction: _Extraction,
        plan: StoragePlan,
        document
    ) -> ImportOutcome:
        return ImportOutcome(
            content_hash=content_hash,
            file_name=incoming.display_name,
            storage_path=str(plan.path),
            status=classification.status,
            failure_reason=classification.failure_reason,
            specific_reason=classification.specific_reason,
            file_size=incoming.size,
            file_type=classification.document_type,
            processing_method=extraction.method,
            parsed_data=extraction.parsed_data,
            company_id=classification.company_id if classification.is_allocated else None,
            user_id=job.user_id,
            import_id=job.import_id,
            document_id=document.id if document is not None else None,
            document_type=classification.document_type,
            status_folder=plan.status_folder,
            doc_type_folder=plan.doc_type_folder,
            is_duplicate=classification.is_duplicate,
            duplicate_file_id=check.duplicate_file_id,
            duplicate_number=classification.duplicate_number,
            missing_fields=classification.missing_fields,
        )

    @staticmethod
    def _undo_copy(router: StorageRouter, stored: Dict[str, Any]) -> None:
        if stored.get("path") is not None:
            router.discard(stored["path"])


__all__ = ['ImportPipeline', 'ProgressCallback']
