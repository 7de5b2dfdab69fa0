"""Tests for storage routing."""

from datetime import datetime

import pytest

from docintake.storage.router import StorageRouter
from docintake.utils.exceptions import StorageError
from docintake.utils.helpers import sanitize_filename, unique_filename

NOW = datetime(2025, 6, 1, 14, 5)


@pytest.fixture
def router(tmp_path) -> StorageRouter:
    return StorageRouter(root=tmp_path / "storage", import_id="imp-1")


@pytest.fixture
def upload(tmp_path):
    path = tmp_path / "upload-1"
    path.write_bytes(b"%PDF-1.4 test")
    return path


class TestStoragePlan:
    """Tests for StorageRouter.plan."""

    def test_allocated_goes_to_processed_tree(self, router: StorageRouter, tmp_path) -> None:
        plan = router.plan("Inv 1001.pdf", "invoice", allocated=True, now=NOW)

        assert plan.path == tmp_path / "storage" / "processed" / "invoices" / "2025" / "06" / "01" / "Inv 1001.pdf"
        assert plan.status_folder == "processed"
        assert plan.doc_type_folder == "invoices"

    @pytest.mark.parametrize("document_type, folder", [
        ("credit_note", "creditnotes"),
        ("statement", "statements"),
        (None, "invoices"),
    ])
    def test_type_folders(self, router: StorageRouter, document_type, folder: str) -> None:
        assert router.plan("a.pdf", document_type, allocated=True, now=NOW).doc_type_folder == folder

    def test_unallocated_goes_to_dated_failed_folder(self, router: StorageRouter, tmp_path) -> None:
        plan = router.plan("a.pdf", "invoice", allocated=False, now=NOW)

        assert plan.directory == tmp_path / "storage" / "unprocessed" / "failed" / "2025-06-01"
        assert plan.status_folder == "unprocessed"
        assert plan.doc_type_folder is None

    def test_name_is_sanitized(self, router: StorageRouter) -> None:
        assert router.plan("uploads/inv:1?.pdf", "invoice", True, now=NOW).filename == "inv_1_.pdf"

    def test_to_dict(self, router: StorageRouter) -> None:
        data = router.plan("a.pdf", "invoice", allocated=False, now=NOW).to_dict()
        assert data["statusFolder"] == "unprocessed"
        assert data["storagePath"].endswith("a.pdf")


class TestStore:
    """Tests for StorageRouter.store and discard."""

    def test_store_copies_and_removes_source(self, router: StorageRouter, upload) -> None:
        plan = router.plan("name.pdf", "invoice", allocated=True, now=NOW)

        stored = router.store(plan, upload)

        assert stored.read_bytes() == b"%PDF-1.4 test"
        assert not upload.exists()

    def test_store_can_keep_source(self, router: StorageRouter, upload) -> None:
        plan = router.plan("name.pdf", "invoice", allocated=True, now=NOW)
        router.store(plan, upload, remove_source=False)
        assert upload.exists()

    def test_collisions_get_numeric_suffix(self, router: StorageRouter, upload, tmp_path) -> None:
        first = router.store(router.plan("name.pdf", "invoice", True, now=NOW), upload, remove_source=False)
        second = router.store(router.plan("name.pdf", "invoice", True, now=NOW), upload, remove_source=False)
        third = router.store(router.plan("name.pdf", "invoice", True, now=NOW), upload)

        assert [first.name, second.name, third.name] == ["name.pdf", "name_1.pdf", "name_2.pdf"]

    def test_name_probed_again_before_copy(self, router: StorageRouter, upload) -> None:
        plan = router.plan("name.pdf", "invoice", True, now=NOW)
        plan.directory.mkdir(parents=True)
        (plan.directory / "name.pdf").write_bytes(b"arrived after planning")

        stored = router.store(plan, upload)

        assert stored.name == "name_1.pdf"
        assert (plan.directory / "name.pdf").read_bytes() == b"arrived after planning"

    def test_failed_copy_raises_and_discards_source(self, router: StorageRouter, upload, tmp_path) -> None:
        plan = router.plan("name.pdf", "invoice", True, now=NOW)
        blocker = tmp_path / "storage"
        blocker.write_bytes(b"a file where the storage root should be")

        with pytest.raises(StorageError):
            router.store(plan, upload)
        assert not upload.exists()

    def test_discard(self, router: StorageRouter, upload) -> None:
        assert router.discard(upload) is True
        assert router.discard(upload) is False
        assert router.discard(None) is False


class TestFilenameHelpers:
    """Tests for sanitize_filename and unique_filename."""

    def test_sanitize_keeps_basename(self) -> None:
        assert sanitize_filename("C:\\temp\\inv<1>.pdf") == "inv_1_.pdf"
        assert sanitize_filename("") == "unnamed"

    def test_unique_filename(self, tmp_path) -> None:
        (tmp_path / "a.pdf").write_bytes(b"")
        (tmp_path / "a_1.pdf").write_bytes(b"")
        assert unique_filename(tmp_path, "a.pdf") == "a_2.pdf"
        assert unique_filename(tmp_path / "missing", "a.pdf") == "a.pdf"
