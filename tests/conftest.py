"""Test fixtures and utilities."""

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import fitz  # PyMuPDF
import openpyxl
import pytest

from config import ConfigurationManager
from docintake.input_handler.pdf_processor import PageText, TextItem
from docintake.store.database_handler import DatabaseHandler
from docintake.store.models import Company, Template
from docintake.utils.exceptions import RegionError

# A4 in PDF points
PAGE_WIDTH = 595.0
PAGE_HEIGHT = 842.0

# (x, baseline y, text) in points, one standard field per line
INVOICE_LINES = [
    (50, 60, "INVOICE"),
    (50, 100, "ACC-12345"),
    (50, 130, "05/12/25"),
    (50, 160, "INV-1001"),
    (50, 190, "PO-778"),
    (350, 700, "1,234.56"),
    (350, 730, "205.76"),
]


def region(x0: float, y0: float, x1: float, y1: float, page: int = 1) -> Dict:
    """Normalized template region from a rectangle in points."""
    return {
        "normalized": {
            "left": x0 / PAGE_WIDTH,
            "top": y0 / PAGE_HEIGHT,
            "right": x1 / PAGE_WIDTH,
            "bottom": y1 / PAGE_HEIGHT,
            "page": page,
        }
    }


def line_region(x: float, y: float, page: int = 1, width: float = 200) -> Dict:
    """Region around a single line written at (x, y)."""
    return region(x - 10, y - 14, x + width, y + 8, page)


INVOICE_COORDINATES = {
    "ACME_document_type": line_region(50, 60),
    "ACME_account_number": line_region(50, 100),
    "ACME_invoice_date": line_region(50, 130),
    "ACME_invoice_number": line_region(50, 160),
    "ACME_customer_po": line_region(50, 190),
    "ACME_total": line_region(350, 700),
    "ACME_vat_amount": line_region(350, 730),
}


class FakePages:
    """Page source built from (x, y, text) tuples in points."""

    def __init__(self, pages: Sequence[Sequence[Tuple[float, float, str]]]) -> None:
        self.pages = [
            PageText(
                number=index,
                width=PAGE_WIDTH,
                height=PAGE_HEIGHT,
                items=[TextItem(text=text, x=x / PAGE_WIDTH, y=(y + 2) / PAGE_HEIGHT) for x, y, text in lines],
            )
            for index, lines in enumerate(pages, 1)
        ]
        self.requested: List[int] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def get_page(self, number: int) -> PageText:
        if number < 1 or number > len(self.pages):
            raise RegionError("page", number, f"Page {number} does not exist in PDF")
        self.requested.append(number)
        return self.pages[number - 1]


def write_pdf(path: Path, pages: Sequence[Sequence[Tuple[float, float, str]]]) -> Path:
    """Write a text-only PDF with PyMuPDF."""
    document = fitz.open()
    for lines in pages:
        page = document.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        for x, y, text in lines:
            page.insert_text((x, y), text, fontsize=10)
    document.save(str(path))
    document.close()
    return path


def write_workbook(path: Path, sheets: Dict[str, Dict[str, object]]) -> Path:
    """Write an .xlsx with openpyxl; ``sheets`` maps title to {cell: value}."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, cells in sheets.items():
        sheet = workbook.create_sheet(title=title)
        for cell, value in cells.items():
            sheet[cell] = value
    workbook.save(str(path))
    return path


@pytest.fixture(autouse=True)
def config(tmp_path):
    """Fresh configuration with storage, temp and output under tmp_path."""
    ConfigurationManager.reset()
    manager = ConfigurationManager()
    manager.update({
        "paths": {
            "storage_root": str(tmp_path / "storage"),
            "temp_dir": str(tmp_path / "temp"),
            "output_dir": str(tmp_path / "outputs"),
        },
        "database": {"url": "sqlite://"},
        "retention": {"period_days": None},
    })
    yield manager
    ConfigurationManager.reset()


@pytest.fixture
def database():
    handler = DatabaseHandler("sqlite://")
    yield handler
    handler.dispose()


@pytest.fixture
def session(database):
    db_session = database.new_session()
    yield db_session
    db_session.close()


@pytest.fixture
def company(database):
    """Company with reference number 12345, committed."""
    with database.session_scope() as db_session:
        record = Company(name="Acme Trading Ltd", reference_no=12345, code="ACME01")
        db_session.add(record)
    return record


@pytest.fixture
def invoice_template(database):
    """Default PDF invoice template matching INVOICE_LINES."""
    with database.session_scope() as db_session:
        template = Template(
            name="Acme Invoice",
            code="ACME",
            template_type="invoice",
            file_type="pdf",
            coordinates=dict(INVOICE_COORDINATES),
            transformations={},
            custom_fields={},
            is_default=True,
        )
        db_session.add(template)
    return template


@pytest.fixture
def invoice_pdf(tmp_path) -> Path:
    return write_pdf(tmp_path / "acme-invoice.pdf", [INVOICE_LINES])


@pytest.fixture
def temp_upload(tmp_path):
    """Copy a file into the temp directory the way an upload lands there."""
    upload_dir = tmp_path / "temp"
    upload_dir.mkdir(exist_ok=True)
    counter = {"n": 0}

    def _upload(source: Path) -> Path:
        counter["n"] += 1
        target = upload_dir / f"upload-{counter['n']}"
        target.write_bytes(Path(source).read_bytes())
        return target

    return _upload
