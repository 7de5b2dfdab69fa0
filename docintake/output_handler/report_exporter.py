"""
Import Report Exporter Module.

Writes the results of an import session to an Excel workbook using
openpyxl.

Features:
    - Results sheet: one row per file, styled header, frozen header row
    - Summary sheet: session counters and timestamps
    - Auto column width

Author: Finance Platform Team
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from docintake.utils.logger import get_logger
from docintake.utils.helpers import ensure_directory, generate_timestamp
from docintake.utils.exceptions import ReportExportError
from docintake.session.import_store import ImportSession

# Initialize module logger
logger = get_logger(__name__)


class ReportExporter:
    """
    Exports import session results to Excel.

    Attributes:
        output_dir: Directory for report files.
        sheet_name: Title of the results sheet.

    Example:
        >>> exporter = ReportExporter()
        >>> path = exporter.export(store.get("imp-1"))
        >>> print(f"Saved to: {path}")
    """

    # (header, result key)
    COLUMNS = [
        ('File Name', 'fileName'),
        ('Success', 'success'),
        ('Status', 'status'),
        ('Document Type', 'documentType'),
        ('Company ID', 'companyId'),
        ('Document ID', 'documentId'),
        ('File ID', 'fileId'),
        ('Duplicate', 'isDuplicate'),
        ('Error', 'error'),
        ('Processing Time (s)', 'processingTime'),
        ('Timestamp', 'timestamp'),
    ]

    SUMMARY_ROWS = [
        ('Total Files', 'total'),
        ('Processed', 'processed'),
        ('Successful', 'successful'),
        ('Failed', 'failed'),
        ('Matched to Companies', 'matched'),
        ('Unallocated', 'unallocated'),
    ]

    MAX_COLUMN_WIDTH = 60

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        """Initialize the report exporter with configuration."""
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.sheet_name = get_config("output.report.sheet_name", "Import Results")
        self.filename_pattern = get_config(
            "output.report.filename_pattern",
            "import_report_{import_id}_{timestamp}.xlsx"
        )

        logger.debug(f"ReportExporter initialized (output_dir: {self.output_dir})")

    def export(self, session: ImportSession, filename: Optional[str] = None) -> str:
        """
        Export an import session to an Excel file.

        Args:
            session: Import session to report on.
            filename: Output filename. If None, built from the configured
                pattern.

        Returns:
            Path to the created Excel file.

        Raises:
            ReportExportError: If the workbook cannot be written.
        """
        ensure_directory(self.output_dir)
        filepath = self.output_dir / (filename or self.get_default_filename(session.import_id))

        try:
            workbook = Workbook()
            self._create_results_sheet(workbook, session.results)
            self._create_summary_sheet(workbook, session)
            workbook.save(filepath)
        except (OSError, ValueError) as e:
            logger.error(f"Report export failed: {e}")
            raise ReportExportError(str(filepath), str(e)) from e

        logger.info(f"Import report saved: {filepath} ({len(session.results)} result(s))")
        return str(filepath)

    def _create_results_sheet(self, workbook: Workbook, results: List[Dict[str, Any]]) -> None:
        sheet = workbook.active
        sheet.title = self.sheet_name

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin = Side(style='thin')
        border = Border(left=thin, right=thin, top=thin, bottom=thin)

        for col, (header, _) in enumerate(self.COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border

        for row_num, result in enumerate(results, 2):
            for col, (_, key) in enumerate(self.COLUMNS, 1):
                cell = sheet.cell(row=row_num, column=col, value=self._cell_value(result.get(key)))
                cell.border = border

        for col, (header, _) in enumerate(self.COLUMNS, 1):
            width = len(header)
            for row in range(2, len(results) + 2):
                value = sheet.cell(row=row, column=col).value
                if value is not None:
                    width = max(width, len(str(value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(width + 2, self.MAX_COLUMN_WIDTH)

        sheet.freeze_panes = 'A2'

    def _create_summary_sheet(self, workbook: Workbook, session: ImportSession) -> None:
        sheet = workbook.create_sheet(title="Summary")
        label_font = Font(bold=True)
        summary = session.summary()

        rows = [('Import ID', session.import_id), ('Status', session.status)]
        rows += [(label, summary.get(key, 0)) for label, key in self.SUMMARY_ROWS]
        rows += [
            ('Created', session.created_at.strftime("%Y-%m-%d %H:%M:%S")),
            ('Completed', session.completed_at.strftime("%Y-%m-%d %H:%M:%S") if session.completed_at else ''),
        ]

        for row_num, (label, value) in enumerate(rows, 1):
            sheet.cell(row=row_num, column=1, value=label).font = label_font
            sheet.cell(row=row_num, column=2, value=value)

        sheet.column_dimensions['A'].width = 24
        sheet.column_dimensions['B'].width = 40

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None:
            return ''
        if isinstance(value, bool):
            return 'Yes' if value else 'No'
        return value

    def get_default_filename(self, import_id: str) -> str:
        """Filename from the configured pattern."""
        return self.filename_pattern.format(import_id=import_id, timestamp=generate_timestamp())


__all__ = ['ReportExporter']
