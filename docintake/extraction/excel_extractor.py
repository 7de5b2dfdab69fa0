"""
Excel Cell Extractor Module.

Extracts fields from Excel workbooks using a template's cell mappings.
Uses openpyxl with ``data_only=True`` so formula cells yield the values
cached by the spreadsheet application.

Features:
    - Single cells and rectangular ranges
    - Last sheet is always the one parsed (multi-sheet exports put the
      current page last)
    - Full text of every sheet for type detection and review
    - Same transformation rules as PDF templates

Author: Finance Platform Team
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import openpyxl
from openpyxl.utils import column_index_from_string

from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import CorruptedFileError, ExtractionError
from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry, MONETARY_FIELDS
from docintake.fields.resolver import FieldNameResolver
from docintake.postprocessor.normalizers import AmountNormalizer, is_blank, normalize_document_type
from docintake.templates.sniffer import DocumentTypeSniffer
from .extraction_result import ExtractionResult
from .extractor import FIELD_ERRORS
from .transforms import apply_transformations

# Initialize module logger
logger = get_logger(__name__)


def format_cell_value(value: Any) -> str:
    """
    Render a cell value as text.

    Dates become YYYY-MM-DD, booleans 'true'/'false', whole floats lose
    their trailing '.0'.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ExcelCellExtractor:
    """
    Extract template fields from an Excel workbook.

    Example:
        >>> extractor = ExcelCellExtractor()
        >>> result = extractor.extract(template, "statement.xlsx")
        >>> result.fields["accountNumber"]
        "12345"
    """

    def __init__(
        self,
        registry: FieldRegistry = DEFAULT_REGISTRY,
        resolver: Optional[FieldNameResolver] = None,
        import_id: Optional[str] = None
    ) -> None:
        self.registry = registry
        self.resolver = resolver or FieldNameResolver(registry)
        self.amounts = AmountNormalizer()
        self.sniffer = DocumentTypeSniffer()
        self.import_id = import_id

    def extract(self, template, filepath: Union[str, Path]) -> ExtractionResult:
        """
        Extract fields from a workbook.

        Args:
            template: Excel template (excel_cells, transformations,
                custom_fields, code, id, name).
            filepath: Workbook path.

        Raises:
            ExtractionError: Template has no cell mappings.
            CorruptedFileError: Workbook cannot be read or has no sheets.
        """
        cells = template.excel_cells or {}
        if not cells:
            raise ExtractionError(
                "Template has no Excel cell mappings defined",
                {"template": template.name}
            )

        try:
            workbook = openpyxl.load_workbook(str(filepath), data_only=True)
        except Exception as e:
            raise CorruptedFileError(str(filepath), str(e)) from e

        try:
            if not workbook.worksheets:
                raise CorruptedFileError(str(filepath), "Excel file has no sheets")

            sheet = workbook.worksheets[-1]
            result = ExtractionResult(
                template_id=template.id,
                template_name=template.name,
                full_text=self.sheet_text(workbook),
                page_count=len(workbook.worksheets),
            )
            transformations = template.transformations or {}
            custom_names = set((template.custom_fields or {}).keys())

            for field_id, mapping in cells.items():
                base_id = self.resolver.strip_template_prefix(field_id, template.code)
                if base_id in custom_names:
                    continue

                try:
                    value = self.read_mapping(sheet, mapping)
                    if value is None:
                        continue
                    value = apply_transformations(value, transformations.get(field_id))
                except FIELD_ERRORS as e:
                    logger.error(f"{self._prefix()}Error extracting {field_id}: {e}")
                    continue

                name = self.resolver.resolve(base_id)
                if name is None:
                    logger.debug(f"{self._prefix()}Skipping unknown Excel field '{field_id}'")
                    continue

                if name in MONETARY_FIELDS:
                    value = self.amounts.clean(value)
                result.fields[name] = value
                result.field_labels[name] = self.registry.display_name(name)

            self._extract_custom_fields(template, sheet, transformations, result)
        finally:
            workbook.close()

        if is_blank(result.fields.get("documentType")):
            result.fields["documentType"] = self.sniffer.sniff(result.full_text)
        else:
            result.fields["documentType"] = normalize_document_type(result.fields["documentType"])

        logger.info(
            f"{self._prefix()}Extracted {len(result.fields)} field(s) from sheet '{sheet.title}'"
        )
        return result

    def read_mapping(self, sheet, mapping: Optional[Dict[str, Any]]) -> Optional[str]:
        """
        Read a single cell or a range described by a cell mapping.

        Ranges are tab-joined per row and newline-joined across rows; empty
        cells are skipped. Returns None when the mapping is incomplete or
        a single cell is empty.
        """
        if not mapping or not mapping.get("column") or not mapping.get("row"):
            return None

        column = column_index_from_string(str(mapping["column"]).upper())
        row = int(mapping["row"])

        if mapping.get("endColumn") and mapping.get("endRow"):
            end_column = column_index_from_string(str(mapping["endColumn"]).upper())
            end_row = int(mapping["endRow"])
            lines: List[str] = []
            for r in range(row, end_row + 1):
                values = [
                    format_cell_value(sheet.cell(row=r, column=c).value)
                    for c in range(column, end_column + 1)
                    if sheet.cell(row=r, column=c).value is not None
                ]
                if values:
                    lines.append('\t'.join(values))
            return '\n'.join(lines)

        value = sheet.cell(row=row, column=column).value
        if value is None:
            return None
        return format_cell_value(value)

    @staticmethod
    def sheet_text(workbook) -> str:
        """Full text of every sheet: cells space-joined, rows newline-joined."""
        lines: List[str] = []
        for worksheet in workbook.worksheets:
            for row in worksheet.iter_rows(values_only=True):
                lines.append(' '.join(format_cell_value(v) for v in row))
        return '\n'.join(lines)

    def _extract_custom_fields(self, template, sheet, transformations: Dict, result: ExtractionResult) -> None:
        cells = template.excel_cells or {}
        for name, config in (template.custom_fields or {}).items():
            config = config or {}
            prefixed = f"{template.code}_{name}" if template.code else name
            result.field_labels[name] = config.get("displayName") or name
            try:
                value = self.read_mapping(sheet, cells.get(prefixed) or cells.get(name))
                if value is None:
                    continue
                value = apply_transformations(value, transformations.get(prefixed) or transformations.get(name))
            except FIELD_ERRORS as e:
                logger.error(f"{self._prefix()}Error extracting custom field {name}: {e}")
                continue

            if config.get("dataType") in ("currency", "number"):
                value = self.amounts.clean(value)
            result.custom_fields[name] = value

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['ExcelCellExtractor', 'format_cell_value']
