"""
Extraction Result Data Class.

This module defines the data structure for field extraction results,
providing a standardized format for template, Excel and generic
extraction alike.

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from docintake.postprocessor.normalizers import is_blank


@dataclass
class ExtractionResult:
    """
    Represents the result of field extraction for one file.

    Attributes:
        template_id: Id of the template used (None for generic extraction)
        template_name: Name of the template used
        fields: Canonical field name -> cleaned value
        field_labels: Canonical field name -> display name, for every
            field the template defines (extracted or not) plus custom fields
        custom_fields: Custom field name -> value
        early_exit: True when phase 2 was skipped
        missing_crucial_fields: Display names of blank crucial fields
        validation_errors: One dict per blank crucial field
        full_text: Document text when it was read (Excel, generic)
        page_count: Number of pages (PDF) or sheets (Excel)
        extraction_timestamp: When extraction was performed

    Example:
        >>> result = ExtractionResult(template_id=1, template_name="Acme Invoice")
        >>> result.fields["invoiceNumber"] = "INV-001"
        >>> result.to_dict()["invoiceNumber"]
        "INV-001"
    """
    template_id: Optional[int] = None
    template_name: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    field_labels: Dict[str, str] = field(default_factory=dict)
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    # Crucial field validation
    early_exit: bool = False
    missing_crucial_fields: List[str] = field(default_factory=list)
    validation_errors: List[Dict[str, str]] = field(default_factory=list)

    # Metadata
    full_text: Optional[str] = None
    page_count: int = 0
    extraction_timestamp: Optional[str] = None
    warnings: list = field(default_factory=list)

    def __post_init__(self):
        """Initialize timestamp if not provided."""
        if self.extraction_timestamp is None:
            self.extraction_timestamp = datetime.now().isoformat()

    def get(self, name: str, default: Any = None) -> Any:
        """Return a canonical or custom field value."""
        if name in self.fields:
            return self.fields[name]
        return self.custom_fields.get(name, default)

    def has(self, name: str) -> bool:
        return not is_blank(self.get(name))

    @property
    def document_type(self) -> Optional[str]:
        return self.fields.get("documentType")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the parsed-data snapshot stored on the file record.

        Returns:
            Flat dictionary of field values plus bookkeeping keys.
        """
        data: Dict[str, Any] = {
            "templateId": self.template_id,
            "templateName": self.template_name,
        }
        data.update(self.fields)
        data.update(self.custom_fields)
        data["fieldLabels"] = dict(self.field_labels)

        if self.early_exit:
            data["_earlyExit"] = True
            data["_missingCrucialFields"] = list(self.missing_crucial_fields)
        if self.validation_errors:
            data["_validationErrors"] = list(self.validation_errors)
        if self.full_text is not None:
            data["fullText"] = self.full_text

        return data

    def __repr__(self) -> str:
        return (
            f"ExtractionResult(template='{self.template_name}', "
            f"fields={len(self.fields)}, early_exit={self.early_exit})"
        )
