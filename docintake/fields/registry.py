"""
Standard Field Registry Module.

This module defines the canonical fields a financial document can carry
and the metadata the pipeline needs about each of them:
    - Display name shown to reviewers
    - Aliases accepted in template field ids and spreadsheet headers
    - Parsing order used to sort template regions
    - Crucial / mandatory flags driving early exit and auditing

The registry is immutable and injected into the resolver, extractor and
auditor instead of being read from module-level mutable state.

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


# Monetary fields read from the last page in multi-page documents
MONETARY_FIELDS = ("totalAmount", "vatAmount", "goodsAmount")

# Fields extracted in phase 1 (besides pageNo)
CRUCIAL_FIELDS = ("documentType", "accountNumber", "invoiceDate")

UNKNOWN_PARSING_ORDER = 999


@dataclass(frozen=True)
class StandardField:
    """
    Definition of one canonical document field.

    Attributes:
        name: Canonical camelCase field name (e.g., "invoiceNumber").
        display_name: Human-readable label.
        aliases: Lower-case snake_case spellings that map to this field.
        parsing_order: Sort key for region extraction.
        crucial: Blank value aborts extraction after phase 1.
        mandatory: Sorted ahead of optional fields.
        template_types: Document types the field applies to (empty = all).
        mandatory_for: Document types where an optional field is mandatory.
    """
    name: str
    display_name: str
    aliases: Tuple[str, ...] = ()
    parsing_order: int = UNKNOWN_PARSING_ORDER
    crucial: bool = False
    mandatory: bool = True
    template_types: Tuple[str, ...] = ()
    mandatory_for: Tuple[str, ...] = ()

    def is_mandatory_for(self, document_type: Optional[str]) -> bool:
        """Return whether the field is mandatory for a document type."""
        return self.mandatory or (document_type in self.mandatory_for)


class FieldRegistry:
    """
    Immutable registry of standard fields keyed by canonical name.

    Example:
        >>> registry = FieldRegistry(STANDARD_FIELDS)
        >>> registry.display_name("totalAmount")
        "Total"
        >>> registry.is_crucial("accountNumber")
        True
    """

    def __init__(self, fields: Iterable[StandardField]) -> None:
        by_name: Dict[str, StandardField] = {}
        aliases: Dict[str, str] = {}

        for definition in fields:
            by_name[definition.name] = definition
            for alias in definition.aliases:
                aliases[alias.lower()] = definition.name

        self._fields: Mapping[str, StandardField] = MappingProxyType(by_name)
        self._aliases: Mapping[str, str] = MappingProxyType(aliases)
        self._lower_names: Mapping[str, str] = MappingProxyType(
            {name.lower(): name for name in by_name}
        )

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[StandardField]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def aliases(self) -> Mapping[str, str]:
        """Read-only alias table (alias -> canonical name)."""
        return self._aliases

    def get(self, name: str) -> Optional[StandardField]:
        return self._fields.get(name)

    def canonical(self, name: str) -> Optional[str]:
        """Return the canonical spelling of a case-insensitive name, if standard."""
        if name in self._fields:
            return name
        return self._lower_names.get(name.lower())

    def display_name(self, name: str) -> str:
        definition = self._fields.get(name)
        return definition.display_name if definition else name

    def parsing_order(self, name: str) -> int:
        definition = self._fields.get(name)
        return definition.parsing_order if definition else UNKNOWN_PARSING_ORDER

    def is_crucial(self, name: str) -> bool:
        definition = self._fields.get(name)
        return bool(definition and definition.crucial)

    def is_mandatory(self, name: str, document_type: Optional[str] = None) -> bool:
        definition = self._fields.get(name)
        return bool(definition and definition.is_mandatory_for(document_type))

    def crucial_fields(self) -> List[str]:
        return [f.name for f in self._fields.values() if f.crucial]


# =============================================================================
# STANDARD FIELD DEFINITIONS
# =============================================================================

STANDARD_FIELDS: Tuple[StandardField, ...] = (
    StandardField(
        name="pageNo",
        display_name="Page Number",
        aliases=("page_no", "page_number", "page"),
        parsing_order=0,
    ),
    StandardField(
        name="documentType",
        display_name="Document Type",
        aliases=("document_type", "documenttype", "doc_type", "type"),
        parsing_order=2,
        crucial=True,
    ),
    StandardField(
        name="accountNumber",
        display_name="Account Number / Supplier Code",
        aliases=(
            "account_number", "account_no", "accountno", "customer_number",
            "customer_no", "account", "supplier_code", "vendor_code",
        ),
        parsing_order=3,
        crucial=True,
    ),
    StandardField(
        name="invoiceDate",
        display_name="Date / Tax Point",
        aliases=(
            "date", "invoice_date", "tax_point", "taxpoint",
            "date_tax_point", "tax_point_date",
        ),
        parsing_order=4,
        crucial=True,
    ),
    StandardField(
        name="invoiceNumber",
        display_name="Invoice Number",
        aliases=("invoice_number", "invoice_no", "invoicenumber", "inv_no", "invoice_ref"),
        parsing_order=5,
        template_types=("invoice", "statement"),
    ),
    StandardField(
        name="creditNumber",
        display_name="Credit Number",
        aliases=("credit_number", "credit_no", "creditnumber", "credit_note_number", "credit_ref"),
        parsing_order=5,
        template_types=("credit_note",),
    ),
    StandardField(
        name="customerPO",
        display_name="PO Number",
        aliases=("customer_po", "customerpo", "po_number", "po_no", "purchase_order", "po"),
        parsing_order=6,
    ),
    StandardField(
        name="totalAmount",
        display_name="Total",
        aliases=("total", "amount", "invoice_total", "invoicetotal", "total_amount", "grand_total"),
        parsing_order=7,
    ),
    StandardField(
        name="vatAmount",
        display_name="VAT Amount",
        aliases=("vat_amount", "vat_total", "vatamount", "tax_amount", "tax"),
        parsing_order=8,
    ),
    StandardField(
        name="goodsAmount",
        display_name="Goods Amount",
        aliases=("goods_amount", "goods", "goodsamount", "subtotal", "net_amount"),
        parsing_order=9,
        mandatory=False,
        mandatory_for=("credit_note",),
    ),
    StandardField(
        name="customerName",
        display_name="Customer Name",
        aliases=("customer_name", "customername"),
        parsing_order=10,
        mandatory=False,
    ),
    StandardField(
        name="invoiceTo",
        display_name="Invoice To",
        aliases=("invoice_to", "invoiceto", "bill_to"),
        parsing_order=11,
        mandatory=False,
    ),
    StandardField(
        name="deliveryAddress",
        display_name="Delivery Address",
        aliases=("delivery_address", "deliveryaddress", "ship_to"),
        parsing_order=12,
        mandatory=False,
    ),
)

DEFAULT_REGISTRY = FieldRegistry(STANDARD_FIELDS)


__all__ = [
    'StandardField',
    'FieldRegistry',
    'STANDARD_FIELDS',
    'DEFAULT_REGISTRY',
    'MONETARY_FIELDS',
    'CRUCIAL_FIELDS',
    'UNKNOWN_PARSING_ORDER',
]
