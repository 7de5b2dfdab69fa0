"""
Missing Field Auditor.

Lists the business fields a parsed document lacks, in the order reviewers
see them. The first entry becomes the record's specific failure reason
("Missing {first}").
"""

from typing import Any, Dict, List

from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry
from docintake.postprocessor.normalizers import AmountNormalizer, DateNormalizer, is_blank

INVALID_DATE_FORMAT = "invalid_date_format"


class MissingFieldAuditor:
    """
    Audits extracted values for missing business fields.

    A total of zero is a real value; blank or non-numeric totals are not.
    A date that is present but unparseable is reported as
    ``invalid_date_format`` after every missing field.

    Example:
        >>> auditor = MissingFieldAuditor()
        >>> auditor.audit({"accountNumber": "123", "totalAmount": "0"})
        ['Invoice Number', 'VAT Amount', 'PO Number', 'invalid_date_format']
    """

    # Presence-checked fields, in reporting order
    TEXT_FIELDS = ("invoiceNumber", "vatAmount", "customerPO")

    def __init__(self, registry: FieldRegistry = DEFAULT_REGISTRY, dates: DateNormalizer = None) -> None:
        self.registry = registry
        self.amounts = AmountNormalizer()
        self.dates = dates or DateNormalizer()

    def audit(self, values: Dict[str, Any]) -> List[str]:
        missing: List[str] = []

        if is_blank(values.get("accountNumber")):
            missing.append(self.registry.display_name("accountNumber"))

        if not self.amounts.is_present(values.get("totalAmount")):
            missing.append(self.registry.display_name("totalAmount"))

        for name in self.TEXT_FIELDS:
            if is_blank(values.get(name)):
                missing.append(self.registry.display_name(name))

        date_value = values.get("invoiceDate")
        if is_blank(date_value) or not self.dates.is_valid(date_value):
            missing.append(INVALID_DATE_FORMAT)

        return missing


__all__ = ['MissingFieldAuditor', 'INVALID_DATE_FORMAT']
