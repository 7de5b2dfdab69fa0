"""
Region Extractor Module.

Two-phase, coordinate-based field extraction from PDF templates.

Phase 1 reads only the crucial fields (document type, account number,
date) plus the page number. If any crucial field comes back blank the
extractor returns immediately with ``early_exit`` set: a template that
cannot find these fields is almost certainly the wrong template, and
reading the rest of the regions would only cost time.

Phase 2 reads every remaining field, applies the template's
transformation rules and cleans monetary values. In multi-page documents
monetary fields are always read from the last page, whatever page the
template declares.

Usage:
    from docintake.extraction import RegionExtractor

    extractor = RegionExtractor(import_id="imp-1")
    with PDFProcessor().open("invoice.pdf") as pdf:
        result = extractor.extract(template, pdf)

Author: Finance Platform Team
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import get_config
from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import RegionError
from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry, MONETARY_FIELDS
from docintake.fields.resolver import FieldNameResolver
from docintake.postprocessor.normalizers import AmountNormalizer, is_blank, normalize_document_type
from .extraction_result import ExtractionResult
from .regions import parse_region, text_in_region
from .transforms import apply_transformations

# Initialize module logger
logger = get_logger(__name__)

PAGE_NUMBER_FIELD = "pageNo"

# Malformed template entries (bad coordinates, rule sets of the wrong shape)
# fail one field, never the document
FIELD_ERRORS = (RegionError, ValueError, TypeError, AttributeError, KeyError)


@dataclass
class FieldSpec:
    """A template field scheduled for extraction."""
    field_id: str
    name: str
    region: Any
    page: int


class RegionExtractor:
    """
    Extracts template fields from page text.

    The page source is anything exposing ``page_count`` and
    ``get_page(number)`` returning a PageText (a PDFDocument in
    production).

    Attributes:
        registry: Injected standard field registry.
        resolver: Field-name resolver chain.
        last_page_fields: Fields read from the last page in multi-page mode.

    Example:
        >>> extractor = RegionExtractor()
        >>> result = extractor.extract(template, pdf)
        >>> result.early_exit
        False
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
        self.import_id = import_id
        self.last_page_fields = tuple(
            get_config("extraction.last_page_fields", list(MONETARY_FIELDS))
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def extract(self, template, pages) -> ExtractionResult:
        """
        Run two-phase extraction for a template.

        Args:
            template: Template model (coordinates, transformations,
                custom_fields, code, id, name).
            pages: Page source.

        Returns:
            ExtractionResult, with ``early_exit`` set when a crucial field
            is blank after phase 1.
        """
        result = ExtractionResult(
            template_id=template.id,
            template_name=template.name,
            page_count=pages.page_count,
        )
        multi_page = pages.page_count > 1
        specs = self.build_field_specs(template, pages.page_count)
        transformations = template.transformations or {}

        logger.info(
            f"{self._prefix()}Extracting {len(specs)} field(s) with template '{template.name}' "
            f"({pages.page_count} page(s){', multi-page mode' if multi_page else ''})"
        )

        # Phase 1: crucial fields and page number
        phase_one: List[FieldSpec] = []
        phase_two: List[FieldSpec] = []
        for spec in specs:
            if self.registry.is_crucial(spec.name) or spec.name == PAGE_NUMBER_FIELD:
                phase_one.append(spec)
            else:
                phase_two.append(spec)

        self._extract_group(phase_one, pages, transformations, result)

        missing, errors = self.validate_crucial_fields(result.fields)
        if missing:
            logger.warning(
                f"{self._prefix()}Crucial fields missing after phase 1: {', '.join(missing)}; "
                f"skipping remaining fields"
            )
            self._normalize_document_type(result)
            result.early_exit = True
            result.missing_crucial_fields = missing
            result.validation_errors = errors
            result.field_labels = {
                name: self.registry.display_name(name)
                for name in result.fields if name in self.registry
            }
            return result

        # Phase 2: everything else
        self._extract_group(phase_two, pages, transformations, result)
        self._normalize_document_type(result)

        missing, errors = self.validate_crucial_fields(result.fields)
        if missing:
            result.validation_errors = errors

        result.field_labels = self.build_field_labels(template)
        self._extract_custom_fields(template, pages, transformations, result)

        logger.info(f"{self._prefix()}Extracted {len(result.fields)} field(s)")
        return result

    def build_field_specs(self, template, page_count: int) -> List[FieldSpec]:
        """
        Resolve and sort the template's standard fields.

        Sort order: page number first, then parsing order; in multi-page
        documents last-page monetary fields next; then crucial before
        non-crucial, mandatory before optional, and finally by name.
        """
        custom_names = set((template.custom_fields or {}).keys())
        multi_page = page_count > 1
        specs: List[FieldSpec] = []

        for field_id, coords in (template.coordinates or {}).items():
            base_id = self.resolver.strip_template_prefix(field_id, template.code)
            if base_id in custom_names:
                continue

            name = self.resolver.resolve(base_id)
            if name is None:
                logger.debug(f"{self._prefix()}Skipping unknown field '{field_id}'")
                continue

            try:
                region = parse_region(coords)
            except FIELD_ERRORS as e:
                logger.error(f"{self._prefix()}Error extracting {field_id}: invalid coordinates ({e})")
                continue
            if region is None:
                logger.warning(f"{self._prefix()}Skipping {field_id}: incomplete coordinates")
                continue

            page = region.page
            if multi_page and name in self.last_page_fields and page != page_count:
                logger.warning(
                    f"{self._prefix()}{name} declared on page {page}, reading from last page {page_count}"
                )
                page = page_count

            specs.append(FieldSpec(field_id=field_id, name=name, region=region.with_page(page), page=page))

        document_type = self._declared_type(template)

        def sort_key(spec: FieldSpec):
            return (
                0 if spec.name == PAGE_NUMBER_FIELD else 1,
                self.registry.parsing_order(spec.name),
                0 if (multi_page and spec.name in self.last_page_fields) else 1,
                0 if self.registry.is_crucial(spec.name) else 1,
                0 if self.registry.is_mandatory(spec.name, document_type) else 1,
                spec.name,
            )

        return sorted(specs, key=sort_key)

    def validate_crucial_fields(self, values: Dict[str, Any]):
        """
        Check crucial fields for blank values.

        Returns:
            (missing display names, error dicts)
        """
        missing: List[str] = []
        errors: List[Dict[str, str]] = []
        for name in self.registry.crucial_fields():
            if is_blank(values.get(name)):
                display = self.registry.display_name(name)
                missing.append(display)
                errors.append({
                    "field": name,
                    "displayName": display,
                    "message": f"Missing crucial field: {display}",
                })
        return missing, errors

    def build_field_labels(self, template) -> Dict[str, str]:
        """Labels for every standard field the template defines, plus custom fields."""
        labels: Dict[str, str] = {}
        for field_id in (template.coordinates or {}):
            base_id = self.resolver.strip_template_prefix(field_id, template.code)
            name = self.resolver.resolve(base_id) or base_id
            if name in self.registry:
                labels[name] = self.registry.display_name(name)

        for name, config in (template.custom_fields or {}).items():
            labels[name] = (config or {}).get("displayName") or name
        return labels

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _extract_group(self, specs: List[FieldSpec], pages, transformations: Dict, result: ExtractionResult) -> None:
        """Extract a list of fields, loading each page once in ascending order."""
        by_page: "OrderedDict[int, List[FieldSpec]]" = OrderedDict()
        for spec in sorted(specs, key=lambda s: s.page):
            by_page.setdefault(spec.page, []).append(spec)

        for page_number, page_specs in by_page.items():
            try:
                page = pages.get_page(page_number)
            except RegionError as e:
                for spec in page_specs:
                    logger.error(f"{self._prefix()}Error extracting {spec.field_id}: {e.message}")
                continue

            for spec in page_specs:
                try:
                    value = self._read_field(spec, page, transformations)
                except FIELD_ERRORS as e:
                    logger.error(f"{self._prefix()}Error extracting {spec.field_id}: {e}")
                    continue
                if value is not None:
                    result.fields[spec.name] = value

    def _read_field(self, spec: FieldSpec, page, transformations: Dict) -> Optional[Any]:
        text = text_in_region(page, spec.region)
        if not text:
            logger.debug(f"{self._prefix()}No text found in region for {spec.field_id} ({spec.name})")
            return None

        value = apply_transformations(text, transformations.get(spec.field_id))
        if spec.name in MONETARY_FIELDS:
            value = self.amounts.clean(value)

        logger.debug(f"{self._prefix()}Stored {spec.name} = '{value}'")
        return value

    def _extract_custom_fields(self, template, pages, transformations: Dict, result: ExtractionResult) -> None:
        coordinates = template.coordinates or {}
        for name, config in (template.custom_fields or {}).items():
            config = config or {}
            prefixed = f"{template.code}_{name}" if template.code else name
            try:
                value = self._read_custom_field(name, prefixed, config, coordinates, pages, transformations)
            except FIELD_ERRORS as e:
                logger.error(f"{self._prefix()}Error extracting custom field {name}: {e}")
                continue

            if value is not None:
                result.custom_fields[name] = value

    def _read_custom_field(self, name, prefixed, config, coordinates, pages, transformations) -> Optional[Any]:
        region = parse_region(coordinates.get(prefixed) or coordinates.get(name))
        if region is None:
            logger.debug(f"{self._prefix()}No coordinates for custom field '{name}'")
            return None

        text = text_in_region(pages.get_page(region.page), region)
        if not text:
            return None

        value = apply_transformations(text, transformations.get(prefixed) or transformations.get(name))
        if config.get("dataType") in ("currency", "number"):
            value = self.amounts.clean(value)
        return value

    @staticmethod
    def _normalize_document_type(result: ExtractionResult) -> None:
        if not is_blank(result.fields.get("documentType")):
            result.fields["documentType"] = normalize_document_type(result.fields["documentType"])

    @staticmethod
    def _declared_type(template) -> Optional[str]:
        return getattr(template, "template_type", None)

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['RegionExtractor', 'FieldSpec', 'FIELD_ERRORS']
