"""
Template Resolver Module.

Selects the extraction template for a file.

PDF order:
    1. Default enabled template for the sniffed type (a template of another
       type is rejected, never substituted)
    2. Any enabled template of the sniffed type
    3. Generic keyword-anchored fallback

Excel order:
    1. Default template for the sniffed type
    2. Any default Excel template
    3. Any enabled Excel template
    There is no Excel fallback: a missing template is terminal.

Author: Finance Platform Team
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import TemplateMismatchError, TemplateNotFoundError
from docintake.store.models import Template
from docintake.input_handler.handler import FORMAT_EXCEL, FORMAT_PDF

# Initialize module logger
logger = get_logger(__name__)

METHOD_GENERIC = "local_basic"


@dataclass
class TemplateMatch:
    """
    Selected template and the processing method it implies.

    Attributes:
        template: Selected template, None for the generic fallback.
        method: Processing method recorded on the file record.
        fallback: True when the generic extractor is used.
    """
    template: Optional[Template]
    method: str
    fallback: bool = False


def find_default_template(
    session: Session,
    file_type: str,
    template_type: Optional[str] = None
) -> Optional[Template]:
    """
    Find the default enabled template, else the first enabled one.

    Both lookups are restricted to ``template_type`` when given.
    """
    query = session.query(Template).filter(Template.file_type == file_type, Template.enabled.is_(True))
    if template_type:
        query = query.filter(Template.template_type == template_type)

    template = (
        query.filter(Template.is_default.is_(True))
        .order_by(Template.priority.desc(), Template.created_at.desc())
        .first()
    )
    if template is not None:
        return template

    return query.order_by(Template.priority.desc(), Template.created_at.desc()).first()


def find_template_by_file_type(
    session: Session,
    file_type: str,
    template_type: Optional[str] = None
) -> Optional[Template]:
    """Find any enabled template, defaults and higher priority first."""
    query = session.query(Template).filter(Template.file_type == file_type, Template.enabled.is_(True))
    if template_type:
        query = query.filter(Template.template_type == template_type)

    return query.order_by(
        Template.is_default.desc(),
        Template.priority.desc(),
        Template.created_at.desc()
    ).first()


class TemplateResolver:
    """
    Resolve the template for a file.

    Example:
        >>> match = TemplateResolver().resolve(session, "pdf", "invoice")
        >>> match.method
        "local_coordinates_ACME"
    """

    def __init__(self, import_id: Optional[str] = None) -> None:
        self.import_id = import_id

    def resolve(self, session: Session, file_format: str, document_type: str) -> TemplateMatch:
        """
        Select a template.

        Args:
            session: Active database session.
            file_format: 'pdf' or 'excel'.
            document_type: Sniffed document type.

        Raises:
            TemplateNotFoundError: No Excel template exists.
        """
        if file_format == FORMAT_EXCEL:
            return self._resolve_excel(session, document_type)
        if file_format == FORMAT_PDF:
            return self._resolve_pdf(session, document_type)
        raise TemplateNotFoundError(file_format, document_type)

    def _resolve_pdf(self, session: Session, document_type: str) -> TemplateMatch:
        # the site-wide default only applies when it is for the sniffed type
        template = find_default_template(session, FORMAT_PDF, None)
        if template is not None:
            try:
                self.check_type(template, document_type)
                logger.info(f"{self._prefix()}Using default PDF template '{template.name}'")
                return TemplateMatch(template, f"local_coordinates_{template.code}")
            except TemplateMismatchError as e:
                logger.warning(f"{self._prefix()}{e}")

        template = find_template_by_file_type(session, FORMAT_PDF, document_type)
        if template is not None:
            logger.info(f"{self._prefix()}Using PDF template '{template.name}'")
            return TemplateMatch(template, f"local_coordinates_{template.code}")

        logger.info(
            f"{self._prefix()}No PDF template for '{document_type}', using generic text extraction"
        )
        return TemplateMatch(None, METHOD_GENERIC, fallback=True)

    def _resolve_excel(self, session: Session, document_type: str) -> TemplateMatch:
        template = (
            find_default_template(session, FORMAT_EXCEL, document_type)
            or find_default_template(session, FORMAT_EXCEL, None)
            or find_template_by_file_type(session, FORMAT_EXCEL)
        )
        if template is None:
            raise TemplateNotFoundError(
                FORMAT_EXCEL,
                document_type,
                message="No Excel template found. Please create an Excel template first."
            )

        logger.info(f"{self._prefix()}Using Excel template '{template.name}'")
        return TemplateMatch(template, f"excel_template_{template.code}")

    @staticmethod
    def check_type(template: Template, document_type: str) -> None:
        """
        Raise if a template is for another document type.

        Raises:
            TemplateMismatchError: On type mismatch.
        """
        if template.template_type != document_type:
            raise TemplateMismatchError(template.name, template.template_type, document_type)

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = [
    'TemplateMatch',
    'TemplateResolver',
    'find_default_template',
    'find_template_by_file_type',
    'METHOD_GENERIC',
]
