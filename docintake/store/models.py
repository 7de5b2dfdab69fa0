"""
Database Models Module.

SQLAlchemy models for the records the ingestion pipeline reads and writes:
    - Company: customer accounts matched from extracted account numbers
    - Template: administrator-authored extraction templates (read-only here)
    - ContentRecord: one row per distinct file content hash
    - Invoice / CreditNote / Statement: business documents

Author: Finance Platform Team
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Session, declarative_base

Base = declarative_base()


# Record status values
STATUS_PENDING = "pending"
STATUS_PARSED = "parsed"
STATUS_FAILED = "failed"
STATUS_DUPLICATE = "duplicate"
STATUS_UNALLOCATED = "unallocated"

# Failure reasons
REASON_DUPLICATE = "duplicate"
REASON_UNALLOCATED = "unallocated"
REASON_PARSING_ERROR = "parsing_error"
REASON_VALIDATION_ERROR = "validation_error"
REASON_OTHER = "other"

DOCUMENT_TYPES = ("invoice", "credit_note", "statement")


class Company(Base):
    """A customer account that documents are allocated to."""
    __tablename__ = 'companies'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    reference_no = Column(Integer, index=True)
    code = Column(String(64), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}', reference_no={self.reference_no})>"


class Template(Base):
    """
    An extraction template.

    ``coordinates`` maps field ids to regions, either normalized
    (``{"normalized": {left, top, right, bottom, page}}``) or legacy PDF
    points (``{x, y, width, height, page}``). ``excel_cells`` maps field ids
    to ``{column, row, endColumn?, endRow?}``. Field ids may be prefixed
    with the template code.
    """
    __tablename__ = 'templates'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(64), nullable=False)
    template_type = Column(String(20), nullable=False, default="invoice")
    file_type = Column(String(10), nullable=False, default="pdf")
    coordinates = Column(JSON, default=dict)
    excel_cells = Column(JSON, default=dict)
    transformations = Column(JSON, default=dict)
    custom_fields = Column(JSON, default=dict)
    enabled = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def set_as_default(self, session: Session) -> None:
        """Make this the default template, unsetting others of the same type and format."""
        others = (
            session.query(Template)
            .filter(
                Template.template_type == self.template_type,
                Template.file_type == self.file_type,
                Template.is_default.is_(True),
                Template.id != self.id,
            )
        )
        for other in others:
            other.is_default = False
        self.is_default = True
        session.flush()

    def __repr__(self):
        return f"<Template(id={self.id}, code='{self.code}', type='{self.template_type}', file_type='{self.file_type}')>"


class ContentRecord(Base):
    """A stored file, unique by content hash."""
    __tablename__ = 'files'

    id = Column(Integer, primary_key=True)
    file_hash = Column(String(64), unique=True, nullable=False)
    file_name = Column(String(500), nullable=False)
    file_path = Column(String(1000))
    file_size = Column(Integer)
    file_type = Column(String(10))
    status = Column(String(20), nullable=False, default=STATUS_PENDING)
    failure_reason = Column(String(30))
    processing_method = Column(String(100))
    parsed_data = Column(JSON)
    company_id = Column(Integer, index=True)
    uploaded_by = Column(String(64))
    document_id = Column(Integer)
    document_type = Column(String(20))
    meta = Column(JSON, default=dict)
    processed_at = Column(DateTime)
    deleted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ContentRecord(id={self.id}, file_name='{self.file_name}', status='{self.status}')>"


class BusinessDocumentMixin:
    """Columns shared by every business document type."""

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, index=True)
    issue_date = Column(DateTime)
    amount = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    status = Column(String(20), default="ready")
    document_status = Column(String(20), default="review")
    file_url = Column(String(1000))
    retention_start_date = Column(DateTime)
    retention_expiry_date = Column(DateTime)
    meta = Column(JSON, default=dict)
    deleted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    number_column = None

    @property
    def number(self) -> Optional[str]:
        return getattr(self, self.number_column)


class Invoice(BusinessDocumentMixin, Base):
    __tablename__ = 'invoices'
    __table_args__ = (UniqueConstraint('invoice_number', name='uq_invoice_number'),)

    invoice_number = Column(String(100), nullable=False)
    customer_po = Column(String(100))
    goods_amount = Column(Float)

    number_column = "invoice_number"

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}')>"


class CreditNote(BusinessDocumentMixin, Base):
    __tablename__ = 'credit_notes'
    __table_args__ = (UniqueConstraint('credit_note_number', name='uq_credit_note_number'),)

    credit_note_number = Column(String(100), nullable=False)
    invoice_number = Column(String(100))
    goods_amount = Column(Float)

    number_column = "credit_note_number"

    def __repr__(self):
        return f"<CreditNote(id={self.id}, number='{self.credit_note_number}')>"


class Statement(BusinessDocumentMixin, Base):
    __tablename__ = 'statements'
    __table_args__ = (UniqueConstraint('statement_number', name='uq_statement_number'),)

    statement_number = Column(String(100), nullable=False)
    notes = Column(Text)

    number_column = "statement_number"

    def __repr__(self):
        return f"<Statement(id={self.id}, number='{self.statement_number}')>"


DOCUMENT_MODELS = {
    "invoice": Invoice,
    "credit_note": CreditNote,
    "statement": Statement,
}


__all__ = [
    'Base',
    'Company',
    'Template',
    'ContentRecord',
    'BusinessDocumentMixin',
    'Invoice',
    'CreditNote',
    'Statement',
    'DOCUMENT_MODELS',
    'DOCUMENT_TYPES',
    'STATUS_PENDING',
    'STATUS_PARSED',
    'STATUS_FAILED',
    'STATUS_DUPLICATE',
    'STATUS_UNALLOCATED',
    'REASON_DUPLICATE',
    'REASON_UNALLOCATED',
    'REASON_PARSING_ERROR',
    'REASON_VALIDATION_ERROR',
    'REASON_OTHER',
]
