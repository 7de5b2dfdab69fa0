"""
Store Module.

Database models, engine/session handling and outcome persistence.
"""

from .models import (
    Base,
    Company,
    Template,
    ContentRecord,
    Invoice,
    CreditNote,
    Statement,
    DOCUMENT_MODELS,
)
from .database_handler import DatabaseHandler, resolve_database_url
from .recorder import OutcomeRecorder, ImportOutcome

__all__ = [
    'Base',
    'Company',
    'Template',
    'ContentRecord',
    'Invoice',
    'CreditNote',
    'Statement',
    'DOCUMENT_MODELS',
    'DatabaseHandler',
    'resolve_database_url',
    'OutcomeRecorder',
    'ImportOutcome',
]
