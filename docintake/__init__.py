"""
docintake - Financial Document Ingestion Pipeline.

Imports PDF and Excel invoices, credit notes and statements: duplicate
detection by content hash, template-driven field extraction, company
matching and routing of each file into processed or unprocessed storage.

Modules:
    - fields: Standard field registry and field name resolution
    - input_handler: File validation and PDF text access
    - dedup: Content hashing and duplicate resolution
    - templates: Document type sniffing and template selection
    - extraction: Region, Excel cell and generic text extraction
    - postprocessor: Value normalization
    - classification: Company matching, missing fields, business documents
    - storage: Storage routing
    - store: Database models and import outcome recording
    - session: Import sessions and notifications
    - jobs: Import pipeline and worker
    - output_handler: Excel import reports

Architecture:
    Upload → Hash/Dedup → Template → Extraction → Classification
                                                        ↓
                                   Storage → Document → File Record
"""

__version__ = "1.0.0"
__author__ = "Finance Platform Team"

__all__ = [
    'fields',
    'input_handler',
    'dedup',
    'templates',
    'extraction',
    'postprocessor',
    'classification',
    'storage',
    'store',
    'session',
    'jobs',
    'output_handler',
    'utils'
]
