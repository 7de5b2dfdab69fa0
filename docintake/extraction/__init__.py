"""
Extraction Module.

Template-driven field extraction from PDF regions and Excel cells.
"""

from .extraction_result import ExtractionResult
from .regions import NormalizedRegion, PointRegion, parse_region, text_in_region
from .transforms import apply_transformations
from .extractor import RegionExtractor
from .excel_extractor import ExcelCellExtractor

__all__ = [
    'ExtractionResult',
    'NormalizedRegion',
    'PointRegion',
    'parse_region',
    'text_in_region',
    'apply_transformations',
    'RegionExtractor',
    'ExcelCellExtractor',
]
