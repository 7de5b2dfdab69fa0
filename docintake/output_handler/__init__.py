"""
Output Handler Module.

Excel reports for import sessions.
"""

from .report_exporter import ReportExporter

__all__ = ['ReportExporter']
