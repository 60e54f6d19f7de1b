"""
Calendar feature module: recurring-event (.ics) export of a reminder cadence
"""
from .exporter import CalendarDocument, ExportRequest, export, parse_export_params

__all__ = ["CalendarDocument", "ExportRequest", "export", "parse_export_params"]
