"""Output module - JSON/CSV export and JSON input."""

from .export import diff_rows, export_csv, export_json, load_json

__all__ = [
    "diff_rows",
    "export_csv",
    "export_json",
    "load_json",
]
