"""Spreadsheet reports."""

from family_tree.reports.spreadsheet import (
    export_families,
    export_family,
    export_person,
    export_statistics,
    import_family,
)

__all__ = [
    "export_family",
    "export_families",
    "export_person",
    "export_statistics",
    "import_family",
]
