"""CSV export of source collections.

Usage:
    from appwrite_clone.export import export_database_to_csv, documents_to_csv
"""

from appwrite_clone.export.csv_export import (
    ExportedFile,
    ExportResult,
    documents_to_csv,
    export_collection_to_csv,
    export_database_to_csv,
)

__all__ = [
    "ExportedFile",
    "ExportResult",
    "documents_to_csv",
    "export_collection_to_csv",
    "export_database_to_csv",
]
