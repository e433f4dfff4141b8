from .archive import ArchiveExportError, DatasetArchiveExporter, entry_names, index_width
from .loose import ExportOutcome, LooseFileExporter

__all__ = [
    "ArchiveExportError",
    "DatasetArchiveExporter",
    "ExportOutcome",
    "LooseFileExporter",
    "entry_names",
    "index_width",
]
