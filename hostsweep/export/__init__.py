"""Export utilities: JSON-lines host log and spreadsheet writers."""

from .logging import ResultsLog
from .reports import export_results, export_results_to_csv, export_results_to_xlsx, results_to_rows

__all__ = [
    "ResultsLog",
    "export_results",
    "export_results_to_csv",
    "export_results_to_xlsx",
    "results_to_rows",
]
