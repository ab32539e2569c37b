"""Container summaries and source diagnostics."""

from .diagnostics import DEBUG_COLUMNS, SourceDiagnostics, build_source_diagnostics
from .summary import ContainerSummary, GroupCount, SummaryFormatter, build_container_summary

__all__ = [
    "DEBUG_COLUMNS",
    "SourceDiagnostics",
    "build_source_diagnostics",
    "ContainerSummary",
    "GroupCount",
    "SummaryFormatter",
    "build_container_summary",
]
