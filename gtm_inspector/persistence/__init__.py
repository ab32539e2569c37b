"""Output sinks for inspection tables."""

from .sinks import (
    DEBUG_TABLE,
    TAGS_TABLE,
    TRIGGERS_TABLE,
    VARIABLES_TABLE,
    VENDORS_TABLE,
    ExportFormat,
    FileTableSink,
    InMemorySink,
    SinkError,
    TabularSink
)

__all__ = [
    "DEBUG_TABLE",
    "TAGS_TABLE",
    "TRIGGERS_TABLE",
    "VARIABLES_TABLE",
    "VENDORS_TABLE",
    "ExportFormat",
    "FileTableSink",
    "InMemorySink",
    "SinkError",
    "TabularSink",
]
