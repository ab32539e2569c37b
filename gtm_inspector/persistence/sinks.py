"""Tabular sinks for inspection results.

A sink receives whole tables: every ``write_table`` call replaces any
previous contents of the named table.
"""

import csv
import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union


logger = logging.getLogger(__name__)

TAGS_TABLE = "GTM_Tags"
TRIGGERS_TABLE = "GTM_Triggers"
VARIABLES_TABLE = "GTM_Variables"
VENDORS_TABLE = "GTM_Vendors"
DEBUG_TABLE = "GTM_Debug"


class ExportFormat(str, Enum):
    """Supported file formats."""
    JSON = "json"
    NDJSON = "ndjson"  # Newline-delimited JSON
    CSV = "csv"


class SinkError(Exception):
    """Raised when a table cannot be written."""
    pass


class TabularSink(ABC):
    """Destination for named tables with a fixed column order."""

    @abstractmethod
    def write_table(self, name: str, columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> None:
        """Replace the table ``name`` with ``rows`` projected onto ``columns``."""
        pass


def _project(columns: Sequence[str], row: Mapping[str, Any]) -> List[Any]:
    return [row.get(column, "") for column in columns]


class InMemorySink(TabularSink):
    """Sink that keeps tables in memory, mostly for tests and library use."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Any]] = {}
        self.write_count = 0

    def write_table(self, name, columns, rows):
        self.tables[name] = {
            "columns": list(columns),
            "rows": [_project(columns, row) for row in rows]
        }
        self.write_count += 1

    def columns(self, name: str) -> List[str]:
        return self.tables[name]["columns"]

    def rows(self, name: str) -> List[Dict[str, Any]]:
        """Rows of ``name`` as column-keyed dictionaries."""
        table = self.tables[name]
        return [dict(zip(table["columns"], values)) for values in table["rows"]]


class FileTableSink(TabularSink):
    """Writes one file per table into a directory.

    File names are ``<table>.<format>``; an existing file is overwritten.
    """

    def __init__(self, directory: Union[str, Path], format: ExportFormat = ExportFormat.CSV):
        self.directory = Path(directory)
        self.format = ExportFormat(format)
        self.written: List[Path] = []

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.{self.format.value}"

    def write_table(self, name, columns, rows):
        path = self.path_for(name)
        if self.format == ExportFormat.CSV:
            content = self._serialize_csv(columns, rows)
        elif self.format == ExportFormat.NDJSON:
            content = self._serialize_ndjson(columns, rows)
        else:
            content = self._serialize_json(columns, rows)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise SinkError(f"Failed to write table {name} to {path}: {e}") from e

        if path not in self.written:
            self.written.append(path)
        logger.info(f"Wrote {len(rows)} rows to {path}")

    def _serialize_csv(self, columns, rows) -> str:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(list(columns))
        for row in rows:
            writer.writerow(_project(columns, row))
        return output.getvalue()

    def _serialize_ndjson(self, columns, rows) -> str:
        return "".join(
            json.dumps(dict(zip(columns, _project(columns, row))), ensure_ascii=False, default=str) + "\n"
            for row in rows
        )

    def _serialize_json(self, columns, rows) -> str:
        records = [dict(zip(columns, _project(columns, row))) for row in rows]
        return json.dumps(records, indent=2, ensure_ascii=False, default=str)
