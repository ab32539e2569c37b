"""Structural diagnostics of raw container source, for debugging parse failures."""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


HEAD_CHARS = 2000
TAIL_CHARS = 1000

MARKERS = [
    '"tags"',
    '"macros"',
    '"predicates"',
    '"rules"',
    '"resource"',
    "google_tag_manager",
    ".push(",
]

DEBUG_COLUMNS = ["key", "value"]


class SourceDiagnostics(BaseModel):
    """Snapshot of the raw source a locator run saw."""

    container_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    length: int
    head: str
    tail: str
    markers: Dict[str, bool]
    open_braces: int
    close_braces: int
    open_brackets: int
    close_brackets: int

    @property
    def balanced(self) -> bool:
        return self.open_braces == self.close_braces and self.open_brackets == self.close_brackets

    def to_rows(self) -> List[Dict[str, Any]]:
        """Key/value rows for the debug table."""
        rows = [
            {"key": "Container ID", "value": self.container_id},
            {"key": "JS Length", "value": f"{self.length} characters"},
            {"key": "Date", "value": self.generated_at.isoformat()},
            {"key": f"First {HEAD_CHARS} characters", "value": self.head},
            {"key": f"Last {TAIL_CHARS} characters", "value": self.tail},
        ]
        for marker, present in self.markers.items():
            rows.append({"key": f"Contains {marker}", "value": "YES" if present else "NO"})
        rows.extend([
            {"key": "Opening braces {", "value": self.open_braces},
            {"key": "Closing braces }", "value": self.close_braces},
            {"key": "Opening brackets [", "value": self.open_brackets},
            {"key": "Closing brackets ]", "value": self.close_brackets},
        ])
        return rows


def build_source_diagnostics(raw_js: str, container_id: str) -> SourceDiagnostics:
    """Collect length, head/tail excerpts, marker presence and bracket counts."""
    return SourceDiagnostics(
        container_id=container_id,
        length=len(raw_js),
        head=raw_js[:HEAD_CHARS],
        tail=raw_js[-TAIL_CHARS:] if raw_js else "",
        markers={marker: marker in raw_js for marker in MARKERS},
        open_braces=raw_js.count("{"),
        close_braces=raw_js.count("}"),
        open_brackets=raw_js.count("["),
        close_brackets=raw_js.count("]")
    )
