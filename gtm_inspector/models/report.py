"""Result model of one container inspection run."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .container import ContainerModel, VendorHit


class InspectionStatus(str, Enum):
    """Outcome of an inspection run."""
    SUCCESS = "success"
    PARSE_FAILED = "parse_failed"            # no locator strategy matched; zero counts
    FETCH_FAILED = "fetch_failed"            # transport error or non-2xx response
    INVALID_CONTAINER = "invalid_container"  # container id rejected before fetching


class InspectionReport(BaseModel):
    """Aggregate outcome of ``inspect(container_id)``."""

    container_id: str
    status: InspectionStatus
    strategy: Optional[str] = Field(default=None, description="Locator strategy that matched")

    tag_count: int = 0
    trigger_count: int = 0
    variable_count: int = 0
    vendor_hit_count: int = 0
    issue_count: int = 0

    source_length: int = 0
    status_code: Optional[int] = Field(default=None, description="HTTP status of a failed fetch")
    error_message: Optional[str] = None

    started_at: datetime = Field(default_factory=datetime.utcnow)
    processing_time_ms: Optional[int] = None

    model: ContainerModel = Field(default_factory=ContainerModel)
    vendors: List[VendorHit] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Whether the run completed without a terminal failure."""
        return self.status in (InspectionStatus.SUCCESS, InspectionStatus.PARSE_FAILED)

    def counts(self) -> Dict[str, int]:
        """Aggregate item counts."""
        return {
            "tags": self.tag_count,
            "triggers": self.trigger_count,
            "variables": self.variable_count,
            "vendors": self.vendor_hit_count
        }

    def to_summary_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary without the decoded records."""
        return {
            "container_id": self.container_id,
            "status": self.status.value,
            "strategy": self.strategy,
            "counts": self.counts(),
            "issues": self.issue_count,
            "source_length": self.source_length,
            "status_code": self.status_code,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat(),
            "processing_time_ms": self.processing_time_ms
        }
